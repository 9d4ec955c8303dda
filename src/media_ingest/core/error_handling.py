"""Retry and error translation for object-store calls."""

import asyncio
import functools
import logging

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import StoreError

RETRYABLE_STORE_ERROR_CODES = (
    "ThrottlingException",
    "SlowDown",
    "RequestTimeout",
    "InternalError",
    "ServiceUnavailable",
    "503",
)


def error_code(exc: BaseException) -> str:
    """Return the botocore error code behind an exception, or ""."""
    cause = exc if isinstance(exc, ClientError) else exc.__cause__
    if isinstance(cause, ClientError):
        return str(cause.response.get("Error", {}).get("Code", ""))
    return ""


def is_retryable(exc: BaseException) -> bool:
    if error_code(exc) in RETRYABLE_STORE_ERROR_CODES:
        return True
    cause = exc.__cause__ if isinstance(exc, StoreError) else exc
    return isinstance(cause, BotoCoreError)


def retry_store_operation(max_attempts=3, initial_delay=0.5, backoff_factor=2):
    """
    Decorator to retry async object-store operations with exponential backoff.

    botocore errors are converted to ``StoreError``. Only throttling and
    transient errors are retried; anything else is raised immediately.
    ``max_attempts`` can be overridden per instance through a
    ``store_attempts`` attribute on the decorated method's owner.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            logger = logging.getLogger("media-ingest.store")
            attempts_allowed = getattr(args[0], "store_attempts", max_attempts) if args else max_attempts
            attempts = 0
            delay = initial_delay
            while True:
                try:
                    return await func(*args, **kwargs)
                except (ClientError, BotoCoreError) as e:
                    error = StoreError(f"Store operation '{func.__name__}' failed: {e}")
                    error.__cause__ = e
                except StoreError as e:
                    error = e

                attempts += 1
                if not is_retryable(error):
                    logger.error(f"Store operation '{func.__name__}' failed: {error}")
                    raise error
                if attempts >= attempts_allowed:
                    logger.error(
                        f"Store operation '{func.__name__}' failed after {attempts} attempts: {error}"
                    )
                    raise error

                logger.warning(
                    f"Store operation '{func.__name__}' failed. Attempt {attempts}/{attempts_allowed}. "
                    f"Retrying in {delay:.2f}s. Error: {error}"
                )
                await asyncio.sleep(delay)
                delay *= backoff_factor

        return wrapper

    return decorator
