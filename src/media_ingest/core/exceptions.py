"""Custom exceptions for the media ingestion pipeline."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any


class MediaIngestError(Exception):
    """Base exception for all media ingestion errors."""


class ConfigurationError(MediaIngestError):
    """Error raised for invalid or missing configuration."""


class StoreError(MediaIngestError):
    """Error raised for object-store failures."""


class DecodeError(MediaIngestError):
    """Error raised when image bytes cannot be decoded."""


class SourceDirectoryError(MediaIngestError):
    """Error raised when the source directory is missing or empty."""


class KeyCollisionError(MediaIngestError):
    """Error raised when two source files map to the same destination key."""

    def __init__(self, collisions: list[str]):
        shown = ", ".join(collisions[:5])
        more = "…" if len(collisions) > 5 else ""
        super().__init__(
            "Source files collide after filename sanitization "
            f"(would overwrite each other): {shown}{more}. "
            "Rename one of the files and rerun."
        )
        self.collisions = collisions


class CheckpointError(MediaIngestError):
    """Base class for checkpoint failures that need operator action."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


class CheckpointCorruptError(CheckpointError):
    """The checkpoint file cannot be parsed."""


class CheckpointMismatchError(CheckpointError):
    """The checkpoint was created for different inputs or arguments."""


class CheckpointIncompleteError(CheckpointError):
    """A full pass finished without completing every planned item."""


class ManifestError(MediaIngestError):
    """The manifest on record cannot be read."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


@contextmanager
def batch_error_handler(item: str) -> Any:
    """Re-raise unexpected errors from one batch item as ``MediaIngestError``."""
    try:
        yield
    except MediaIngestError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise MediaIngestError(f"{item}: {exc}") from exc
