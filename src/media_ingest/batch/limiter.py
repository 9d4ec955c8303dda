"""Bounded-parallelism runner for async batch stages."""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def run_bounded(
    items: Sequence[T],
    limit: int,
    task: Callable[[T], Awaitable[R]],
) -> List[R]:
    """
    Run ``task`` over ``items`` with at most ``limit`` in flight.

    ``limit`` workers each pull the next unclaimed index until the input is
    exhausted, so slow items do not hold up a fixed partition. Results keep
    the input order.

    The first failure stops further dispatch; tasks already started are
    allowed to finish, then the first error is raised.

    Args:
        items: Inputs to process
        limit: Maximum concurrent tasks (at least 1)
        task: Async function applied to each item

    Returns:
        Results in input order
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")
    if not items:
        return []

    results: List[Optional[R]] = [None] * len(items)
    next_index = 0
    errors: List[BaseException] = []

    async def worker() -> None:
        nonlocal next_index
        while not errors and next_index < len(items):
            index = next_index
            next_index += 1
            try:
                results[index] = await task(items[index])
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)
                return

    await asyncio.gather(*(worker() for _ in range(min(limit, len(items)))))

    if errors:
        raise errors[0]
    return results  # type: ignore[return-value]
