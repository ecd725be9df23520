"""
Wave-based batch execution.

Items are split into consecutive waves of a fixed size. A wave runs
concurrently and must finish completely before the next one starts.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterator, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def iter_waves(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most size items."""
    if size < 1:
        raise ValueError(f"Wave size must be at least 1, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def run_waves(
    items: Sequence[T],
    size: int,
    worker: Callable[[T], Awaitable[R]],
    on_wave: Callable[[int, int], None] | None = None,
) -> list[R | BaseException]:
    """
    Run worker over items, one wave at a time.

    on_wave(wave_number, completed) is called after each wave. Results
    come back in input order; an exception escaping a worker is logged
    and returned in its slot instead of stopping the batch.
    """
    results: list[R | BaseException] = []
    completed = 0

    for number, wave in enumerate(iter_waves(items, size), start=1):
        outcomes = await asyncio.gather(*(worker(item) for item in wave), return_exceptions=True)
        for item, outcome in zip(wave, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.error("Worker failed for %r: %s", item, outcome)
        results.extend(outcomes)
        completed += len(wave)

        if on_wave is not None:
            on_wave(number, completed)

    return results
