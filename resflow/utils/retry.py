from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_backoff(
    attempt: int, base: float = 1.5, jitter: float = 0.5, cap: float = 30.0
) -> float:
    """Compute exponential backoff with jitter, capped at ``cap`` seconds."""
    delay = min(base ** attempt, cap)
    return delay + random.uniform(0, jitter)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    attempts: int,
    retry_on: Tuple[Type[BaseException], ...],
    label: str = "operation",
) -> T:
    """Await ``operation`` up to ``attempts`` times, sleeping between tries.

    Only exceptions listed in ``retry_on`` are retried; the last one is
    re-raised once attempts are exhausted.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            logger.warning(f"{label} failed (attempt {attempt}/{attempts}): {e}")
            if attempt == attempts:
                raise
            await asyncio.sleep(compute_backoff(attempt))
    raise AssertionError("unreachable")
