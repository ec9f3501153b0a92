from __future__ import annotations  # Exponential backoff with jitter for outbound provider calls

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUSES = frozenset({408, 409, 425, 429})

RetryPredicate = Callable[[BaseException, int, int], bool]


def status_of(error: BaseException) -> int:  # Read an HTTP status off an error, 0 when absent
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        try:
            if value is not None:
                return int(value)
        except (TypeError, ValueError):
            continue
    return 0


def is_timeout(error: BaseException) -> bool:
    return isinstance(error, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException))


def default_should_retry(error: BaseException, attempt: int, attempts: int) -> bool:
    """Retry transient HTTP statuses and timeouts while attempts remain."""

    if attempt >= attempts:
        return False
    if error is None:
        return False
    if is_timeout(error):
        return True
    status = status_of(error)
    return status in RETRYABLE_STATUSES or 500 <= status <= 599


def backoff_delay(attempt: int, min_delay_s: float, max_delay_s: float, rand: Callable[[], float] = random.random) -> float:
    exponential = min_delay_s * 2 ** (attempt - 1)
    jitter = rand() * min_delay_s
    return min(max_delay_s, exponential + jitter)


async def with_retry(
    task: Callable[[int], Awaitable[T]],
    *,
    attempts: int = 1,
    min_delay_s: float = 0.25,
    max_delay_s: float = 2.0,
    should_retry: Optional[RetryPredicate] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """Await ``task(attempt)`` until it succeeds or the predicate declines.

    ``attempt`` is 1-based. The last error is re-raised unchanged once the
    ladder is exhausted or ``should_retry`` returns False.
    """

    attempts = max(1, int(attempts))
    min_delay_s = max(0.0, float(min_delay_s))
    max_delay_s = max(min_delay_s, float(max_delay_s))
    predicate = should_retry or default_should_retry

    attempt = 1
    while True:
        try:
            return await task(attempt)
        except Exception as exc:  # noqa: BLE001
            if attempt >= attempts or not predicate(exc, attempt, attempts):
                raise
            wait_for = backoff_delay(attempt, min_delay_s, max_delay_s, rand)
            logger.info("Retrying after %s (attempt %d/%d, wait %.2fs)", type(exc).__name__, attempt, attempts, wait_for)
            await sleep(wait_for)
        attempt += 1


__all__ = ["RETRYABLE_STATUSES", "RetryPredicate", "backoff_delay", "default_should_retry", "is_timeout", "status_of", "with_retry"]
