"""Bounded retry with exponential backoff."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from transcript_collector.core.errors import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RETRIES = 3
INITIAL_DELAY_SECONDS = 1.0


def backoff_delay(attempt: int, initial_delay: float = INITIAL_DELAY_SECONDS) -> float:
    """Delay after failed attempt ``attempt`` (1-based): 1s, 2s, 4s, ..."""
    return initial_delay * 2 ** (attempt - 1)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = MAX_RETRIES,
    initial_delay: float = INITIAL_DELAY_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Callable[[int, BaseException, float], None] | None = None,
) -> T:
    """Run ``operation`` up to ``max_retries`` times.

    The error from the final attempt propagates. Non-retryable errors propagate
    immediately, and cancellation is never caught.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_retries: Total number of attempts
        initial_delay: Delay in seconds after the first failure, doubled each time
        sleep: Sleep function, cancellable when a CancellationToken.sleep is passed
        on_retry: Called with (attempt, error, delay) before each backoff
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_retries or not is_retryable(e):
                raise
            delay = backoff_delay(attempt, initial_delay)
            if on_retry is not None:
                on_retry(attempt, e, delay)
            else:
                logger.debug(f"Attempt {attempt}/{max_retries} failed: {e}. Retrying in {delay}s")
            await sleep(delay)
            attempt += 1
