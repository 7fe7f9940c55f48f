"""Cursor-paginated page fetching with bounded retry."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Generic, TypeVar

from transcript_collector.core.retry import INITIAL_DELAY_SECONDS, MAX_RETRIES, retry_async

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of a paginated list call."""

    items: list[T] = field(default_factory=list)
    next_cursor: str | None = None

    @property
    def is_last(self) -> bool:
        """True when no further page should be requested."""
        return not self.items or not self.next_cursor


class PageFetcher(Generic[T]):
    """Wrap a single paginated list call with retry and exponential backoff."""

    def __init__(
        self,
        fetch: Callable[[str | None], Awaitable[Page[T]]],
        *,
        max_retries: int = MAX_RETRIES,
        initial_delay: float = INITIAL_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_retry: Callable[[int, BaseException, float], None] | None = None,
    ):
        """
        Args:
            fetch: Coroutine function taking the cursor (None for the first page)
            max_retries: Attempts per page
            initial_delay: First backoff delay in seconds
            sleep: Backoff sleep; pass CancellationToken.sleep to make it abortable
            on_retry: Callback invoked with (attempt, error, delay) before each backoff
        """
        self._fetch = fetch
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self._sleep = sleep
        self._on_retry = on_retry

    async def fetch_page(self, cursor: str | None = None) -> Page[T]:
        """Fetch one page; the last failed attempt's error propagates."""
        return await retry_async(
            lambda: self._fetch(cursor),
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            sleep=self._sleep,
            on_retry=self._on_retry,
        )

    async def iter_pages(self) -> AsyncIterator[Page[T]]:
        """Yield non-empty pages in cursor order until the stream is drained."""
        cursor: str | None = None
        while True:
            page = await self.fetch_page(cursor)
            if not page.items:
                return
            yield page
            if not page.next_cursor:
                return
            cursor = page.next_cursor
