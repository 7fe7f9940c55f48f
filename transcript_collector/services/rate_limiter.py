"""Minimum-spacing rate limiter shared by all callers of one provider client."""

import asyncio
import time


class RateLimiter:
    """Enforce a minimum gap between the starts of consecutive calls.

    The lock is held only while waiting out the gap and recording the new
    timestamp; the caller performs its request after ``wait()`` returns, so
    network I/O is never serialized by the limiter.
    """

    def __init__(self, min_interval: float):
        """
        Args:
            min_interval: Minimum spacing between calls, in seconds
        """
        self.min_interval = min_interval
        self._lock = asyncio.Lock()
        self._last_call: float | None = None

    @classmethod
    def from_milliseconds(cls, min_interval_ms: int) -> "RateLimiter":
        return cls(min_interval_ms / 1000)

    async def wait(self) -> None:
        """Suspend until the minimum spacing since the previous call has elapsed."""
        async with self._lock:
            if self._last_call is not None:
                # asyncio timers may fire marginally early, so re-check after sleeping
                remaining = self.min_interval - (time.monotonic() - self._last_call)
                while remaining > 0:
                    await asyncio.sleep(remaining)
                    remaining = self.min_interval - (time.monotonic() - self._last_call)
            self._last_call = time.monotonic()
