"""Cooperative cancellation for download runs."""

import asyncio


class CancellationToken:
    """Event-backed cancellation signal threaded through a download run.

    Plain task cancellation (``task.cancel()``) is honoured as well; the token
    lets a caller stop a run without owning its task.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise asyncio.CancelledError("Download cancelled")

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, waking immediately if cancelled."""
        self.raise_if_cancelled()
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise asyncio.CancelledError("Download cancelled")
