"""Error taxonomy for provider calls and ingestion."""

from typing import Any


class CollectorError(Exception):
    """Base exception for transcript collector errors."""

    # Whether a failed operation may be attempted again with backoff
    retryable: bool = False

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class TransportError(CollectorError):
    """Network failure or non-2xx HTTP response."""

    retryable = True

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context)
        self.status_code = status_code


class AuthenticationError(CollectorError):
    """Invalid or expired credential. Fatal to a download run."""


class NotFoundError(CollectorError):
    """Single-entity lookup found nothing."""


class ValidationError(CollectorError):
    """Malformed provider record. Skipped, never retried."""


def is_retryable(exc: BaseException) -> bool:
    """Errors outside the taxonomy (storage, parsing) are retried like transport errors."""
    if isinstance(exc, CollectorError):
        return exc.retryable
    return isinstance(exc, Exception)
