"""Progress reporting and run summary types."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class DownloadProgress:
    """A human-readable progress message for one credential's run."""

    message: str
    credential_name: str = ""


ProgressSink = Callable[[DownloadProgress], None]


class ProcessingResult(str, Enum):
    """Outcome of handling a single provider record."""

    CREATED = "created"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class RunSummary:
    """Counts accumulated by a single download run. Never persisted."""

    processed: int = 0
    created: int = 0
    skipped: int = 0
    errors: int = 0
    cancelled: bool = False

    def record(self, result: ProcessingResult) -> None:
        """Count one fully handled record."""
        self.processed += 1
        if result is ProcessingResult.CREATED:
            self.created += 1
        elif result is ProcessingResult.SKIPPED:
            self.skipped += 1
        else:
            self.errors += 1

    def describe(self) -> str:
        return (
            f"Processed={self.processed}, Created={self.created}, "
            f"Skipped={self.skipped}, Errors={self.errors}"
        )


class DownloadCancelledError(asyncio.CancelledError):
    """Raised when a run is cancelled; carries the finalized summary."""

    def __init__(self, summary: RunSummary):
        super().__init__(f"Download cancelled: {summary.describe()}")
        self.summary = summary


class ProgressReporter:
    """Forwards progress messages to an optional sink and the log."""

    def __init__(self, sink: ProgressSink | None = None, credential_name: str = ""):
        self.sink = sink
        self.credential_name = credential_name

    def report(self, message: str, level: int = logging.INFO) -> None:
        logger.log(level, f"[{self.credential_name}] {message}" if self.credential_name else message)
        if self.sink is not None:
            self.sink(DownloadProgress(message=message, credential_name=self.credential_name))
