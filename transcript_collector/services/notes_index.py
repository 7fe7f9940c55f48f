"""Best-effort index of provider notes keyed by note ID."""

import logging
from dataclasses import dataclass, field
from typing import Any

from transcript_collector.core.cancellation import CancellationToken
from transcript_collector.core.progress import ProgressReporter
from transcript_collector.services.pagination import PageFetcher

logger = logging.getLogger(__name__)


@dataclass
class NotesIndexResult:
    """Notes gathered for one run and whether the stream was fully drained."""

    notes: dict[str, dict[str, Any]] = field(default_factory=dict)
    complete: bool = True

    def get(self, note_id: str | None) -> dict[str, Any] | None:
        if not note_id:
            return None
        return self.notes.get(note_id)

    def __len__(self) -> int:
        return len(self.notes)


async def build_notes_index(
    fetcher: PageFetcher[dict[str, Any]],
    reporter: ProgressReporter | None = None,
    cancellation: CancellationToken | None = None,
) -> NotesIndexResult:
    """Drain the notes stream into a map keyed by note ID.

    Duplicate IDs keep the last payload seen. If a page fetch exhausts its
    retries, a warning is reported and the notes accumulated so far are
    returned with ``complete=False``; note enrichment is optional.
    """
    reporter = reporter or ProgressReporter()
    result = NotesIndexResult()
    cursor: str | None = None
    page_number = 0

    try:
        while True:
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            page_number += 1
            reporter.report(f"Fetching notes page {page_number}...")

            page = await fetcher.fetch_page(cursor)
            if not page.items:
                reporter.report("No more notes found")
                break

            for note in page.items:
                note_id = note.get("id") if isinstance(note, dict) else None
                if isinstance(note_id, str) and note_id.strip():
                    result.notes[note_id] = note

            reporter.report(f"Notes page {page_number} complete: {len(page.items)} notes")

            if not page.next_cursor:
                break
            cursor = page.next_cursor
    except Exception as e:
        result.complete = False
        reporter.report(
            f"Warning: Error fetching notes: {e}. Continuing without remaining notes...",
            level=logging.WARNING,
        )

    return result
