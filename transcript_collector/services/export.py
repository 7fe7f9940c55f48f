"""Package selected transcripts into a ZIP archive."""

import asyncio
import logging
import re
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Iterable

from transcript_collector.config import get_settings
from transcript_collector.core.timeutil import utcnow
from transcript_collector.models.transcript import MeetingTranscript
from transcript_collector.services.transcript_store import TranscriptStore

settings = get_settings()
logger = logging.getLogger(__name__)

EXPORT_EXTENSION = ".json"

# Characters that are invalid in file names on common filesystems
INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_filename_part(value: str | None, default: str = "untitled") -> str:
    if not value or not value.strip():
        return default
    return INVALID_FILENAME_CHARS.sub("_", value)


def export_filename(
    external_id: str,
    title: str | None,
    max_length: int = 200,
    extension: str = EXPORT_EXTENSION,
    suffix: str = "",
) -> str:
    """``<external_id>_<title><suffix>.json``, truncated to ``max_length``.

    The suffix and extension are kept; only the stem is shortened.
    """
    stem = f"{sanitize_filename_part(external_id, 'transcript')}_{sanitize_filename_part(title)}"
    limit = max_length - len(suffix) - len(extension)
    if len(stem) > limit:
        stem = stem[:limit]
    return stem + suffix + extension


@dataclass
class ExportResult:
    """Outcome of exporting the current selection."""

    entries: int = 0
    transcript_ids: list[int] = field(default_factory=list)
    exported_at: datetime | None = None


class TranscriptExporter:
    """Write transcripts' raw content into a compressed archive."""

    def __init__(self, max_filename_length: int | None = None):
        self.max_filename_length = max_filename_length or settings.export_max_filename_length

    def export_to_archive(
        self,
        transcripts: Iterable[MeetingTranscript],
        destination: str | Path | BinaryIO,
    ) -> list[MeetingTranscript]:
        """Write one ZIP entry per transcript with content.

        Transcripts with empty content are skipped silently.

        Returns:
            The transcripts that were written
        """
        written: list[MeetingTranscript] = []
        used_names: set[str] = set()
        with zipfile.ZipFile(destination, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
            for transcript in transcripts:
                if not transcript.content or not transcript.content.strip():
                    continue
                name = export_filename(
                    transcript.external_id,
                    transcript.title,
                    max_length=self.max_filename_length,
                )
                # Truncation can make names collide; number the later ones
                counter = 1
                while name in used_names:
                    counter += 1
                    name = export_filename(
                        transcript.external_id,
                        transcript.title,
                        max_length=self.max_filename_length,
                        suffix=f"_{counter}",
                    )
                used_names.add(name)
                archive.writestr(name, transcript.content)
                written.append(transcript)

        logger.info(f"Exported {len(written)} transcripts to archive")
        return written

    async def export_selected(
        self,
        store: TranscriptStore,
        destination: str | Path | BinaryIO,
        exported_at: datetime | None = None,
    ) -> ExportResult:
        """Export the selected, non-archived transcripts and mark them exported."""
        transcripts = await store.get_selected(archived=False)
        written = await asyncio.to_thread(self.export_to_archive, transcripts, destination)

        result = ExportResult(
            entries=len(written),
            transcript_ids=[t.id for t in written],
            exported_at=exported_at or utcnow(),
        )
        if result.transcript_ids:
            await store.mark_exported(result.transcript_ids, result.exported_at)
        return result
