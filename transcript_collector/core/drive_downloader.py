"""Download Google Meet captions from Drive into the transcript store."""

import asyncio
import json
import logging
from typing import Awaitable, Callable

from transcript_collector.core.cancellation import CancellationToken
from transcript_collector.core.errors import AuthenticationError, TransportError
from transcript_collector.core.progress import (
    DownloadCancelledError,
    ProcessingResult,
    ProgressReporter,
    ProgressSink,
    RunSummary,
)
from transcript_collector.core.timeutil import to_naive_utc
from transcript_collector.models.transcript import MeetingTranscript, TranscriptSource
from transcript_collector.services.drive_captions import DriveCaptionService
from transcript_collector.services.google_drive import DriveVideo, GoogleDriveService
from transcript_collector.services.transcript_store import TranscriptStore

logger = logging.getLogger(__name__)

DRIVE_PROGRESS_NAME = "Google Drive"

# Called when direct caption download yields nothing, e.g. to have a browser
# automation trigger caption generation for the next run.
CaptionEscalation = Callable[[DriveVideo], Awaitable[None]]


def create_transcript_from_video(video: DriveVideo) -> MeetingTranscript:
    return MeetingTranscript(
        source=TranscriptSource.GOOGLE,
        external_id=video.id,
        title=video.name or "Untitled Meeting",
        occurred_at=to_naive_utc(video.created_time),
        source_detail=" > ".join(video.folder_path) if video.folder_path else None,
        participants=[
            p for p in [video.last_modifying_user_name or video.last_modifying_user_email] if p
        ] or None,
        length_minutes=video.duration_millis // 60000 if video.duration_millis is not None else None,
        content_length=sum(len(segment.text) for segment in video.transcript),
        content=json.dumps(video.to_dict(), separators=(",", ":"), ensure_ascii=False),
    )


class DriveDownloader:
    """Download captions for every Meet recording not yet stored."""

    def __init__(
        self,
        drive_service: GoogleDriveService,
        caption_service: DriveCaptionService,
        transcript_store: TranscriptStore,
        escalation: CaptionEscalation | None = None,
    ):
        self.drive = drive_service
        self.captions = caption_service
        self.transcript_store = transcript_store
        self.escalation = escalation

    async def run(
        self,
        progress: ProgressSink | None = None,
        cancellation: CancellationToken | None = None,
    ) -> RunSummary:
        """Download captions for all listed videos.

        Raises:
            AuthenticationError: Google rejected the OAuth credentials or cookies
            DownloadCancelledError: The run was cancelled; carries the summary
        """
        summary = RunSummary()
        reporter = ProgressReporter(progress, DRIVE_PROGRESS_NAME)
        token = cancellation or CancellationToken()

        try:
            reporter.report("Fetching Google Meet videos from Drive...")
            videos = await self.drive.list_meet_videos()
            reporter.report(f"Found {len(videos)} Google Meet video(s)")

            for video in videos:
                token.raise_if_cancelled()
                result = await self._process_video(video, reporter)
                summary.record(result)

            reporter.report(f"Completed {DRIVE_PROGRESS_NAME}: {summary.describe()}")
        except asyncio.CancelledError as e:
            summary.cancelled = True
            reporter.report(f"Cancelled {DRIVE_PROGRESS_NAME}: {summary.describe()}", level=logging.WARNING)
            raise DownloadCancelledError(summary) from e

        return summary

    async def _process_video(self, video: DriveVideo, reporter: ProgressReporter) -> ProcessingResult:
        reporter.report(f"Processing: {video.name}")
        try:
            existing = await self.transcript_store.get_by_external_id(video.id, TranscriptSource.GOOGLE)
            if existing is not None:
                reporter.report(f"  Skipped (already exists): {video.name}")
                return ProcessingResult.SKIPPED

            try:
                segments = await self.captions.download_captions(video.id)
            except TransportError as e:
                reporter.report(f"  Direct caption download failed: {e}", level=logging.WARNING)
                segments = None

            if not segments:
                if self.escalation is not None:
                    await self.escalation(video)
                reporter.report(f"  No transcript available: {video.name}")
                return ProcessingResult.SKIPPED

            video.transcript = segments
            await self.transcript_store.save(create_transcript_from_video(video))
            reporter.report(f"  Downloaded: {video.name}")
            return ProcessingResult.CREATED
        except AuthenticationError as e:
            reporter.report(f"  Authentication Error: {e}", level=logging.ERROR)
            raise
        except Exception as e:
            reporter.report(f"  Error: {video.name} - {e}", level=logging.ERROR)
            return ProcessingResult.ERROR
