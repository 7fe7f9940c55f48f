"""Download Fellow recordings for a credential into the transcript store."""

import asyncio
import json
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Callable

import pydantic

from transcript_collector.config import get_settings
from transcript_collector.core.cancellation import CancellationToken
from transcript_collector.core.errors import AuthenticationError, ValidationError
from transcript_collector.core.progress import (
    DownloadCancelledError,
    ProcessingResult,
    ProgressReporter,
    ProgressSink,
    RunSummary,
)
from transcript_collector.core.retry import retry_async
from transcript_collector.core.timeutil import as_utc, to_naive_utc, utcnow
from transcript_collector.models.credential import Credential
from transcript_collector.models.transcript import (
    MeetingScope,
    MeetingTranscript,
    TranscriptSource,
)
from transcript_collector.schemas.fellow import FellowNote, FellowRecording
from transcript_collector.services.credential_store import CredentialStore
from transcript_collector.services.fellow import FellowService
from transcript_collector.services.notes_index import NotesIndexResult, build_notes_index
from transcript_collector.services.pagination import PageFetcher
from transcript_collector.services.transcript_store import TranscriptStore

settings = get_settings()
logger = logging.getLogger(__name__)

UNTITLED_MEETING = "Untitled Meeting"

# Fellow labels unidentified speakers "Name - A", "Name - B", ...
SPEAKER_SUFFIX_PATTERN = re.compile(r"\s*-\s*[A-Z]$")


# =============================================================================
# Normalization
# =============================================================================


def email_domain(email: str | None) -> str | None:
    """Lower-cased domain of ``user@domain``, or None if malformed."""
    if not email or not email.strip():
        return None
    parts = email.strip().split("@")
    if len(parts) != 2 or not parts[1]:
        return None
    return parts[1].lower()


def extract_participants(recording: FellowRecording) -> list[str] | None:
    """Distinct speaker names from the transcript, sorted."""
    if recording.transcript is None or recording.transcript.speech_segments is None:
        return None
    names = {
        SPEAKER_SUFFIX_PATTERN.sub("", segment.speaker.strip())
        for segment in recording.transcript.speech_segments
        if segment.speaker and segment.speaker.strip()
    }
    return sorted(names)


def calculate_length_minutes(started_at: datetime | None, ended_at: datetime | None) -> int | None:
    if started_at is None or ended_at is None:
        return None
    duration = as_utc(ended_at) - as_utc(started_at)
    return round(duration.total_seconds() / 60)


def calculate_content_length(recording: FellowRecording) -> int | None:
    """Character count of all spoken text."""
    if recording.transcript is None or recording.transcript.speech_segments is None:
        return None
    return sum(
        len(segment.text)
        for segment in recording.transcript.speech_segments
        if segment.text and segment.text.strip()
    )


def determine_scope(note: FellowNote | None, owner_domain: str | None) -> MeetingScope | None:
    """Classify a meeting by comparing attendee domains with the owner's domain.

    Returns None when the owner's domain is unknown or the note carries no
    attendee email addresses.
    """
    if not owner_domain or note is None or not note.event_attendees:
        return None
    domains = [
        domain
        for domain in (email_domain(attendee.email) for attendee in note.event_attendees)
        if domain
    ]
    if not domains:
        return None
    if any(domain != owner_domain for domain in domains):
        return MeetingScope.EXTERNAL
    return MeetingScope.INTERNAL


def parse_recording(payload: dict[str, Any]) -> FellowRecording:
    try:
        return FellowRecording.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"Malformed recording payload: {e.error_count()} validation errors",
            context={"id": payload.get("id")},
        ) from e


def create_transcript_from_recording(
    recording: FellowRecording,
    payload: dict[str, Any],
    owner_domain: str | None,
) -> MeetingTranscript:
    """Build a MeetingTranscript from a recording joined with its note.

    ``payload`` is the raw provider JSON (with the note attached) and is stored
    verbatim as the transcript content.
    """
    if not recording.id:
        raise ValidationError("Recording has no ID")

    return MeetingTranscript(
        source=TranscriptSource.FELLOW,
        external_id=recording.id,
        title=recording.title or UNTITLED_MEETING,
        occurred_at=to_naive_utc(recording.started_at),
        participants=extract_participants(recording),
        length_minutes=calculate_length_minutes(recording.started_at, recording.ended_at),
        content_length=calculate_content_length(recording),
        scope=determine_scope(recording.note, owner_domain),
        content=json.dumps(payload, separators=(",", ":"), ensure_ascii=False),
    )


# =============================================================================
# Orchestration
# =============================================================================


class FellowDownloader:
    """Drain a credential's recordings, joining notes and saving idempotently.

    Only cancellation and failure to identify the credential's owner escape
    ``run``; every other failure is reported and counted in the RunSummary.
    """

    def __init__(
        self,
        fellow_service: FellowService,
        transcript_store: TranscriptStore,
        credential_store: CredentialStore,
        max_retries: int | None = None,
        initial_delay: float | None = None,
        cooldown: timedelta | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            fellow_service: Rate-limited Fellow client, shared across runs
            transcript_store: Lifecycle store for saving transcripts
            credential_store: Used to disable a credential after a clean run
            max_retries: Attempts per page fetch and per record save
            initial_delay: First backoff delay in seconds (doubles per attempt)
            cooldown: Recordings that started more recently than this are skipped
            clock: Returns the current aware UTC time
        """
        self.fellow = fellow_service
        self.transcript_store = transcript_store
        self.credential_store = credential_store
        self.max_retries = max_retries if max_retries is not None else settings.download_max_retries
        self.initial_delay = (
            initial_delay if initial_delay is not None else settings.download_initial_delay_seconds
        )
        self.cooldown = cooldown if cooldown is not None else timedelta(
            hours=settings.recording_cooldown_hours
        )
        self.clock = clock

    async def run(
        self,
        credential: Credential,
        progress: ProgressSink | None = None,
        cancellation: CancellationToken | None = None,
    ) -> RunSummary:
        """Download all finished recordings visible to ``credential``.

        Raises:
            AuthenticationError: The credential's owner could not be identified,
                or the provider rejected the key while paging
            DownloadCancelledError: The run was cancelled; carries the summary
        """
        summary = RunSummary()
        reporter = ProgressReporter(progress, credential.name)
        token = cancellation or CancellationToken()

        try:
            owner_domain = await self._resolve_owner_domain(credential, reporter)

            reporter.report(f"Fetching notes for '{credential.name}'...")
            notes = await build_notes_index(self._notes_fetcher(credential, reporter, token), reporter, token)
            reporter.report(
                f"Fetched {len(notes)} notes for '{credential.name}'"
                + ("" if notes.complete else " (incomplete)")
            )

            await self._download_recordings(credential, notes, owner_domain, summary, reporter, token)

            reporter.report(f"Completed '{credential.name}': {summary.describe()}")

            # A clean run means this source is fully drained
            if summary.errors == 0 and summary.processed > 0:
                await self.credential_store.set_enabled(credential.id, False)
                reporter.report(
                    f"Credential '{credential.name}' marked as inactive after successful download"
                )
        except asyncio.CancelledError as e:
            summary.cancelled = True
            reporter.report(f"Cancelled '{credential.name}': {summary.describe()}", level=logging.WARNING)
            raise DownloadCancelledError(summary) from e

        return summary

    async def _resolve_owner_domain(self, credential: Credential, reporter: ProgressReporter) -> str:
        reporter.report(f"Fetching user info for '{credential.name}'...")
        try:
            me = await self.fellow.get_authenticated_user(credential.key)
        except Exception as e:
            reporter.report(f"Failed to fetch user info: {e}", level=logging.ERROR)
            raise

        email = me.user.email if me.user else None
        if not email:
            message = "Failed to fetch user info: No email address returned from API"
            reporter.report(message, level=logging.ERROR)
            raise AuthenticationError(message)

        domain = email_domain(email)
        if domain is None:
            message = f"Invalid email format returned from API: {email}"
            reporter.report(message, level=logging.ERROR)
            raise AuthenticationError(message)

        reporter.report(f"User email domain: {domain}")
        return domain

    def _retry_reporter(self, reporter: ProgressReporter, what: str) -> Callable[[int, BaseException, float], None]:
        def on_retry(attempt: int, error: BaseException, delay: float) -> None:
            reporter.report(
                f"Error {what} (attempt {attempt}/{self.max_retries}): {error}. "
                f"Retrying in {delay:g}s...",
                level=logging.WARNING,
            )

        return on_retry

    def _notes_fetcher(
        self,
        credential: Credential,
        reporter: ProgressReporter,
        token: CancellationToken,
    ) -> PageFetcher[dict[str, Any]]:
        return PageFetcher(
            lambda cursor: self.fellow.list_notes(credential.key, cursor=cursor),
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            sleep=token.sleep,
            on_retry=self._retry_reporter(reporter, "fetching notes page"),
        )

    async def _download_recordings(
        self,
        credential: Credential,
        notes: NotesIndexResult,
        owner_domain: str | None,
        summary: RunSummary,
        reporter: ProgressReporter,
        token: CancellationToken,
    ) -> None:
        fetcher = PageFetcher(
            lambda cursor: self.fellow.list_recordings(credential.key, cursor=cursor),
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            sleep=token.sleep,
            on_retry=self._retry_reporter(reporter, "fetching recordings page"),
        )
        cursor: str | None = None
        page_number = 0

        while True:
            token.raise_if_cancelled()
            page_number += 1
            reporter.report(f"Fetching recordings page {page_number} for '{credential.name}'...")

            try:
                page = await fetcher.fetch_page(cursor)
            except AuthenticationError as e:
                reporter.report(f"Authentication failed: {e}", level=logging.ERROR)
                raise
            except Exception as e:
                # Stop here; the next run resumes from the first page
                reporter.report(
                    f"Failed to fetch page {page_number} after {self.max_retries} attempts: {e}",
                    level=logging.ERROR,
                )
                summary.errors += 1
                break

            if not page.items:
                reporter.report(f"No more recordings found for '{credential.name}'")
                break

            for item in page.items:
                token.raise_if_cancelled()
                result = await self._process_item(item, credential, notes, owner_domain, reporter, token)
                summary.record(result)

            reporter.report(f"Page {page_number} complete: {len(page.items)} recordings")

            if not page.next_cursor:
                break
            cursor = page.next_cursor

    def _skip_reason(self, recording: FellowRecording) -> str | None:
        """Recordings are not final until the cool-down after their start has passed."""
        if recording.started_at is None:
            return None
        now = self.clock()
        started_at = as_utc(recording.started_at)
        title = recording.title or UNTITLED_MEETING
        if started_at > now:
            return f"Skipping future meeting: {title}"
        if started_at > now - self.cooldown:
            hours = self.cooldown.total_seconds() / 3600
            return f"Skipping recent meeting (started less than {hours:g} hours ago): {title}"
        return None

    async def _process_item(
        self,
        item: Any,
        credential: Credential,
        notes: NotesIndexResult,
        owner_domain: str | None,
        reporter: ProgressReporter,
        token: CancellationToken,
    ) -> ProcessingResult:
        if not isinstance(item, dict):
            reporter.report("Skipping malformed recording payload")
            return ProcessingResult.SKIPPED

        recording_id = item.get("id")
        if not isinstance(recording_id, str) or not recording_id.strip():
            reporter.report("Skipping recording with no ID")
            return ProcessingResult.SKIPPED

        payload = dict(item)
        note_id = item.get("note_id")
        note = notes.get(note_id) if isinstance(note_id, str) else None
        if note is not None:
            payload["note"] = note

        try:
            recording = parse_recording(payload)
        except ValidationError as e:
            reporter.report(f"Skipping recording {recording_id}: {e}", level=logging.WARNING)
            return ProcessingResult.SKIPPED

        skip_reason = self._skip_reason(recording)
        if skip_reason:
            reporter.report(skip_reason)
            return ProcessingResult.SKIPPED

        title = recording.title or UNTITLED_MEETING
        try:
            return await retry_async(
                lambda: self._save_recording(recording, payload, credential, owner_domain, reporter),
                max_retries=self.max_retries,
                initial_delay=self.initial_delay,
                sleep=token.sleep,
                on_retry=self._retry_reporter(reporter, f"saving '{title}'"),
            )
        except ValidationError as e:
            reporter.report(f"Skipping '{title}': {e}", level=logging.WARNING)
            return ProcessingResult.SKIPPED
        except Exception as e:
            reporter.report(
                f"Failed to save '{title}' after {self.max_retries} attempts: {e}",
                level=logging.ERROR,
            )
            return ProcessingResult.ERROR

    async def _save_recording(
        self,
        recording: FellowRecording,
        payload: dict[str, Any],
        credential: Credential,
        owner_domain: str | None,
        reporter: ProgressReporter,
    ) -> ProcessingResult:
        title = recording.title or UNTITLED_MEETING
        if await self.transcript_store.exists_for_credential(recording.id, credential.id):
            reporter.report(f"Already exists for this credential: {title}")
            return ProcessingResult.SKIPPED

        transcript = create_transcript_from_recording(recording, payload, owner_domain)
        await self.transcript_store.save(transcript, credential)
        reporter.report(f"Saved: {title}")
        return ProcessingResult.CREATED
