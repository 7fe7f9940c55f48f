"""Tests for the Fellow download orchestrator."""

import asyncio
import json
import time
from datetime import datetime, timedelta, timezone

import pytest

from transcript_collector.core.cancellation import CancellationToken
from transcript_collector.core.errors import AuthenticationError, TransportError
from transcript_collector.core.fellow_downloader import (
    FellowDownloader,
    determine_scope,
    email_domain,
    extract_participants,
)
from transcript_collector.core.progress import DownloadCancelledError
from transcript_collector.models.transcript import MeetingScope, TranscriptSource
from transcript_collector.schemas.fellow import (
    FellowAttendee,
    FellowMeResponse,
    FellowNote,
    FellowRecording,
    FellowUser,
)
from transcript_collector.services.pagination import Page

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def recording(
    recording_id: str,
    started_at: datetime,
    note_id: str | None = None,
    title: str = "Weekly Sync",
) -> dict:
    return {
        "id": recording_id,
        "title": title,
        "started_at": started_at.isoformat(),
        "ended_at": (started_at + timedelta(minutes=30)).isoformat(),
        "note_id": note_id,
        "transcript": {
            "speech_segments": [
                {"start": 0.0, "end": 1.5, "speaker": "Alice - A", "text": "Hello"},
                {"start": 1.5, "end": 3.0, "speaker": "Bob", "text": "Hi there"},
                {"start": 3.0, "end": 4.0, "speaker": "Alice - A", "text": ""},
            ]
        },
    }


class FakeFellow:
    """In-memory Fellow service; page values may be exceptions to raise."""

    is_configured = True

    def __init__(self, recording_pages: dict, note_pages: dict | None = None, email: str | None = "owner@acme.com"):
        self.recording_pages = recording_pages
        self.note_pages = note_pages or {None: Page(items=[])}
        self.email = email
        self.recording_calls: list[str | None] = []

    async def get_authenticated_user(self, api_key: str) -> FellowMeResponse:
        if api_key == "revoked":
            raise AuthenticationError("Fellow rejected the API key (401)")
        return FellowMeResponse(user=FellowUser(email=self.email))

    async def list_notes(self, api_key: str, cursor: str | None = None) -> Page:
        return self._page(self.note_pages, cursor)

    async def list_recordings(self, api_key: str, cursor: str | None = None) -> Page:
        self.recording_calls.append(cursor)
        return self._page(self.recording_pages, cursor)

    @staticmethod
    def _page(pages: dict, cursor: str | None) -> Page:
        result = pages[cursor]
        if isinstance(result, Exception):
            raise result
        return result


class FailingSaveStore:
    """Delegates to a real store but every save fails."""

    def __init__(self, store):
        self.store = store
        self.save_calls = 0

    async def exists_for_credential(self, external_id, credential_id):
        return await self.store.exists_for_credential(external_id, credential_id)

    async def save(self, transcript, credential=None):
        self.save_calls += 1
        raise RuntimeError("database is locked")


def make_downloader(fellow, transcript_store, credential_store) -> FellowDownloader:
    return FellowDownloader(
        fellow,
        transcript_store,
        credential_store,
        initial_delay=0,
        clock=lambda: NOW,
    )


class TestNormalization:
    """Test record normalization helpers."""

    def test_email_domain(self):
        assert email_domain("Owner@ACME.com") == "acme.com"
        assert email_domain("not-an-email") is None
        assert email_domain("a@b@c") is None
        assert email_domain("") is None

    def test_extract_participants_strips_speaker_suffix(self):
        parsed = FellowRecording.model_validate(recording("r1", NOW))
        assert extract_participants(parsed) == ["Alice", "Bob"]

    def test_extract_participants_without_transcript(self):
        assert extract_participants(FellowRecording(id="r1")) is None

    def test_scope_internal_and_external(self):
        internal = FellowNote(event_attendees=[FellowAttendee(email="a@acme.com"), FellowAttendee(email="b@ACME.com")])
        external = FellowNote(event_attendees=[FellowAttendee(email="a@acme.com"), FellowAttendee(email="c@other.io")])
        assert determine_scope(internal, "acme.com") == MeetingScope.INTERNAL
        assert determine_scope(external, "acme.com") == MeetingScope.EXTERNAL

    def test_scope_unknown_without_attendee_emails(self):
        assert determine_scope(None, "acme.com") is None
        assert determine_scope(FellowNote(event_attendees=[FellowAttendee(email="bogus")]), "acme.com") is None
        assert determine_scope(FellowNote(event_attendees=[FellowAttendee(email="a@acme.com")]), None) is None


class TestFellowDownloader:
    """Test the download run end to end against the in-memory store."""

    @pytest.mark.asyncio
    async def test_download_is_idempotent(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        fellow = FakeFellow({
            None: Page(items=[recording("r1", NOW - timedelta(days=1))], next_cursor="c2"),
            "c2": Page(items=[recording("r2", NOW - timedelta(days=2))], next_cursor=None),
        })
        downloader = make_downloader(fellow, transcript_store, credential_store)

        first = await downloader.run(credential)
        second = await downloader.run(credential)

        assert (first.processed, first.created, first.skipped, first.errors) == (2, 2, 0, 0)
        assert (second.processed, second.created, second.skipped, second.errors) == (2, 0, 2, 0)
        assert await transcript_store.count() == 2

    @pytest.mark.asyncio
    async def test_skips_future_and_recent_recordings(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        fellow = FakeFellow({
            None: Page(items=[
                recording("future", NOW + timedelta(hours=1)),
                recording("recent", NOW - timedelta(minutes=30)),
                recording("final", NOW - timedelta(hours=3)),
            ]),
        })
        downloader = make_downloader(fellow, transcript_store, credential_store)

        summary = await downloader.run(credential)

        assert (summary.processed, summary.created, summary.skipped) == (3, 1, 2)
        assert [t.external_id for t in await transcript_store.list_transcripts()] == ["final"]

    @pytest.mark.asyncio
    async def test_joins_note_and_normalizes(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        note = {
            "id": "n1",
            "title": "Weekly Sync notes",
            "event_attendees": [{"email": "owner@acme.com"}, {"email": "guest@partner.io"}],
        }
        fellow = FakeFellow(
            {None: Page(items=[recording("r1", NOW - timedelta(days=1), note_id="n1")])},
            note_pages={None: Page(items=[note])},
        )
        downloader = make_downloader(fellow, transcript_store, credential_store)

        await downloader.run(credential)

        stored = await transcript_store.get_by_external_id("r1")
        assert stored.source == TranscriptSource.FELLOW
        assert stored.title == "Weekly Sync"
        assert stored.scope == MeetingScope.EXTERNAL
        assert stored.participants == ["Alice", "Bob"]
        assert stored.length_minutes == 30
        assert stored.content_length == len("Hello") + len("Hi there")
        assert stored.occurred_at == datetime(2026, 1, 14, 12, 0)
        payload = json.loads(stored.content)
        assert payload["note"]["id"] == "n1"
        assert payload["transcript"]["speech_segments"][0]["speaker"] == "Alice - A"

    @pytest.mark.asyncio
    async def test_notes_failure_does_not_stop_run(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        fellow = FakeFellow(
            {None: Page(items=[
                recording("r1", NOW - timedelta(days=1), note_id="n1"),
                recording("r2", NOW - timedelta(days=2)),
            ])},
            note_pages={None: TransportError("notes unavailable", status_code=503)},
        )
        downloader = make_downloader(fellow, transcript_store, credential_store)
        messages = []

        summary = await downloader.run(credential, progress=messages.append)

        assert (summary.processed, summary.created, summary.errors) == (2, 2, 0)
        for external_id in ("r1", "r2"):
            stored = await transcript_store.get_by_external_id(external_id)
            assert stored.scope is None
            assert "note" not in json.loads(stored.content)
        assert any(m.message.endswith("(incomplete)") for m in messages)

    @pytest.mark.asyncio
    async def test_save_failure_is_retried_then_counted(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        failing_store = FailingSaveStore(transcript_store)
        fellow = FakeFellow({None: Page(items=[recording("r1", NOW - timedelta(days=1))])})
        downloader = make_downloader(fellow, failing_store, credential_store)

        summary = await downloader.run(credential)

        assert failing_store.save_calls == 3
        assert (summary.processed, summary.created, summary.skipped, summary.errors) == (1, 0, 0, 1)
        assert await transcript_store.count() == 0
        assert (await credential_store.get(credential.id)).is_enabled

    @pytest.mark.asyncio
    async def test_cancel_interrupts_backoff_sleep(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        fellow = FakeFellow({None: TransportError("bad gateway", status_code=502)})
        downloader = FellowDownloader(
            fellow,
            transcript_store,
            credential_store,
            initial_delay=30,
            clock=lambda: NOW,
        )
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.2, token.cancel)

        started = time.monotonic()
        with pytest.raises(DownloadCancelledError) as exc_info:
            await downloader.run(credential, cancellation=token)
        elapsed = time.monotonic() - started

        assert elapsed < 5
        assert exc_info.value.summary.cancelled
        assert exc_info.value.summary.processed == 0
        assert fellow.recording_calls == [None]

    @pytest.mark.asyncio
    async def test_malformed_records_are_skipped(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        fellow = FakeFellow({
            None: Page(items=[
                "not a record",
                {"title": "No id"},
                {"id": "bad", "started_at": "yesterday-ish"},
                recording("r1", NOW - timedelta(days=1), title=""),
            ]),
        })
        downloader = make_downloader(fellow, transcript_store, credential_store)

        summary = await downloader.run(credential)

        assert (summary.processed, summary.created, summary.skipped, summary.errors) == (4, 1, 3, 0)
        stored = await transcript_store.get_by_external_id("r1")
        assert stored.title == "Untitled Meeting"

    @pytest.mark.asyncio
    async def test_page_failure_stops_run_with_one_error(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        fellow = FakeFellow({
            None: Page(items=[recording("r1", NOW - timedelta(days=1))], next_cursor="c2"),
            "c2": TransportError("bad gateway", status_code=502),
        })
        downloader = make_downloader(fellow, transcript_store, credential_store)

        summary = await downloader.run(credential)

        assert (summary.processed, summary.created, summary.errors) == (1, 1, 1)
        assert fellow.recording_calls == [None, "c2", "c2", "c2"]
        # Errors keep the credential enabled for the next run
        assert (await credential_store.get(credential.id)).is_enabled

    @pytest.mark.asyncio
    async def test_clean_run_disables_credential(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        fellow = FakeFellow({None: Page(items=[recording("r1", NOW - timedelta(days=1))])})
        downloader = make_downloader(fellow, transcript_store, credential_store)

        await downloader.run(credential)

        assert not (await credential_store.get(credential.id)).is_enabled

    @pytest.mark.asyncio
    async def test_empty_run_keeps_credential_enabled(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        downloader = make_downloader(FakeFellow({None: Page(items=[])}), transcript_store, credential_store)

        summary = await downloader.run(credential)

        assert summary.processed == 0
        assert (await credential_store.get(credential.id)).is_enabled

    @pytest.mark.asyncio
    async def test_same_meeting_from_second_credential_is_linked(self, transcript_store, credential_store):
        alice = await credential_store.add("alice", "key-a")
        bob = await credential_store.add("bob", "key-b")
        fellow = FakeFellow({None: Page(items=[recording("r1", NOW - timedelta(days=1))])})
        downloader = make_downloader(fellow, transcript_store, credential_store)

        await downloader.run(alice)
        summary = await downloader.run(bob)

        assert summary.created == 1
        assert await transcript_store.count() == 1
        stored = await transcript_store.get_by_external_id("r1")
        assert sorted(c.name for c in stored.credentials) == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_cancellation_returns_partial_summary(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        fellow = FakeFellow({
            None: Page(items=[
                recording("r1", NOW - timedelta(days=1)),
                recording("r2", NOW - timedelta(days=2)),
            ]),
        })
        downloader = make_downloader(fellow, transcript_store, credential_store)
        token = CancellationToken()

        def cancel_after_first_save(progress):
            if progress.message.startswith("Saved:"):
                token.cancel()

        with pytest.raises(DownloadCancelledError) as exc_info:
            await downloader.run(credential, progress=cancel_after_first_save, cancellation=token)

        summary = exc_info.value.summary
        assert summary.cancelled
        assert (summary.processed, summary.created) == (1, 1)
        assert await transcript_store.count() == 1
        # Cancelled runs never disable the credential
        assert (await credential_store.get(credential.id)).is_enabled

    @pytest.mark.asyncio
    async def test_rejected_key_fails_run(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "revoked")
        downloader = make_downloader(FakeFellow({None: Page(items=[])}), transcript_store, credential_store)
        messages = []

        with pytest.raises(AuthenticationError):
            await downloader.run(credential, progress=messages.append)

        assert any("Failed to fetch user info" in m.message for m in messages)

    @pytest.mark.asyncio
    async def test_missing_owner_email_fails_run(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        fellow = FakeFellow({None: Page(items=[])}, email=None)
        downloader = make_downloader(fellow, transcript_store, credential_store)

        with pytest.raises(AuthenticationError):
            await downloader.run(credential)

    @pytest.mark.asyncio
    async def test_progress_messages_carry_credential_name(self, transcript_store, credential_store):
        credential = await credential_store.add("alice", "key-a")
        fellow = FakeFellow({None: Page(items=[recording("r1", NOW - timedelta(days=1))])})
        downloader = make_downloader(fellow, transcript_store, credential_store)
        messages = []

        await downloader.run(credential, progress=messages.append)

        assert messages
        assert all(m.credential_name == "alice" for m in messages)
        assert any(m.message.startswith("Completed 'alice'") for m in messages)
