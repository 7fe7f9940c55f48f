"""Fellow API payload schemas.

Unknown fields are kept (``extra="allow"``) so a validated model still carries
everything the provider sent.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class FellowModel(BaseModel):
    """Base for Fellow payloads."""

    model_config = ConfigDict(extra="allow")


class FellowUser(FellowModel):
    id: str | None = None
    email: str | None = None
    full_name: str | None = None


class FellowWorkspace(FellowModel):
    id: str | None = None
    name: str | None = None
    subdomain: str | None = None


class FellowMeResponse(FellowModel):
    """Response of the authenticated-user ("who am I") endpoint."""

    user: FellowUser | None = None
    workspace: FellowWorkspace | None = None


class FellowAttendee(FellowModel):
    email: str | None = None


class FellowNote(FellowModel):
    """Meeting note with calendar-event metadata."""

    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    title: str | None = None
    event_guid: str | None = None
    event_start: datetime | None = None
    event_end: datetime | None = None
    event_is_all_day: bool | None = None
    recording_ids: list[str] | None = None
    event_attendees: list[FellowAttendee] | None = None
    content_markdown: str | None = None


class FellowSpeechSegment(FellowModel):
    start: float | None = None
    end: float | None = None
    speaker: str | None = None
    text: str | None = None


class FellowTranscript(FellowModel):
    speech_segments: list[FellowSpeechSegment] | None = None
    language_code: str | None = None


class FellowRecording(FellowModel):
    """A recorded meeting, optionally joined with its note."""

    id: str | None = None
    title: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    event_call_url: str | None = None
    event_guid: str | None = None
    note_id: str | None = None
    transcript: FellowTranscript | None = None
    note: FellowNote | None = None
