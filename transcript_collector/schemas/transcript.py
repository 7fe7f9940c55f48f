"""Transcript schemas for API requests and responses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from transcript_collector.models.transcript import MeetingScope, Selection, TranscriptSource


class TranscriptResponse(BaseModel):
    """Transcript metadata for list views."""

    id: int
    external_id: str
    source: TranscriptSource
    source_detail: str | None = None
    title: str
    occurred_at: datetime | None = None
    participants: list[str] | None = None
    length_minutes: int | None = None
    content_length: int | None = None
    scope: MeetingScope | None = None
    selection: Selection
    is_archived: bool
    exported_at: datetime | None = None
    downloaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TranscriptDetail(TranscriptResponse):
    """Transcript including the raw provider payload."""

    content: str


class TranscriptListResponse(BaseModel):
    transcripts: list[TranscriptResponse]
    total: int
    has_undecided: bool


class IdsRequest(BaseModel):
    ids: list[int] = Field(min_length=1)


class SelectionUpdate(IdsRequest):
    selection: Selection


class CountResponse(BaseModel):
    """Number of transcripts affected by a lifecycle operation."""

    count: int
