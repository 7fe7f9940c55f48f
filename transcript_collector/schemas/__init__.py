"""Pydantic schemas for provider payloads and API validation."""

from transcript_collector.schemas.credential import (
    CredentialCreate,
    CredentialResponse,
    CredentialUpdate,
)
from transcript_collector.schemas.transcript import (
    CountResponse,
    IdsRequest,
    SelectionUpdate,
    TranscriptDetail,
    TranscriptListResponse,
    TranscriptResponse,
)
from transcript_collector.schemas.sync import RunSummaryResponse
