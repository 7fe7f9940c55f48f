"""Database models."""

from transcript_collector.models.credential import Credential
from transcript_collector.models.transcript import (
    MeetingScope,
    MeetingTranscript,
    Selection,
    TranscriptSource,
    meeting_transcript_credentials,
)

__all__ = [
    "Credential",
    "MeetingScope",
    "MeetingTranscript",
    "Selection",
    "TranscriptSource",
    "meeting_transcript_credentials",
]
