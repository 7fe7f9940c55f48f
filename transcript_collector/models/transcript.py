"""Meeting transcript model and its lifecycle state."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transcript_collector.services.database import Base

if TYPE_CHECKING:
    from transcript_collector.models.credential import Credential


class TranscriptSource(str, Enum):
    """Provider a transcript was downloaded from."""

    FELLOW = "fellow"
    GOOGLE = "google"


class MeetingScope(str, Enum):
    """Whether every attendee shares the credential owner's email domain."""

    INTERNAL = "internal"
    EXTERNAL = "external"


class Selection(str, Enum):
    """User decision on whether a transcript belongs in the export."""

    UNKNOWN = "unknown"  # Not reviewed yet
    INCLUDED = "included"
    EXCLUDED = "excluded"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [e.value for e in enum_cls]


meeting_transcript_credentials = Table(
    "meeting_transcript_credentials",
    Base.metadata,
    Column(
        "transcript_id",
        Integer,
        ForeignKey("meeting_transcripts.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "credential_id",
        Integer,
        ForeignKey("credentials.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class MeetingTranscript(Base):
    """Normalized transcript downloaded from an external provider."""

    __tablename__ = "meeting_transcripts"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Provider identity
    external_id: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    source: Mapped[TranscriptSource] = mapped_column(
        SQLEnum(TranscriptSource, values_callable=_enum_values),
        index=True,
    )
    source_detail: Mapped[str | None] = mapped_column(String(1000), nullable=True)  # e.g. Drive folder path

    # Meeting metadata
    title: Mapped[str] = mapped_column(String(500))
    occurred_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    participants: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    length_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    content_length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    scope: Mapped[MeetingScope | None] = mapped_column(
        SQLEnum(MeetingScope, values_callable=_enum_values),
        nullable=True,
    )

    # Raw provider payload, stored verbatim for reprocessing
    content: Mapped[str] = mapped_column(Text)

    # Lifecycle
    selection: Mapped[Selection] = mapped_column(
        SQLEnum(Selection, values_callable=_enum_values),
        default=Selection.UNKNOWN,
        index=True,
    )
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    exported_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    downloaded_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    credentials: Mapped[list["Credential"]] = relationship(
        secondary=meeting_transcript_credentials,
        back_populates="transcripts",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_meeting_transcripts_archived_selection", "is_archived", "selection"),
    )

    def __repr__(self) -> str:
        return f"<MeetingTranscript {self.external_id} {self.title!r}>"
