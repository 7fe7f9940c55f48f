"""Provider credential model."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, DateTime, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transcript_collector.services.database import Base

if TYPE_CHECKING:
    from transcript_collector.models.transcript import MeetingTranscript


class Credential(Base):
    """An API key scoping access to one provider account."""

    __tablename__ = "credentials"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    key: Mapped[str] = mapped_column(String(500))
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    transcripts: Mapped[list["MeetingTranscript"]] = relationship(
        secondary="meeting_transcript_credentials",
        back_populates="credentials",
    )
