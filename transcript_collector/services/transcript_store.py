"""Persistence and lifecycle transitions for meeting transcripts.

Every operation opens its own session and commits before returning, so each
call is atomic on its own and safe to repeat. Download runs rely on this:
a run is never wrapped in a single transaction.
"""

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from transcript_collector.core.timeutil import to_naive_utc
from transcript_collector.models.credential import Credential
from transcript_collector.models.transcript import (
    MeetingTranscript,
    Selection,
    TranscriptSource,
    meeting_transcript_credentials,
)
from transcript_collector.services.database import async_session_maker

logger = logging.getLogger(__name__)


class TranscriptStore:
    """Lifecycle store for MeetingTranscript records."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._session_factory = session_factory or async_session_maker

    # =========================================================================
    # Ingestion
    # =========================================================================

    async def exists_for_credential(self, external_id: str, credential_id: int) -> bool:
        """Check whether this credential has already downloaded the meeting."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(MeetingTranscript.id)
                .join(MeetingTranscript.credentials)
                .where(
                    MeetingTranscript.external_id == external_id,
                    Credential.id == credential_id,
                )
                .limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def save(
        self,
        transcript: MeetingTranscript,
        credential: Credential | None = None,
    ) -> MeetingTranscript:
        """Insert a transcript, or associate the credential with the existing one.

        Existing content is never overwritten: a meeting visible to several
        credentials is stored once and linked to each of them.
        """
        async with self._session_factory() as db:
            result = await db.execute(
                select(MeetingTranscript).where(
                    MeetingTranscript.external_id == transcript.external_id
                )
            )
            existing = result.scalar_one_or_none()

            tracked_credential = None
            if credential is not None:
                tracked_credential = await db.get(Credential, credential.id)

            if existing is not None:
                if tracked_credential is not None and all(
                    c.id != tracked_credential.id for c in existing.credentials
                ):
                    existing.credentials.append(tracked_credential)
                    logger.debug(
                        f"Linked credential {tracked_credential.id} to existing transcript "
                        f"{existing.external_id}"
                    )
                saved = existing
            else:
                if tracked_credential is not None:
                    transcript.credentials.append(tracked_credential)
                db.add(transcript)
                saved = transcript

            await db.commit()
            return saved

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_by_id(self, transcript_id: int) -> MeetingTranscript | None:
        async with self._session_factory() as db:
            return await db.get(MeetingTranscript, transcript_id)

    async def get_by_external_id(
        self,
        external_id: str,
        source: TranscriptSource | None = None,
    ) -> MeetingTranscript | None:
        async with self._session_factory() as db:
            query = select(MeetingTranscript).where(MeetingTranscript.external_id == external_id)
            if source is not None:
                query = query.where(MeetingTranscript.source == source)
            result = await db.execute(query)
            return result.scalar_one_or_none()

    async def list_transcripts(self, archived: bool = False) -> list[MeetingTranscript]:
        """List active (or archived) transcripts, newest first."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(MeetingTranscript)
                .where(MeetingTranscript.is_archived == archived)
                .order_by(MeetingTranscript.occurred_at.desc(), MeetingTranscript.id.desc())
            )
            return list(result.scalars().all())

    async def count(self, archived: bool = False) -> int:
        async with self._session_factory() as db:
            result = await db.execute(
                select(func.count(MeetingTranscript.id)).where(
                    MeetingTranscript.is_archived == archived
                )
            )
            return result.scalar_one()

    async def get_selected(self, archived: bool = False) -> list[MeetingTranscript]:
        """Transcripts the user included, ordered by title."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(MeetingTranscript)
                .where(
                    MeetingTranscript.selection == Selection.INCLUDED,
                    MeetingTranscript.is_archived == archived,
                )
                .order_by(MeetingTranscript.title)
            )
            return list(result.scalars().all())

    async def has_undecided(self, archived: bool = False) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(
                select(MeetingTranscript.id)
                .where(
                    MeetingTranscript.selection == Selection.UNKNOWN,
                    MeetingTranscript.is_archived == archived,
                )
                .limit(1)
            )
            return result.scalar_one_or_none() is not None

    # =========================================================================
    # Lifecycle transitions
    # =========================================================================

    async def _update(self, where: list, values: dict) -> int:
        async with self._session_factory() as db:
            result = await db.execute(update(MeetingTranscript).where(*where).values(**values))
            await db.commit()
            return result.rowcount or 0

    async def set_selection(self, ids: Iterable[int], selection: Selection) -> int:
        """Set the selection state of the given transcripts."""
        ids = list(ids)
        if not ids:
            return 0
        return await self._update([MeetingTranscript.id.in_(ids)], {"selection": selection})

    async def archive_by_ids(self, ids: Iterable[int]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        return await self._update([MeetingTranscript.id.in_(ids)], {"is_archived": True})

    async def restore_by_ids(self, ids: Iterable[int]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        return await self._update([MeetingTranscript.id.in_(ids)], {"is_archived": False})

    async def restore_all_archived(self) -> int:
        """Un-archive every archived transcript; selection and export state are kept."""
        count = await self._update([MeetingTranscript.is_archived.is_(True)], {"is_archived": False})
        logger.info(f"Restored {count} archived transcripts")
        return count

    async def archive_excluded(self) -> int:
        """Archive all excluded transcripts that are not archived yet."""
        count = await self._update(
            [
                MeetingTranscript.selection == Selection.EXCLUDED,
                MeetingTranscript.is_archived.is_(False),
            ],
            {"is_archived": True},
        )
        logger.info(f"Archived {count} excluded transcripts")
        return count

    async def archive_exported(self) -> int:
        """Archive all exported transcripts that are not archived yet."""
        count = await self._update(
            [
                MeetingTranscript.exported_at.is_not(None),
                MeetingTranscript.is_archived.is_(False),
            ],
            {"is_archived": True},
        )
        logger.info(f"Archived {count} exported transcripts")
        return count

    async def mark_exported(self, ids: Iterable[int], exported_at: datetime) -> int:
        ids = list(ids)
        if not ids:
            return 0
        return await self._update(
            [MeetingTranscript.id.in_(ids)],
            {"exported_at": to_naive_utc(exported_at)},
        )

    async def delete_all(self) -> int:
        """Full reset: physically delete every transcript."""
        async with self._session_factory() as db:
            count = (await db.execute(select(func.count(MeetingTranscript.id)))).scalar_one()
            await db.execute(delete(meeting_transcript_credentials))
            await db.execute(delete(MeetingTranscript))
            await db.commit()
        logger.warning(f"Deleted all {count} transcripts")
        return count
