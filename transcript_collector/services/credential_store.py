"""Persistence for provider credentials."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from transcript_collector.models.credential import Credential
from transcript_collector.services.database import async_session_maker

logger = logging.getLogger(__name__)


class CredentialStore:
    """Read and toggle the API keys used for downloads."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._session_factory = session_factory or async_session_maker

    async def list_all(self) -> list[Credential]:
        async with self._session_factory() as db:
            result = await db.execute(select(Credential).order_by(Credential.created_at, Credential.id))
            return list(result.scalars().all())

    async def list_enabled(self) -> list[Credential]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(Credential)
                .where(Credential.is_enabled.is_(True))
                .order_by(Credential.created_at, Credential.id)
            )
            return list(result.scalars().all())

    async def get(self, credential_id: int) -> Credential | None:
        async with self._session_factory() as db:
            return await db.get(Credential, credential_id)

    async def add(self, name: str, key: str, is_enabled: bool = True) -> Credential:
        credential = Credential(name=name.strip(), key=key.strip(), is_enabled=is_enabled)
        async with self._session_factory() as db:
            db.add(credential)
            await db.commit()
            await db.refresh(credential)
        return credential

    async def set_enabled(self, credential_id: int, is_enabled: bool) -> bool:
        """Enable or disable a credential. Returns False if it does not exist."""
        async with self._session_factory() as db:
            credential = await db.get(Credential, credential_id)
            if credential is None:
                return False
            credential.is_enabled = is_enabled
            await db.commit()
        logger.info(f"Credential {credential_id} {'enabled' if is_enabled else 'disabled'}")
        return True
