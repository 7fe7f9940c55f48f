"""Pytest configuration and fixtures."""

from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import transcript_collector.models  # noqa: F401
from transcript_collector.api.deps import get_credential_store, get_transcript_store
from transcript_collector.main import app
from transcript_collector.models.transcript import MeetingTranscript, TranscriptSource
from transcript_collector.services.credential_store import CredentialStore
from transcript_collector.services.database import Base
from transcript_collector.services.transcript_store import TranscriptStore


# Create in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def transcript_store() -> TranscriptStore:
    return TranscriptStore(TestSessionLocal)


@pytest.fixture
def credential_store() -> CredentialStore:
    return CredentialStore(TestSessionLocal)


@pytest.fixture
def make_transcript():
    """Factory for unsaved Fellow transcripts."""
    def _make(external_id: str, title: str = "Weekly Sync", content: str = '{"id":"x"}', **kwargs):
        return MeetingTranscript(
            external_id=external_id,
            source=kwargs.pop("source", TranscriptSource.FELLOW),
            title=title,
            content=content,
            **kwargs,
        )
    return _make


@pytest.fixture
async def client(
    transcript_store: TranscriptStore,
    credential_store: CredentialStore,
) -> AsyncGenerator[AsyncClient, None]:
    """Get async test client backed by the in-memory database."""
    app.dependency_overrides[get_transcript_store] = lambda: transcript_store
    app.dependency_overrides[get_credential_store] = lambda: credential_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
