"""Transcript Collector FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from transcript_collector.api import credentials, sync, transcripts
from transcript_collector.config import get_settings
from transcript_collector.scheduler.jobs import get_job_status, start_scheduler, stop_scheduler
from transcript_collector.services.database import close_db, init_db

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    await init_db()
    if settings.sync_enabled:
        await start_scheduler()

    yield

    # Shutdown
    await stop_scheduler()
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Collects meeting transcripts from Fellow and Google Drive for review and export",
    version=settings.app_version,
    lifespan=lifespan,
)

# Include routers
app.include_router(transcripts.router, prefix="/api/v1/transcripts", tags=["Transcripts"])
app.include_router(credentials.router, prefix="/api/v1/credentials", tags=["Credentials"])
app.include_router(sync.router, prefix="/api/v1/sync", tags=["Sync"])


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/api/v1/jobs")
async def list_jobs() -> list[dict]:
    """Status of scheduled sync jobs."""
    return get_job_status()
