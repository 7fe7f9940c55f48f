"""Scheduled background jobs using APScheduler."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from transcript_collector.config import get_settings
from transcript_collector.core.drive_downloader import DriveDownloader
from transcript_collector.core.fellow_downloader import FellowDownloader
from transcript_collector.core.progress import RunSummary
from transcript_collector.services.credential_store import CredentialStore
from transcript_collector.services.drive_captions import DriveCaptionService
from transcript_collector.services.fellow import get_fellow_service
from transcript_collector.services.google_drive import GoogleDriveService
from transcript_collector.services.transcript_store import TranscriptStore

settings = get_settings()
logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def fellow_sync_job() -> dict[str, RunSummary]:
    """Download transcripts for every enabled Fellow credential."""
    logger.info("Starting Fellow transcript sync job")
    summaries: dict[str, RunSummary] = {}

    fellow = get_fellow_service()
    if not fellow.is_configured:
        logger.warning("Fellow workspace not configured, skipping sync")
        return summaries

    credential_store = CredentialStore()
    downloader = FellowDownloader(fellow, TranscriptStore(), credential_store)

    for credential in await credential_store.list_enabled():
        try:
            summary = await downloader.run(credential)
            summaries[credential.name] = summary
            logger.info(f"Fellow sync for '{credential.name}' completed: {summary.describe()}")
        except Exception as e:
            logger.error(f"Fellow sync for '{credential.name}' failed: {e}")

    return summaries


async def drive_sync_job() -> RunSummary | None:
    """Download captions for Meet recordings in Google Drive."""
    logger.info("Starting Google Drive transcript sync job")
    captions = DriveCaptionService()
    if not captions.is_configured or not settings.google_refresh_token:
        logger.warning("Google Drive not configured, skipping sync")
        return None

    downloader = DriveDownloader(GoogleDriveService(), captions, TranscriptStore())
    try:
        summary = await downloader.run()
        logger.info(f"Google Drive sync completed: {summary.describe()}")
        return summary
    except Exception as e:
        logger.error(f"Google Drive sync job failed: {e}")
        return None


async def start_scheduler():
    """Start the scheduler with all jobs."""
    scheduler.add_job(
        fellow_sync_job,
        IntervalTrigger(minutes=settings.sync_interval_minutes),
        id="fellow_sync",
        name="Fellow Transcript Sync",
        replace_existing=True,
        max_instances=1,
    )

    scheduler.add_job(
        drive_sync_job,
        IntervalTrigger(minutes=settings.sync_interval_minutes),
        id="drive_sync",
        name="Google Drive Transcript Sync",
        replace_existing=True,
        max_instances=1,
    )

    scheduler.start()
    logger.info("Scheduler started with all jobs")


async def stop_scheduler():
    """Stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def get_job_status() -> list[dict]:
    """Get status of all scheduled jobs."""
    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger),
        })
    return jobs
