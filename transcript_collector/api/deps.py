"""Shared FastAPI dependencies."""

from transcript_collector.core.drive_downloader import DriveDownloader
from transcript_collector.core.fellow_downloader import FellowDownloader
from transcript_collector.services.credential_store import CredentialStore
from transcript_collector.services.drive_captions import DriveCaptionService
from transcript_collector.services.export import TranscriptExporter
from transcript_collector.services.fellow import get_fellow_service
from transcript_collector.services.google_drive import GoogleDriveService
from transcript_collector.services.transcript_store import TranscriptStore


def get_transcript_store() -> TranscriptStore:
    return TranscriptStore()


def get_credential_store() -> CredentialStore:
    return CredentialStore()


def get_exporter() -> TranscriptExporter:
    return TranscriptExporter()


def get_fellow_downloader() -> FellowDownloader:
    # The Fellow service is a singleton so concurrent runs share one rate limiter
    return FellowDownloader(get_fellow_service(), TranscriptStore(), CredentialStore())


def get_drive_downloader() -> DriveDownloader:
    return DriveDownloader(GoogleDriveService(), DriveCaptionService(), TranscriptStore())
