#!/usr/bin/env python3
"""Download transcripts from Fellow and/or Google Drive from the command line."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from transcript_collector.core.cancellation import CancellationToken
from transcript_collector.core.drive_downloader import DriveDownloader
from transcript_collector.core.fellow_downloader import FellowDownloader
from transcript_collector.core.progress import DownloadCancelledError, DownloadProgress
from transcript_collector.services.credential_store import CredentialStore
from transcript_collector.services.database import close_db, init_db
from transcript_collector.services.drive_captions import DriveCaptionService
from transcript_collector.services.export import TranscriptExporter
from transcript_collector.services.fellow import get_fellow_service
from transcript_collector.services.google_drive import GoogleDriveService
from transcript_collector.services.transcript_store import TranscriptStore


def print_progress(progress: DownloadProgress) -> None:
    prefix = f"[{progress.credential_name}] " if progress.credential_name else ""
    print(f"{prefix}{progress.message}")


async def sync_fellow(token: CancellationToken) -> int:
    credential_store = CredentialStore()
    downloader = FellowDownloader(get_fellow_service(), TranscriptStore(), credential_store)

    created = 0
    for credential in await credential_store.list_enabled():
        try:
            summary = await downloader.run(credential, progress=print_progress, cancellation=token)
        except Exception as e:
            print(f"[{credential.name}] Failed: {e}")
            continue
        created += summary.created
    return created


async def sync_drive(token: CancellationToken) -> int:
    downloader = DriveDownloader(GoogleDriveService(), DriveCaptionService(), TranscriptStore())
    summary = await downloader.run(progress=print_progress, cancellation=token)
    return summary.created


async def main(args: argparse.Namespace) -> int:
    await init_db()
    token = CancellationToken()
    created = 0
    try:
        if args.source in ("fellow", "all"):
            created += await sync_fellow(token)
        if args.source in ("drive", "all"):
            created += await sync_drive(token)

        if args.export:
            result = await TranscriptExporter().export_selected(TranscriptStore(), args.export)
            print(f"Exported {result.entries} transcripts to {args.export}")
    except DownloadCancelledError as e:
        print(f"Cancelled: {e.summary.describe()}")
    finally:
        await close_db()
    return created


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--source", choices=["fellow", "drive", "all"], default="fellow")
    parser.add_argument("--export", type=Path, help="Write selected transcripts to this ZIP file")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    result = asyncio.run(main(args))
    print(f"\nDone! Total new transcripts: {result}")
