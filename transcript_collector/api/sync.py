"""On-demand download endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from transcript_collector.api.deps import (
    get_credential_store,
    get_drive_downloader,
    get_fellow_downloader,
)
from transcript_collector.core.drive_downloader import DriveDownloader
from transcript_collector.core.errors import AuthenticationError
from transcript_collector.core.fellow_downloader import FellowDownloader
from transcript_collector.core.progress import DownloadProgress, RunSummary
from transcript_collector.schemas.sync import RunSummaryResponse
from transcript_collector.services.credential_store import CredentialStore

router = APIRouter()


def _to_response(summary: RunSummary, messages: list[str]) -> RunSummaryResponse:
    return RunSummaryResponse(
        processed=summary.processed,
        created=summary.created,
        skipped=summary.skipped,
        errors=summary.errors,
        cancelled=summary.cancelled,
        messages=messages,
    )


@router.post("/fellow/{credential_id}", response_model=RunSummaryResponse)
async def sync_fellow(
    credential_id: int,
    credentials: Annotated[CredentialStore, Depends(get_credential_store)],
    downloader: Annotated[FellowDownloader, Depends(get_fellow_downloader)],
) -> RunSummaryResponse:
    """Download every finished recording visible to a credential."""
    if not downloader.fellow.is_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Fellow integration not configured",
        )

    credential = await credentials.get(credential_id)
    if credential is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Credential not found")

    messages: list[str] = []

    def collect(progress: DownloadProgress) -> None:
        messages.append(progress.message)

    try:
        summary = await downloader.run(credential, progress=collect)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Fellow rejected credential '{credential.name}': {e}",
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to download from Fellow: {str(e)}",
        )
    return _to_response(summary, messages)


@router.post("/drive", response_model=RunSummaryResponse)
async def sync_drive(
    downloader: Annotated[DriveDownloader, Depends(get_drive_downloader)],
) -> RunSummaryResponse:
    """Download captions for Meet recordings in Google Drive."""
    if not downloader.captions.is_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google browser cookies not configured",
        )

    messages: list[str] = []

    def collect(progress: DownloadProgress) -> None:
        messages.append(progress.message)

    try:
        summary = await downloader.run(progress=collect)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to download from Google Drive: {str(e)}",
        )
    return _to_response(summary, messages)
