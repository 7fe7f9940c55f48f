"""Transcript lifecycle and export API endpoints."""

import io
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from transcript_collector.api.deps import get_exporter, get_transcript_store
from transcript_collector.schemas.transcript import (
    CountResponse,
    IdsRequest,
    SelectionUpdate,
    TranscriptDetail,
    TranscriptListResponse,
    TranscriptResponse,
)
from transcript_collector.services.export import TranscriptExporter
from transcript_collector.services.transcript_store import TranscriptStore

router = APIRouter()

StoreDep = Annotated[TranscriptStore, Depends(get_transcript_store)]


@router.get("", response_model=TranscriptListResponse)
async def list_transcripts(
    store: StoreDep,
    archived: bool = Query(default=False),
) -> TranscriptListResponse:
    """List active or archived transcripts, newest first."""
    transcripts = await store.list_transcripts(archived=archived)
    return TranscriptListResponse(
        transcripts=[TranscriptResponse.model_validate(t) for t in transcripts],
        total=len(transcripts),
        has_undecided=await store.has_undecided(archived=archived),
    )


@router.get("/{transcript_id}", response_model=TranscriptDetail)
async def get_transcript(transcript_id: int, store: StoreDep) -> TranscriptDetail:
    """Get a transcript with its raw content."""
    transcript = await store.get_by_id(transcript_id)
    if transcript is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transcript not found")
    return TranscriptDetail.model_validate(transcript)


@router.post("/selection", response_model=CountResponse)
async def set_selection(request: SelectionUpdate, store: StoreDep) -> CountResponse:
    """Include, exclude or reset transcripts for export."""
    return CountResponse(count=await store.set_selection(request.ids, request.selection))


@router.post("/archive", response_model=CountResponse)
async def archive_transcripts(request: IdsRequest, store: StoreDep) -> CountResponse:
    return CountResponse(count=await store.archive_by_ids(request.ids))


@router.post("/restore", response_model=CountResponse)
async def restore_transcripts(request: IdsRequest, store: StoreDep) -> CountResponse:
    return CountResponse(count=await store.restore_by_ids(request.ids))


@router.post("/restore-all", response_model=CountResponse)
async def restore_all_archived(store: StoreDep) -> CountResponse:
    return CountResponse(count=await store.restore_all_archived())


@router.post("/archive-excluded", response_model=CountResponse)
async def archive_excluded(store: StoreDep) -> CountResponse:
    return CountResponse(count=await store.archive_excluded())


@router.post("/archive-exported", response_model=CountResponse)
async def archive_exported(store: StoreDep) -> CountResponse:
    return CountResponse(count=await store.archive_exported())


@router.post("/export")
async def export_selected(
    store: StoreDep,
    exporter: Annotated[TranscriptExporter, Depends(get_exporter)],
) -> StreamingResponse:
    """Download the selected transcripts as a ZIP and mark them exported."""
    buffer = io.BytesIO()
    result = await exporter.export_selected(store, buffer)
    if result.entries == 0:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No selected transcripts with content to export",
        )

    buffer.seek(0)
    filename = f"transcripts_{result.exported_at:%Y%m%d_%H%M%S}.zip"
    return StreamingResponse(
        buffer,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Export-Entries": str(result.entries),
        },
    )


@router.delete("", response_model=CountResponse)
async def delete_all_transcripts(store: StoreDep) -> CountResponse:
    """Full reset: delete every stored transcript."""
    return CountResponse(count=await store.delete_all())
