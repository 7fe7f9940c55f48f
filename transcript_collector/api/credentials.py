"""Credential management API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError

from transcript_collector.api.deps import get_credential_store
from transcript_collector.schemas.credential import (
    CredentialCreate,
    CredentialResponse,
    CredentialUpdate,
)
from transcript_collector.services.credential_store import CredentialStore

router = APIRouter()

CredentialStoreDep = Annotated[CredentialStore, Depends(get_credential_store)]


@router.get("", response_model=list[CredentialResponse])
async def list_credentials(store: CredentialStoreDep) -> list[CredentialResponse]:
    credentials = await store.list_all()
    return [CredentialResponse.model_validate(c) for c in credentials]


@router.post("", response_model=CredentialResponse, status_code=status.HTTP_201_CREATED)
async def create_credential(request: CredentialCreate, store: CredentialStoreDep) -> CredentialResponse:
    try:
        credential = await store.add(request.name, request.key, request.is_enabled)
    except IntegrityError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A credential named '{request.name}' already exists",
        )
    return CredentialResponse.model_validate(credential)


@router.patch("/{credential_id}", response_model=CredentialResponse)
async def update_credential(
    credential_id: int,
    request: CredentialUpdate,
    store: CredentialStoreDep,
) -> CredentialResponse:
    """Enable or disable a credential for scheduled downloads."""
    if not await store.set_enabled(credential_id, request.is_enabled):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Credential not found")
    credential = await store.get(credential_id)
    return CredentialResponse.model_validate(credential)
