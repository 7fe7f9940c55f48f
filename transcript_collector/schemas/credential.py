"""Credential schemas. API keys are write-only."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CredentialCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    key: str = Field(min_length=1)
    is_enabled: bool = True


class CredentialUpdate(BaseModel):
    is_enabled: bool


class CredentialResponse(BaseModel):
    id: int
    name: str
    is_enabled: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
