"""Fellow.app service for meeting recordings and notes."""

import logging
from datetime import datetime
from typing import Any

import httpx

from transcript_collector.config import get_settings
from transcript_collector.core.errors import (
    AuthenticationError,
    NotFoundError,
    TransportError,
)
from transcript_collector.schemas.fellow import FellowMeResponse
from transcript_collector.services.pagination import Page
from transcript_collector.services.rate_limiter import RateLimiter

settings = get_settings()
logger = logging.getLogger(__name__)

FELLOW_BASE_URL = "https://{workspace}.fellow.app"


def _raise_for_status(response: httpx.Response, path: str) -> None:
    """Map HTTP error statuses onto the collector's error taxonomy."""
    if response.is_success:
        return
    code = response.status_code
    if code in (401, 403):
        raise AuthenticationError(
            f"Fellow rejected the API key ({code}) for {path}",
            context={"status_code": code},
        )
    if code == 404:
        raise NotFoundError(f"Fellow resource not found: {path}", context={"status_code": code})
    raise TransportError(f"Fellow request to {path} failed with status {code}", status_code=code)


def _parse_page(body: dict[str, Any], key: str) -> Page[dict[str, Any]]:
    """Extract ``{key: {data: [...], page_info: {cursor}}}`` into a Page."""
    section = body.get(key) or {}
    data = section.get("data") or []
    page_info = section.get("page_info") or {}
    return Page(items=list(data), next_cursor=page_info.get("cursor") or None)


class FellowService:
    """Service for interacting with the Fellow REST API.

    Every request goes through the instance's RateLimiter, so all callers
    sharing one FellowService are spaced at least ``min_interval`` apart.
    """

    def __init__(
        self,
        workspace: str | None = None,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ):
        self.workspace = workspace if workspace is not None else settings.fellow_workspace
        self.rate_limiter = rate_limiter or RateLimiter.from_milliseconds(
            settings.fellow_min_request_interval_ms
        )
        self.timeout = timeout if timeout is not None else settings.fellow_request_timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        """Check if a Fellow workspace is configured."""
        return bool(self.workspace)

    @property
    def base_url(self) -> str:
        return FELLOW_BASE_URL.format(workspace=self.workspace)

    async def _request(
        self,
        method: str,
        path: str,
        api_key: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make a rate-limited request to the Fellow API."""
        if not self.is_configured:
            raise ValueError("Fellow workspace not configured")
        if not api_key:
            raise AuthenticationError("Fellow API key not provided")

        await self.rate_limiter.wait()

        headers = {
            "X-API-KEY": api_key,
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                transport=self._transport,
                timeout=self.timeout,
            ) as client:
                response = await client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"Fellow request to {path} failed: {e}") from e

        _raise_for_status(response, path)

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Fellow returned invalid JSON for {path}") from e

    @staticmethod
    def _list_body(
        page_size: int,
        cursor: str | None,
        created_at_start: datetime | None,
        include: dict[str, bool] | None,
    ) -> dict[str, Any]:
        pagination: dict[str, Any] = {"page_size": page_size}
        if cursor:
            pagination["cursor"] = cursor
        body: dict[str, Any] = {"pagination": pagination}
        if created_at_start is not None:
            body["filters"] = {"created_at_start": created_at_start.isoformat()}
        if include:
            body["include"] = include
        return body

    async def get_authenticated_user(self, api_key: str) -> FellowMeResponse:
        """Get the user and workspace the API key belongs to."""
        result = await self._request("GET", "/api/v1/me", api_key)
        return FellowMeResponse.model_validate(result)

    async def list_recordings(
        self,
        api_key: str,
        cursor: str | None = None,
        page_size: int | None = None,
        include_transcript: bool = True,
        created_at_start: datetime | None = None,
    ) -> Page[dict[str, Any]]:
        """List one page of recordings, newest first, as raw payloads."""
        body = self._list_body(
            page_size or settings.fellow_page_size,
            cursor,
            created_at_start,
            {"transcript": include_transcript},
        )
        result = await self._request("POST", "/api/v1/recordings", api_key, json=body)
        return _parse_page(result, "recordings")

    async def list_notes(
        self,
        api_key: str,
        cursor: str | None = None,
        page_size: int | None = None,
        created_at_start: datetime | None = None,
    ) -> Page[dict[str, Any]]:
        """List one page of notes with attendee metadata, as raw payloads."""
        body = self._list_body(
            page_size or settings.fellow_page_size,
            cursor,
            created_at_start,
            {"event_attendees": True, "content_markdown": True},
        )
        result = await self._request("POST", "/api/v1/notes", api_key, json=body)
        return _parse_page(result, "notes")

    async def get_recording(self, api_key: str, recording_id: str) -> dict[str, Any]:
        """Get a single recording including its transcript."""
        result = await self._request("GET", f"/api/v1/recording/{recording_id}", api_key)
        recording = result.get("recording")
        if not recording:
            raise NotFoundError(f"Recording {recording_id} not found")
        return recording

    async def get_note(self, api_key: str, note_id: str) -> dict[str, Any]:
        """Get a single note."""
        result = await self._request("GET", f"/api/v1/note/{note_id}", api_key)
        note = result.get("note")
        if not note:
            raise NotFoundError(f"Note {note_id} not found")
        return note


# Singleton instance
_fellow_service: FellowService | None = None


def get_fellow_service() -> FellowService:
    """Get or create the Fellow service instance."""
    global _fellow_service
    if _fellow_service is None:
        _fellow_service = FellowService()
    return _fellow_service
