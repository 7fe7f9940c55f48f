"""List Google Meet recordings stored in Google Drive."""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from transcript_collector.config import get_settings
from transcript_collector.core.errors import AuthenticationError
from transcript_collector.services.webvtt import CaptionSegment

settings = get_settings()
logger = logging.getLogger(__name__)

FOLDER_QUERY = "mimeType='application/vnd.google-apps.folder' and trashed=false"
VIDEO_QUERY = "mimeType='video/mp4' and trashed=false"
VIDEO_FIELDS = (
    "nextPageToken, files(id, name, createdTime, parents, "
    "lastModifyingUser(displayName, emailAddress), videoMediaMetadata(durationMillis))"
)


@dataclass
class FolderInfo:
    id: str
    name: str
    parent_id: str | None = None


@dataclass
class DriveVideo:
    """A Meet recording file and, once downloaded, its captions."""

    id: str
    name: str
    created_time: datetime | None = None
    parent_folder_id: str = ""
    folder_path: list[str] = field(default_factory=list)
    last_modifying_user_name: str = ""
    last_modifying_user_email: str = ""
    duration_millis: int | None = None
    transcript: list[CaptionSegment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_time": self.created_time.isoformat() if self.created_time else None,
            "parent_folder_id": self.parent_folder_id,
            "folder_path": list(self.folder_path),
            "last_modifying_user_name": self.last_modifying_user_name,
            "last_modifying_user_email": self.last_modifying_user_email,
            "duration_millis": self.duration_millis,
            "transcript": [segment.to_dict() for segment in self.transcript],
        }


def _parse_drive_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def get_descendant_folder_ids(folder_id: str, hierarchy: dict[str, FolderInfo]) -> set[str]:
    """All folders below ``folder_id`` (breadth-first), excluding itself."""
    descendants: set[str] = set()
    queue = deque([folder_id])
    while queue:
        current = queue.popleft()
        for folder in hierarchy.values():
            if folder.parent_id == current and folder.id not in descendants:
                descendants.add(folder.id)
                queue.append(folder.id)
    return descendants


def get_folder_path(folder_id: str, hierarchy: dict[str, FolderInfo]) -> list[str]:
    """Folder names from the root down to ``folder_id``."""
    path: list[str] = []
    seen: set[str] = set()
    current: str | None = folder_id
    while current and current in hierarchy and current not in seen:
        seen.add(current)
        folder = hierarchy[current]
        path.insert(0, folder.name)
        current = folder.parent_id
    return path


class GoogleDriveService:
    """Drive v3 client for finding Meet recordings."""

    def __init__(
        self,
        credentials: Credentials | None = None,
        folder_id: str | None = None,
        service: Any = None,
    ):
        """
        Args:
            credentials: Google OAuth credentials; built from settings when omitted
            folder_id: Only include videos in this folder or its descendants
            service: Prebuilt Drive API resource (used by tests)
        """
        self.credentials = credentials
        self.folder_id = folder_id if folder_id is not None else settings.google_drive_folder_id
        self._service = service

    def _get_service(self) -> Any:
        if self._service is not None:
            return self._service

        credentials = self.credentials
        if credentials is None:
            if not settings.google_refresh_token:
                raise AuthenticationError(
                    "Not authenticated with Google. Configure an OAuth refresh token first."
                )
            credentials = Credentials(
                token=None,
                refresh_token=settings.google_refresh_token,
                token_uri="https://oauth2.googleapis.com/token",
                client_id=settings.google_client_id,
                client_secret=settings.google_client_secret,
            )
        self._service = build("drive", "v3", credentials=credentials, cache_discovery=False)
        return self._service

    async def _list_all(self, query: str, fields: str, page_size: int) -> list[dict[str, Any]]:
        """Follow nextPageToken until every matching file is listed."""
        service = self._get_service()
        files: list[dict[str, Any]] = []
        page_token: str | None = None

        while True:
            request = service.files().list(
                q=query,
                fields=fields,
                pageSize=page_size,
                supportsAllDrives=True,
                includeItemsFromAllDrives=True,
                corpora="allDrives",
                pageToken=page_token,
            )
            result = await asyncio.to_thread(request.execute)
            files.extend(result.get("files", []))
            page_token = result.get("nextPageToken")
            if not page_token:
                return files

    async def build_folder_hierarchy(self) -> dict[str, FolderInfo]:
        folders = await self._list_all(FOLDER_QUERY, "nextPageToken, files(id, name, parents)", 1000)
        hierarchy: dict[str, FolderInfo] = {}
        for folder in folders:
            parents = folder.get("parents") or []
            hierarchy[folder["id"]] = FolderInfo(
                id=folder["id"],
                name=folder.get("name", ""),
                parent_id=parents[0] if parents else None,
            )
        return hierarchy

    async def list_meet_videos(self) -> list[DriveVideo]:
        """List MP4 recordings, optionally restricted to the configured folder tree."""
        hierarchy = await self.build_folder_hierarchy()
        files = await self._list_all(VIDEO_QUERY, VIDEO_FIELDS, 100)

        videos: list[DriveVideo] = []
        for file in files:
            parents = file.get("parents") or []
            parent_id = parents[0] if parents else ""
            user = file.get("lastModifyingUser") or {}
            metadata = file.get("videoMediaMetadata") or {}
            duration = metadata.get("durationMillis")

            videos.append(
                DriveVideo(
                    id=file["id"],
                    name=file.get("name", ""),
                    created_time=_parse_drive_time(file.get("createdTime")),
                    parent_folder_id=parent_id,
                    folder_path=get_folder_path(parent_id, hierarchy) if parent_id else [],
                    last_modifying_user_name=user.get("displayName", ""),
                    last_modifying_user_email=user.get("emailAddress", ""),
                    duration_millis=int(duration) if duration is not None else None,
                )
            )

        if self.folder_id:
            allowed = get_descendant_folder_ids(self.folder_id, hierarchy)
            allowed.add(self.folder_id)
            videos = [v for v in videos if v.parent_folder_id in allowed]

        logger.info(f"Found {len(videos)} Google Meet videos in Drive")
        return videos
