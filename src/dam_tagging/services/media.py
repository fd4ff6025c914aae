"""Media search and mapping of DAM records to domain images."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import PurePath
from uuid import uuid4

from dam_tagging.adapters.dam_client import DamClient
from dam_tagging.domain.media import DomainImage, MediaPage, SemanticTag
from dam_tagging.errors import RemoteError
from dam_tagging.services.sessions import SessionManager

UNKNOWN_FILE_NAME = "Unknown"

_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".webp": "image/webp",
}

_logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class MediaMapper:
    """Maps raw DAM media records to `DomainImage`; never raises."""

    clock: Callable[[], datetime] = field(default=_utc_now)

    def map(self, raw: dict[str, object]) -> DomainImage:
        """Project a raw media record, defaulting absent optional fields."""
        raw_id = raw.get("id")
        asset_id = str(raw_id) if raw_id is not None else ""
        file_name = _text(raw.get("fileName")) or UNKNOWN_FILE_NAME
        raw_tags = raw.get("tags")
        tags = tuple(
            SemanticTag(
                name=str(tag),
                category="Daminion",
                source="DAM",
                created_by="Daminion System",
                editable=False,
            )
            for tag in (raw_tags if isinstance(raw_tags, list) else [])
            if tag is not None
        )
        return DomainImage(
            id=asset_id or str(uuid4()),
            file_name=file_name,
            content_type=content_type_for(_text(raw.get("fileName"))),
            file_size=_integer(raw.get("fileSize")),
            width=_integer(raw.get("width")),
            height=_integer(raw.get("height")),
            created_at=self._timestamp(raw.get("createdDate")),
            modified_at=self._timestamp(raw.get("modifiedDate")),
            dam_asset_id=asset_id,
            dam_url=_text(raw.get("url")),
            description=_text(raw.get("description")),
            tags=tags,
            dam_metadata=dict(raw),
        )

    def _timestamp(self, value: object) -> datetime:
        if isinstance(value, str) and value:
            try:
                parsed = datetime.fromisoformat(value)
            except ValueError:
                return self.clock()
            if parsed.tzinfo is None:
                return parsed.replace(tzinfo=UTC)
            return parsed
        return self.clock()


@dataclass
class MediaSearchService:
    """Queries DAM media items and maps them for the application."""

    session: SessionManager
    client: DamClient
    mapper: MediaMapper
    max_page_size: int = 1000

    async def search(
        self,
        query: str | None,
        page: int = 1,
        page_size: int = 50,
        cancel_event: asyncio.Event | None = None,
    ) -> MediaPage:
        """Search media items; `page` is one-based, the DAM index zero-based."""
        size = max(1, min(page_size, self.max_page_size))
        index = max(0, page - 1)
        query_line = query.strip() if query else None
        payload = await self.session.call(
            lambda credential: self.client.search_media(
                credential, query_line, size, index
            ),
            action="mediaItems",
            cancel_event=cancel_event,
        )
        items = [self.mapper.map(item) for item in _media_records(payload)]
        total_count = payload.get("totalCount")
        _logger.info("Media search: query=%s results=%s", query_line, len(items))
        return MediaPage(
            items=items,
            total_count=total_count if isinstance(total_count, int) else len(items),
            page=index + 1,
            page_size=size,
        )

    async def get_media(
        self, asset_id: str, cancel_event: asyncio.Event | None = None
    ) -> DomainImage | None:
        """Fetch a single media item by DAM asset id."""
        payload = await self.session.call(
            lambda credential: self.client.search_media(
                credential, f"id:{asset_id}", 1, 0
            ),
            action="mediaItems",
            cancel_event=cancel_event,
        )
        records = _media_records(payload)
        if not records:
            return None
        return self.mapper.map(records[0])


def content_type_for(file_name: str | None) -> str:
    """Infer an image MIME type from a file name."""
    if not file_name:
        return "application/octet-stream"
    return _CONTENT_TYPES.get(
        PurePath(file_name).suffix.lower(), "application/octet-stream"
    )


def _media_records(payload: dict[str, object]) -> list[dict[str, object]]:
    items = payload.get("items")
    if items is None:
        return []
    if not isinstance(items, list):
        raise RemoteError("DAM mediaItems returned a malformed payload")
    return [item for item in items if isinstance(item, dict)]


def _text(value: object) -> str:
    return value if isinstance(value, str) else ""


def _integer(value: object) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return 0
