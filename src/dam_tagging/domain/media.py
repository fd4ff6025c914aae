"""Domain models for DAM media items."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class SemanticTag:
    """Tag attached to an image."""

    name: str
    category: str
    source: str
    created_by: str
    editable: bool = True


@dataclass(frozen=True)
class DomainImage:
    """Application-facing projection of a remote media record."""

    id: str
    file_name: str
    content_type: str
    file_size: int
    width: int
    height: int
    created_at: datetime
    modified_at: datetime
    dam_asset_id: str
    dam_url: str
    description: str
    tags: tuple[SemanticTag, ...] = ()
    dam_metadata: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class MediaPage:
    """One page of media search results."""

    items: list[DomainImage]
    total_count: int
    page: int
    page_size: int
