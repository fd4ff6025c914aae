"""In-memory snapshot of the DAM taxonomy."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType

from dam_tagging.adapters.dam_client import DamClient
from dam_tagging.domain.taxonomy import RemoteTagDefinition
from dam_tagging.errors import RemoteError
from dam_tagging.services.sessions import SessionManager

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaxonomySnapshot:
    """Immutable name -> definition mapping published by a refresh."""

    tags: Mapping[str, RemoteTagDefinition]
    epoch: int
    refreshed_at: datetime | None

    def __len__(self) -> int:
        return len(self.tags)


_EMPTY_SNAPSHOT = TaxonomySnapshot(
    tags=MappingProxyType({}), epoch=0, refreshed_at=None
)


def tag_key(name: str) -> str:
    """Normalize a tag name for case-insensitive lookup."""
    return name.strip().lower()


@dataclass
class TaxonomyCache:
    """Tag definitions keyed by case-insensitive name.

    Readers always see a complete snapshot. `refresh` builds the next snapshot
    off to the side and swaps it in with a single assignment, so a failed
    refresh leaves the previous snapshot in place. When refreshes overlap, a
    fetch that started earlier never replaces one that started later.
    """

    session: SessionManager
    client: DamClient
    _snapshot: TaxonomySnapshot = field(
        default=_EMPTY_SNAPSHOT, init=False, repr=False
    )
    _started: int = field(default=0, init=False, repr=False)
    _published: int = field(default=0, init=False, repr=False)

    def lookup(self, name: str) -> RemoteTagDefinition | None:
        """Return the cached definition for a tag name, if present."""
        return self._snapshot.tags.get(tag_key(name))

    def snapshot(self) -> TaxonomySnapshot:
        """Return the currently published snapshot."""
        return self._snapshot

    async def refresh(
        self, cancel_event: asyncio.Event | None = None
    ) -> TaxonomySnapshot:
        """Fetch the full tag list and publish it as a new snapshot."""
        self._started += 1
        sequence = self._started
        raw_tags = await self.session.call(
            self.client.get_tags, action="getTags", cancel_event=cancel_event
        )
        entries: dict[str, RemoteTagDefinition] = {}
        for raw in raw_tags:
            tag = tag_from_payload(raw)
            key = tag_key(tag.name)
            existing = entries.get(key)
            if existing is not None and existing.guid != tag.guid:
                _logger.warning(
                    "Ignoring duplicate tag name %s (guid %s, kept %s)",
                    tag.name,
                    tag.guid,
                    existing.guid,
                )
                continue
            entries[key] = tag

        if sequence < self._published:
            return self._snapshot
        snapshot = TaxonomySnapshot(
            tags=MappingProxyType(entries),
            epoch=self._snapshot.epoch + 1,
            refreshed_at=datetime.now(tz=UTC),
        )
        self._published = sequence
        self._snapshot = snapshot
        _logger.info("Refreshed tag cache with %s tags", len(snapshot))
        return snapshot


def tag_from_payload(raw: dict[str, object]) -> RemoteTagDefinition:
    """Build a tag definition from a raw DAM tag record."""
    try:
        tag_id = int(raw["id"])  # type: ignore[call-overload]
        guid = str(raw["guid"])
        name = str(raw["name"])
    except (KeyError, TypeError, ValueError) as exc:
        raise RemoteError("DAM getTags returned a malformed tag") from exc
    if not guid or not name.strip():
        raise RemoteError("DAM getTags returned a malformed tag")
    max_hierarchy = raw.get("maxHierarchy")
    return RemoteTagDefinition(
        id=tag_id,
        guid=guid,
        name=name,
        is_multi_value=bool(raw.get("isMultiplyValues", False)),
        is_hierarchical=isinstance(max_hierarchy, int) and max_hierarchy > 1,
        allows_assignment=bool(raw.get("isAllowAssign", False))
        and not bool(raw.get("readOnly", False)),
    )
