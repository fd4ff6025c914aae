"""Ensure-exists protocol for DAM tag values."""

import asyncio
import logging
from dataclasses import dataclass, field

from dam_tagging.adapters.dam_client import DamClient
from dam_tagging.domain.taxonomy import RemoteTagDefinition, RemoteTagValue
from dam_tagging.errors import RemoteError, TagValueCreationFailed
from dam_tagging.services.sessions import SessionManager

_logger = logging.getLogger(__name__)


@dataclass
class TagValueResolver:
    """Finds or creates a literal value under a resolved tag."""

    session: SessionManager
    client: DamClient
    _locks: dict[tuple[int, str], asyncio.Lock] = field(
        default_factory=dict, init=False, repr=False
    )

    async def ensure_tag_value_exists(
        self,
        tag: RemoteTagDefinition,
        value: str,
        *,
        parent_id: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> RemoteTagValue:
        """Return the value record for `value` under `tag`, creating it if absent.

        When several values share the text, the first one returned by the DAM
        wins. Lookups of the same value under the same tag run one at a time.
        """
        lock = self._locks.setdefault((tag.id, value.strip().lower()), asyncio.Lock())
        async with lock:
            return await self._find_or_create(tag, value, parent_id, cancel_event)

    async def _find_or_create(
        self,
        tag: RemoteTagDefinition,
        value: str,
        parent_id: int | None,
        cancel_event: asyncio.Event | None,
    ) -> RemoteTagValue:
        existing = await self.find_value(tag, value, cancel_event=cancel_event)
        if existing is not None:
            return existing

        try:
            raw = await self.session.call(
                lambda credential: self.client.create_tag_value(
                    credential, tag.guid, value, parent_id
                ),
                action="createValueByGuid",
                cancel_event=cancel_event,
            )
        except RemoteError as exc:
            _logger.warning(
                "Create value %s for tag %s failed: status=%s",
                value,
                tag.name,
                exc.remote_status,
            )
            try:
                existing = await self.find_value(tag, value, cancel_event=cancel_event)
            except RemoteError:
                existing = None
            if existing is not None:
                _logger.info("Value %s for tag %s already existed", value, tag.name)
                return existing
            raise TagValueCreationFailed(
                tag.name, value, remote_status=exc.remote_status
            ) from exc

        created = value_from_payload(raw, tag.id)
        _logger.info("Created value %s for tag %s", value, tag.name)
        return created

    async def find_value(
        self,
        tag: RemoteTagDefinition,
        value: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> RemoteTagValue | None:
        """Return the first value under `tag` whose text matches, ignoring case."""
        raw_values = await self.session.call(
            lambda credential: self.client.get_tag_values(credential, tag.id, value),
            action="getIndexedTagValues",
            cancel_event=cancel_event,
        )
        wanted = value.strip().lower()
        for raw in raw_values:
            candidate = value_from_payload(raw, tag.id)
            if candidate.text.strip().lower() == wanted:
                return candidate
        return None


def value_from_payload(raw: dict[str, object], tag_id: int) -> RemoteTagValue:
    """Build a tag value from a raw DAM value record."""
    try:
        value_id = int(raw["id"])  # type: ignore[call-overload]
        text = str(raw["text"])
    except (KeyError, TypeError, ValueError) as exc:
        raise RemoteError("DAM returned a malformed tag value") from exc
    raw_tag_id = raw.get("tagId")
    raw_value = raw.get("rawValue")
    return RemoteTagValue(
        id=value_id,
        tag_id=raw_tag_id if isinstance(raw_tag_id, int) else tag_id,
        text=text,
        raw_value=raw_value if isinstance(raw_value, str) and raw_value else text,
        has_children=bool(raw.get("hasChilds", False)),
    )
