"""Ensure-exists protocol for DAM tags."""

import asyncio
import logging
from dataclasses import dataclass, field

from dam_tagging.adapters.dam_client import DamClient
from dam_tagging.domain.taxonomy import RemoteTagDefinition
from dam_tagging.errors import RemoteError, TagCreationFailed
from dam_tagging.services.sessions import SessionManager
from dam_tagging.services.taxonomy import TaxonomyCache

_logger = logging.getLogger(__name__)


@dataclass
class TagResolver:
    """Resolves tag names to definitions, creating missing tags remotely."""

    session: SessionManager
    client: DamClient
    cache: TaxonomyCache
    _create_lock: asyncio.Lock = field(
        default_factory=asyncio.Lock, init=False, repr=False
    )

    async def ensure_tag_exists(
        self, name: str, cancel_event: asyncio.Event | None = None
    ) -> RemoteTagDefinition:
        """Return the definition for `name`, creating the tag if needed.

        Escalates from the cached snapshot, to a refreshed snapshot, to a
        remote create followed by another refresh.
        """
        cached = self.cache.lookup(name)
        if cached is not None:
            return cached

        async with self._create_lock:
            cached = self.cache.lookup(name)
            if cached is not None:
                return cached

            await self.cache.refresh(cancel_event)
            cached = self.cache.lookup(name)
            if cached is not None:
                _logger.info("Tag %s found after cache refresh", name)
                return cached

            return await self._create(name, cancel_event)

    async def _create(
        self, name: str, cancel_event: asyncio.Event | None
    ) -> RemoteTagDefinition:
        creation_error: RemoteError | None = None
        try:
            await self.session.call(
                lambda credential: self.client.create_custom_tag(credential, name),
                action="createCustomTag",
                cancel_event=cancel_event,
            )
        except RemoteError as exc:
            # A concurrent creator may have won; the refresh below decides.
            creation_error = exc
            _logger.warning(
                "Create custom tag %s failed: status=%s error_code=%s",
                name,
                exc.remote_status,
                exc.error_code,
            )

        try:
            await self.cache.refresh(cancel_event)
        except RemoteError as exc:
            raise TagCreationFailed(name, remote_status=exc.remote_status) from exc

        created = self.cache.lookup(name)
        if created is None:
            status = creation_error.remote_status if creation_error else None
            raise TagCreationFailed(name, remote_status=status) from creation_error
        if creation_error is not None:
            _logger.info("Tag %s already existed remotely; using it", name)
        else:
            _logger.info("Created custom tag: %s", name)
        return created
