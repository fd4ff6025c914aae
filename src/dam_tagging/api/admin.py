"""Token auth and taxonomy admin endpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from dam_tagging.errors import DamError

if TYPE_CHECKING:
    from dam_tagging.containers import AppContainer
    from dam_tagging.services.taxonomy import TaxonomySnapshot

_logger = logging.getLogger(__name__)


def _get_api_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.api_token


async def require_api_token(
    x_api_token: str | None = Header(default=None),
    api_token: str = Depends(_get_api_token),
) -> None:
    """Ensure requests include a valid API token."""
    if not x_api_token or x_api_token != api_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_api_token)]
)


@router.get("/taxonomy")
async def taxonomy(request: Request) -> dict[str, object]:
    """Return the currently cached taxonomy."""
    container: AppContainer = request.app.state.container
    return _snapshot_payload(container.taxonomy_cache.snapshot())


@router.post("/taxonomy/refresh")
async def refresh_taxonomy(request: Request) -> dict[str, object]:
    """Force a taxonomy refresh from the DAM."""
    container: AppContainer = request.app.state.container
    try:
        snapshot = await container.taxonomy_cache.refresh()
    except DamError as exc:
        _logger.error("Taxonomy refresh failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="DAM request failed"
        ) from exc
    return _snapshot_payload(snapshot)


def _snapshot_payload(snapshot: TaxonomySnapshot) -> dict[str, object]:
    return {
        "epoch": snapshot.epoch,
        "refreshed_at": (
            snapshot.refreshed_at.isoformat() if snapshot.refreshed_at else None
        ),
        "tags": [
            {
                "id": tag.id,
                "guid": tag.guid,
                "name": tag.name,
                "is_multi_value": tag.is_multi_value,
                "is_hierarchical": tag.is_hierarchical,
                "allows_assignment": tag.allows_assignment,
            }
            for tag in sorted(snapshot.tags.values(), key=lambda tag: tag.name.lower())
        ],
    }
