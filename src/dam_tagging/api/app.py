"""FastAPI application factory."""

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import Depends, FastAPI, HTTPException, Request, status
from openai import OpenAIError
from pydantic import ValidationError

from dam_tagging.api.admin import require_api_token
from dam_tagging.api.admin import router as admin_router
from dam_tagging.api.models import AnalyzeImageRequest, AssignTagsRequest
from dam_tagging.app_logging import configure_logging
from dam_tagging.containers import AppContainer
from dam_tagging.domain.assignment import AssignmentResult, TagRequest
from dam_tagging.domain.media import DomainImage
from dam_tagging.errors import DamError

# JSON decoding errors from the analysis client are ValueErrors.
_ANALYSIS_ERRORS = (DamError, OpenAIError, ValidationError, ValueError, RuntimeError)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/media", dependencies=[Depends(require_api_token)])
    async def search_media(
        request: Request,
        query: str | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> dict[str, object]:
        """Search DAM media items."""
        state_container: AppContainer = request.app.state.container
        try:
            result = await state_container.media_search_service.search(
                query, page=page, page_size=page_size
            )
        except DamError as exc:
            logger.error("Media search failed: query=%s error=%s", query, exc)
            raise _bad_gateway() from exc
        return {
            "items": [_image_payload(image) for image in result.items],
            "total_count": result.total_count,
            "page": result.page,
            "page_size": result.page_size,
        }

    @app.get("/media/{media_id}", dependencies=[Depends(require_api_token)])
    async def get_media(media_id: str, request: Request) -> dict[str, object]:
        """Return a single DAM media item."""
        state_container: AppContainer = request.app.state.container
        try:
            image = await state_container.media_search_service.get_media(media_id)
        except DamError as exc:
            logger.error("Media lookup failed: media_id=%s error=%s", media_id, exc)
            raise _bad_gateway() from exc
        if image is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return _image_payload(image)

    @app.post("/media/{media_id}/tags", dependencies=[Depends(require_api_token)])
    async def assign_tags(
        media_id: str, body: AssignTagsRequest, request: Request
    ) -> dict[str, object]:
        """Assign tags to a DAM media item."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.orchestrator.assign_tags(
            media_id,
            [TagRequest(name=tag.name, value=tag.value) for tag in body.tags],
        )
        return _assignment_payload(result)

    @app.post("/media/{media_id}/analyze", dependencies=[Depends(require_api_token)])
    async def analyze_media(
        media_id: str, body: AnalyzeImageRequest, request: Request
    ) -> dict[str, object]:
        """Analyze an image and optionally assign its tags to the media item."""
        state_container: AppContainer = request.app.state.container
        try:
            image_bytes = base64.b64decode(body.image_base64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(
                status_code=422,
                detail="image_base64 is not valid base64",
            ) from exc
        try:
            outcome = await state_container.image_tagging_service.tag_media(
                media_id, image_bytes, assign=body.assign
            )
        except _ANALYSIS_ERRORS as exc:
            logger.exception("Image analysis failed: media_id=%s", media_id)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Image analysis failed",
            ) from exc
        return {
            "description": outcome.analysis.description,
            "tags": outcome.analysis.tags,
            "assignment": (
                _assignment_payload(outcome.assignment)
                if outcome.assignment is not None
                else None
            ),
        }

    return app


def _bad_gateway() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY, detail="DAM request failed"
    )


def _image_payload(image: DomainImage) -> dict[str, object]:
    payload = asdict(image)
    payload["created_at"] = image.created_at.isoformat()
    payload["modified_at"] = image.modified_at.isoformat()
    payload["tags"] = [asdict(tag) for tag in image.tags]
    return payload


def _assignment_payload(result: AssignmentResult) -> dict[str, object]:
    return {
        "media_id": result.media_id,
        "success": result.success,
        "state": result.state.value,
        "assigned_count": result.summary.assigned_count,
        "skipped_names": result.summary.skipped_names,
        "error": result.error,
    }
