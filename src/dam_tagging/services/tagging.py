"""Analyze an image and push its keywords to the DAM."""

import asyncio
import logging
from dataclasses import dataclass

from dam_tagging.domain.analysis import ImageAnalysis
from dam_tagging.domain.assignment import AssignmentResult, TagRequest
from dam_tagging.services.analysis import ImageAnalysisService
from dam_tagging.services.assignment import TagAssignmentOrchestrator

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaggingOutcome:
    """Analysis of an image plus the assignment made from it, if any."""

    analysis: ImageAnalysis
    assignment: AssignmentResult | None


@dataclass
class ImageTaggingService:
    """Pipeline from image bytes to tags on a DAM media item."""

    analysis_service: ImageAnalysisService
    orchestrator: TagAssignmentOrchestrator
    keyword_tag: str | None = "Keywords"

    def tag_requests(self, analysis: ImageAnalysis) -> list[TagRequest]:
        """Turn analysis tags into requests under the keyword tag."""
        if self.keyword_tag:
            return [
                TagRequest(name=self.keyword_tag, value=tag) for tag in analysis.tags
            ]
        return [TagRequest(name=tag, value=tag) for tag in analysis.tags]

    async def tag_media(
        self,
        media_id: str,
        image_bytes: bytes,
        *,
        assign: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> TaggingOutcome:
        """Analyze an image and optionally assign its tags to `media_id`."""
        analysis = await self.analysis_service.analyze(image_bytes)
        _logger.info(
            "Analyzed image for asset %s: %s tags", media_id, len(analysis.tags)
        )
        if not assign:
            return TaggingOutcome(analysis=analysis, assignment=None)
        assignment = await self.orchestrator.assign_tags(
            media_id, self.tag_requests(analysis), cancel_event=cancel_event
        )
        return TaggingOutcome(analysis=analysis, assignment=assignment)
