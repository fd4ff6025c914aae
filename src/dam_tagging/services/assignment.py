"""Orchestration of semantic tags into a DAM tag assignment."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from dam_tagging.adapters.dam_assignment import TagAssignmentGateway
from dam_tagging.domain.assignment import (
    AssignmentResult,
    AssignmentState,
    AssignmentSummary,
    TagRequest,
)
from dam_tagging.domain.taxonomy import TagAssignment
from dam_tagging.errors import (
    AssignmentFailed,
    AuthError,
    OperationCancelled,
    RemoteError,
)
from dam_tagging.services.sessions import SessionManager
from dam_tagging.services.tag_values import TagValueResolver
from dam_tagging.services.tags import TagResolver

_logger = logging.getLogger(__name__)


@dataclass
class _AssignmentRun:
    """State carried through one `assign_tags` call."""

    media_id: str
    total: int
    state: AssignmentState = AssignmentState.UNAUTHENTICATED
    position: int = 0
    assignments: list[TagAssignment] = field(default_factory=list)
    skipped_names: list[str] = field(default_factory=list)

    def advance(self, state: AssignmentState) -> None:
        self.state = state
        _logger.debug(
            "Assignment %s: state=%s (%s/%s)",
            self.media_id,
            state.value,
            self.position,
            self.total,
        )

    def add(self, assignment: TagAssignment) -> None:
        for existing in self.assignments:
            if (existing.tag_id, existing.tag_value_id) == (
                assignment.tag_id,
                assignment.tag_value_id,
            ):
                return
        self.assignments.append(assignment)

    def skip(self, name: str) -> None:
        self.skipped_names.append(name)

    def done(self) -> AssignmentResult:
        self.advance(AssignmentState.DONE)
        return AssignmentResult(
            media_id=self.media_id,
            success=True,
            state=self.state,
            summary=AssignmentSummary(
                assigned_count=len(self.assignments),
                skipped_names=list(self.skipped_names),
            ),
        )

    def fail(self, error: str) -> AssignmentResult:
        self.advance(AssignmentState.FAILED)
        return AssignmentResult(
            media_id=self.media_id,
            success=False,
            state=self.state,
            summary=AssignmentSummary(
                assigned_count=0, skipped_names=list(self.skipped_names)
            ),
            error=error,
        )


@dataclass
class TagAssignmentOrchestrator:
    """Resolves semantic tags against the taxonomy and assigns them."""

    session: SessionManager
    tag_resolver: TagResolver
    value_resolver: TagValueResolver
    gateway: TagAssignmentGateway

    async def assign_tags(
        self,
        media_id: str,
        tags: Sequence[TagRequest],
        cancel_event: asyncio.Event | None = None,
    ) -> AssignmentResult:
        """Assign `tags` to a media item as a best-effort batch.

        Tags that cannot be resolved are skipped. The call fails when
        authentication fails, nothing resolves, the assignment call fails or
        the caller cancels.
        """
        run = _AssignmentRun(media_id=media_id, total=len(tags))
        try:
            run.advance(AssignmentState.AUTHENTICATING)
            await self.session.ensure_authenticated(cancel_event)
            run.advance(AssignmentState.RESOLVING)
            for tag in tags:
                run.position += 1
                await self._resolve(run, tag, cancel_event)

            if not run.assignments:
                _logger.warning(
                    "No tags were successfully assigned to asset: %s", media_id
                )
                return run.fail("No tags could be resolved")

            run.advance(AssignmentState.ASSIGNING)
            assignments = list(run.assignments)
            await self.session.call(
                lambda credential: self.gateway.assign(
                    credential, media_id, assignments
                ),
                action="assign",
                cancel_event=cancel_event,
            )
        except OperationCancelled:
            _logger.info("Assignment for asset %s cancelled", media_id)
            return run.fail("Operation cancelled")
        except AuthError as exc:
            _logger.error(
                "DAM authentication failed for asset %s: status=%s",
                media_id,
                exc.remote_status,
            )
            return run.fail("DAM authentication failed")
        except RemoteError as exc:
            error = AssignmentFailed(media_id, remote_status=exc.remote_status)
            _logger.error("%s: status=%s", error, exc.remote_status)
            return run.fail(str(error))

        _logger.info(
            "Successfully updated %s tags for asset: %s",
            len(run.assignments),
            media_id,
        )
        return run.done()

    async def _resolve(
        self,
        run: _AssignmentRun,
        tag: TagRequest,
        cancel_event: asyncio.Event | None,
    ) -> None:
        name = tag.name.strip()
        value = tag.value.strip()
        if not name or not value:
            _logger.warning("Skipping blank tag for asset %s", run.media_id)
            run.skip(tag.name)
            return
        try:
            definition = await self.tag_resolver.ensure_tag_exists(
                name, cancel_event=cancel_event
            )
            if not definition.allows_assignment:
                _logger.warning(
                    "Skipping tag %s for asset %s: assignment not allowed",
                    name,
                    run.media_id,
                )
                run.skip(tag.name)
                return
            tag_value = await self.value_resolver.ensure_tag_value_exists(
                definition, value, cancel_event=cancel_event
            )
        except RemoteError as exc:
            _logger.warning(
                "Skipping tag %s for asset %s: %s (status=%s)",
                name,
                run.media_id,
                exc,
                exc.remote_status,
            )
            run.skip(tag.name)
            return
        run.add(
            TagAssignment(
                tag_id=definition.id,
                tag_guid=definition.guid,
                tag_value_id=tag_value.id,
                tag_name=definition.name,
                value=tag_value.text,
            )
        )
