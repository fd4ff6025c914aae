"""Domain models for tag assignment runs."""

from dataclasses import dataclass, field
from enum import Enum


class AssignmentState(str, Enum):
    """Lifecycle of a single assignment call."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATING = "AUTHENTICATING"
    RESOLVING = "RESOLVING"
    ASSIGNING = "ASSIGNING"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class TagRequest:
    """Semantic tag the caller wants on a media item."""

    name: str
    value: str


@dataclass(frozen=True)
class AssignmentSummary:
    """Counts of what an assignment call achieved."""

    assigned_count: int
    skipped_names: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AssignmentResult:
    """Outcome returned to callers of the orchestrator."""

    media_id: str
    success: bool
    state: AssignmentState
    summary: AssignmentSummary
    error: str | None = None
