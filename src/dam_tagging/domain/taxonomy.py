"""Domain models for the remote DAM taxonomy."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RemoteTagDefinition:
    """A tag (metadata field) defined in the DAM taxonomy."""

    id: int
    guid: str
    name: str
    is_multi_value: bool
    is_hierarchical: bool
    allows_assignment: bool


@dataclass(frozen=True)
class RemoteTagValue:
    """A concrete value stored under a DAM tag."""

    id: int
    tag_id: int
    text: str
    raw_value: str
    has_children: bool


@dataclass(frozen=True)
class TagAssignment:
    """Resolved tag/value pair ready to be assigned to a media item."""

    tag_id: int
    tag_guid: str
    tag_value_id: int
    tag_name: str
    value: str
