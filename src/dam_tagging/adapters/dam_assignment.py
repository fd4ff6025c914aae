"""Assignment of resolved tag values to DAM media items."""

from dataclasses import dataclass
from typing import Protocol

from dam_tagging.adapters.dam_client import HttpxDamClient, read_payload
from dam_tagging.domain.taxonomy import TagAssignment


class TagAssignmentGateway(Protocol):
    """Interface for the DAM call that attaches tag values to a media item."""

    async def assign(
        self, credential: str, media_id: str, assignments: list[TagAssignment]
    ) -> None:
        """Attach every assignment to the media item in one call."""


@dataclass
class HttpxBatchChangeGateway(TagAssignmentGateway):
    """Gateway posting an item-data batch change to the DAM.

    The payload mirrors Daminion's `ItemData/BatchChange` contract; confirm the
    path and body against the target server before enabling it in production.
    """

    dam_client: HttpxDamClient
    path: str = "/api/ItemData/BatchChange"

    async def assign(
        self, credential: str, media_id: str, assignments: list[TagAssignment]
    ) -> None:
        """Send the batch change for a single media item."""
        payload: dict[str, object] = {
            "ids": [_item_id(media_id)],
            "data": [
                {"guid": item.tag_guid, "id": item.tag_value_id, "remove": False}
                for item in assignments
            ],
            "delete": False,
        }
        response = await self.dam_client.send(
            "POST",
            self.path,
            credential=credential,
            action="assign",
            json=payload,
        )
        if response.content:
            read_payload(response, "assign")


def _item_id(media_id: str) -> int | str:
    """Send numeric ids as integers; anything else is passed through."""
    if media_id.isascii() and media_id.isdecimal():
        return int(media_id)
    return media_id
