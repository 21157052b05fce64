"""Roll resolution: one die draw mapped to a table outcome.

Resolution only reads the table. Item references are looked up in the
catalog at roll time; a slug that no longer resolves yields an
"unavailable" outcome instead of an error.
"""

from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel

from shared.dice import roll_die
from shared.models import MagicItem, RollTable

UNAVAILABLE_TEXT = "Referenced item unavailable"

ItemLookup = Callable[[str], MagicItem | None]


class OutcomeKind(str, Enum):
    """What a rolled face produced."""

    ITEM = "item"
    UNAVAILABLE = "unavailable"
    CUSTOM = "custom"
    EMPTY = "empty"


class RollOutcome(BaseModel):
    """Result of resolving one face of a table."""

    roll: int
    kind: OutcomeKind
    magic_item_id: str | None = None
    item: MagicItem | None = None
    text: str | None = None

    @property
    def is_empty(self) -> bool:
        """Face produced nothing."""
        return self.kind == OutcomeKind.EMPTY

    def to_api(self) -> dict[str, Any]:
        """Serialize for the API (camelCase, unset fields omitted)."""
        data: dict[str, Any] = {"roll": self.roll, "kind": self.kind.value}
        if self.magic_item_id is not None:
            data["magicItemId"] = self.magic_item_id
        if self.item is not None:
            data["item"] = self.item.model_dump(mode="json")
        if self.text is not None:
            data["text"] = self.text
        return data


def resolve_face(table: RollTable, face: int, item_lookup: ItemLookup) -> RollOutcome:
    """Resolve a specific face of a table.

    An item reference takes precedence over custom text on the same row.

    Args:
        table: Table to read
        face: Die face, 1..die_size
        item_lookup: Slug to catalog item, None when unknown

    Returns:
        The face's outcome
    """
    row = table.table_data.row_for(face)
    if row is None:
        return RollOutcome(roll=face, kind=OutcomeKind.EMPTY)

    if row.has_item:
        item = item_lookup(row.magic_item_id)
        if item is None:
            return RollOutcome(
                roll=face,
                kind=OutcomeKind.UNAVAILABLE,
                magic_item_id=row.magic_item_id,
                text=UNAVAILABLE_TEXT,
            )
        return RollOutcome(
            roll=face, kind=OutcomeKind.ITEM, magic_item_id=row.magic_item_id, item=item
        )

    if row.has_custom_text:
        return RollOutcome(roll=face, kind=OutcomeKind.CUSTOM, text=row.custom_text)

    return RollOutcome(roll=face, kind=OutcomeKind.EMPTY)


def resolve_roll(table: RollTable, item_lookup: ItemLookup) -> RollOutcome:
    """Roll the table's die and resolve the face.

    Every face in 1..die_size is equally likely, including faces with no
    row.
    """
    return resolve_face(table, roll_die(table.die_size), item_lookup)
