"""Pydantic models for magic items and roll tables."""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ROWS_SK_PREFIX = "ROWS#"
MAX_CUSTOM_TEXT_LENGTH = 1000
MAX_ITEM_REFERENCE_LENGTH = 200
# DynamoDB caps an item at 400 KB and a write transaction at 4 MB
MAX_CHUNK_BYTES = 300_000
MAX_TABLE_DATA_BYTES = 3_000_000


def row_chunk_sk(index: int) -> str:
    """Sort key of the n-th row chunk stored under a table."""
    return f"{ROWS_SK_PREFIX}{index:04d}"


class MagicItemType(str, Enum):
    """Item type facet. Declaration order is the inference order."""

    WEAPON = "weapon"
    ARMOR = "armor"
    ACCESSORY = "accessory"
    CONSUMABLE = "consumable"
    ARTIFACT = "artifact"
    UNKNOWN = "unknown"


class MagicItemRarity(str, Enum):
    """Item rarity facet. Declaration order is the inference order."""

    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    VERY_RARE = "very-rare"
    LEGENDARY = "legendary"
    ARTIFACT = "artifact"
    UNKNOWN = "unknown"


class FillStrategy(str, Enum):
    """How the rows of a roll table were originally populated."""

    AUTO = "auto"
    MANUAL = "manual"
    BLANK = "blank"


class MagicItemTrait(BaseModel):
    """Named trait attached to a magic item."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""


class MagicItem(BaseModel):
    """Catalog entry with derived type and rarity facets.

    Instances are frozen: the catalog is shared process-wide after load.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    slug: str = Field(..., min_length=1)
    description: str = ""
    traits: tuple[MagicItemTrait, ...] = ()
    type: MagicItemType = MagicItemType.UNKNOWN
    rarity: MagicItemRarity = MagicItemRarity.UNKNOWN


class CamelModel(BaseModel):
    """Base for API-facing models: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RollTableRow(CamelModel):
    """One populated die face."""

    roll: int = Field(..., ge=1)
    magic_item_id: str | None = Field(default=None, max_length=MAX_ITEM_REFERENCE_LENGTH)
    custom_text: str | None = Field(default=None, max_length=MAX_CUSTOM_TEXT_LENGTH)

    @field_validator("magic_item_id")
    @classmethod
    def blank_item_is_none(cls, v: str | None) -> str | None:
        """Treat an empty slug reference as no reference."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def has_item(self) -> bool:
        """Row references a catalog item."""
        return self.magic_item_id is not None

    @property
    def has_custom_text(self) -> bool:
        """Row carries meaningful (non-blank) custom text."""
        return bool(self.custom_text and self.custom_text.strip())

    @property
    def is_empty(self) -> bool:
        """Row is a blank placeholder."""
        return not self.has_item and not self.has_custom_text


class RollTableMetadata(CamelModel):
    """Informational metadata; never consulted when resolving a roll."""

    generated_at: str = Field(..., min_length=1)
    source_list_name: str | None = None
    fill_strategy: FillStrategy


class RollTableData(CamelModel):
    """Sparse die-face assignments plus metadata."""

    rolls: list[RollTableRow] = Field(default_factory=list)
    metadata: RollTableMetadata

    def faces(self) -> dict[int, RollTableRow]:
        """Map of face number to row. Absent faces are empty results.

        If a legacy document repeats a face, the first row wins.
        """
        faces: dict[int, RollTableRow] = {}
        for row in self.rolls:
            faces.setdefault(row.roll, row)
        return faces

    def row_for(self, face: int) -> RollTableRow | None:
        """Get the row for a die face, or None when the face is empty."""
        return self.faces().get(face)

    def _stored_rows(self) -> list[tuple[dict[str, Any], int]]:
        rows = []
        for row in self.rolls:
            dumped = row.model_dump(mode="json", exclude_none=True)
            rows.append((dumped, len(json.dumps(dumped).encode("utf-8"))))
        return rows

    def stored_size(self) -> int:
        """Approximate number of bytes the rows occupy in storage."""
        return sum(size for _, size in self._stored_rows())

    def row_chunks(self) -> list[list[dict[str, Any]]]:
        """Split rows, in order, into groups small enough for one stored item."""
        chunks: list[list[dict[str, Any]]] = []
        current: list[dict[str, Any]] = []
        current_size = 0
        for dumped, size in self._stored_rows():
            if current and current_size + size > MAX_CHUNK_BYTES:
                chunks.append(current)
                current, current_size = [], 0
            current.append(dumped)
            current_size += size
        if current:
            chunks.append(current)
        return chunks


class RollTable(CamelModel):
    """Roll table owned by a user (or anonymous when user_id is None)."""

    id: str
    user_id: str | None = None
    source_list_id: str | None = None
    name: str = Field(..., min_length=1, max_length=100)
    die_size: int = Field(..., ge=1, le=10000)
    share_token: str = Field(..., min_length=1)
    is_public: bool = False
    table_data: RollTableData
    created_at: str
    updated_at: str | None = None
    version: int = Field(default=0, ge=0, exclude=True)

    def is_owned_by(self, user_id: str | None) -> bool:
        """Check whether the given identity owns this table.

        Anonymous tables have no owner, so nobody matches.
        """
        return self.user_id is not None and user_id is not None and self.user_id == user_id

    def to_db_keys(self) -> tuple[str, str]:
        """Get DynamoDB PK and SK for this table.

        Returns:
            Tuple of (PK, SK)
        """
        return f"TABLE#{self.id}", "META"

    def to_db_items(self) -> list[tuple[str, str, dict[str, Any]]]:
        """Convert to DynamoDB items: the META item then its row chunks.

        Rows live in ``ROWS#nnnn`` items under the table's partition so a
        table of any valid size fits the per-item limit. Owned tables are
        projected into GSI1 so they can be listed per user.

        Returns:
            List of (PK, SK, data dict) tuples
        """
        pk, sk = self.to_db_keys()
        chunks = self.table_data.row_chunks()

        data = self.model_dump(mode="json", exclude={"table_data": {"rolls"}})
        data["version"] = self.version
        data["row_chunks"] = len(chunks)
        if self.user_id:
            data["GSI1PK"] = f"USER#{self.user_id}"
            data["GSI1SK"] = f"TABLE#{self.created_at}#{self.id}"

        items = [(pk, sk, data)]
        items.extend((pk, row_chunk_sk(n), {"rolls": rows}) for n, rows in enumerate(chunks))
        return items

    @classmethod
    def from_db_items(cls, items: list[dict[str, Any]]) -> "RollTable":
        """Rebuild a table from its partition (META plus row chunks in SK order).

        Args:
            items: Every item under the table's PK

        Returns:
            RollTable instance
        """
        meta = next(item for item in items if item["SK"] == "META")
        rolls = [
            row
            for item in items
            if item["SK"].startswith(ROWS_SK_PREFIX)
            for row in item.get("rolls", [])
        ]
        return cls.from_db_item(meta, rolls)

    @classmethod
    def from_db_item(cls, item: dict[str, Any], rolls: list[Any] | None = None) -> "RollTable":
        """Create RollTable from its META item.

        Args:
            item: DynamoDB item dict
            rolls: Rows loaded from the chunk items; items that still
                embed their rows are read as is

        Returns:
            RollTable instance
        """
        table_data = dict(item["table_data"])
        if rolls is not None:
            table_data["rolls"] = rolls
        return cls(
            id=item["id"],
            user_id=item.get("user_id"),
            source_list_id=item.get("source_list_id"),
            name=item["name"],
            die_size=item["die_size"],
            share_token=item["share_token"],
            is_public=item.get("is_public", False),
            table_data=RollTableData.model_validate(table_data),
            created_at=item["created_at"],
            updated_at=item.get("updated_at"),
            version=item.get("version", 0),
        )

    def to_api(self) -> dict[str, Any]:
        """Serialize for the owner (camelCase)."""
        return self.model_dump(mode="json", by_alias=True)

    def to_shared_view(self) -> "SharedRollTable":
        """Project the fields a share-token holder may see.

        The source list name belongs to the owner and is dropped.
        """
        metadata = self.table_data.metadata.model_copy(update={"source_list_name": None})
        return SharedRollTable(
            id=self.id,
            name=self.name,
            die_size=self.die_size,
            share_token=self.share_token,
            is_public=self.is_public,
            table_data=RollTableData(rolls=self.table_data.rolls, metadata=metadata),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class SharedRollTable(CamelModel):
    """Read-only table view without ownership fields (user, source list)."""

    id: str
    name: str
    die_size: int
    share_token: str
    is_public: bool
    table_data: RollTableData
    created_at: str
    updated_at: str | None = None

    def to_api(self) -> dict[str, Any]:
        """Serialize for unauthenticated readers (camelCase)."""
        return self.model_dump(mode="json", by_alias=True)
