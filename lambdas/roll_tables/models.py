"""Pydantic models for roll table API requests, plus write-time checks."""

from pydantic import Field, field_validator, model_validator

from shared.dice import MAX_DIE_SIZE, MIN_DIE_SIZE
from shared.exceptions import ValidationError
from shared.models import MAX_TABLE_DATA_BYTES, CamelModel, FillStrategy, RollTableData

MAX_NAME_LENGTH = 100


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name must not be blank")
    if len(v) > MAX_NAME_LENGTH:
        raise ValueError(f"Name must be at most {MAX_NAME_LENGTH} characters")
    return v


class RollTableCreateRequest(CamelModel):
    """Request body for creating a roll table."""

    name: str
    die_size: int = Field(..., ge=MIN_DIE_SIZE, le=MAX_DIE_SIZE)
    table_data: RollTableData
    source_list_id: str | None = None
    is_public: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Trim and length-check the table name."""
        return _clean_name(v)


class RollTableUpdateRequest(CamelModel):
    """Request body for updating a roll table. Each field replaces the stored one."""

    name: str | None = None
    die_size: int | None = Field(default=None, ge=MIN_DIE_SIZE, le=MAX_DIE_SIZE)
    table_data: RollTableData | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        """Trim and length-check the table name."""
        return None if v is None else _clean_name(v)

    @model_validator(mode="after")
    def validate_has_change(self) -> "RollTableUpdateRequest":
        """Ensure at least one field is being replaced."""
        if self.name is None and self.die_size is None and self.table_data is None:
            raise ValueError("At least one of name, dieSize or tableData must be provided")
        return self


class RollTableDuplicateRequest(CamelModel):
    """Request body for copying a table."""

    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Trim and length-check the table name."""
        return _clean_name(v)


class RollTableGenerateRequest(CamelModel):
    """Request body for generating (not saving) table data.

    Without a die size the smallest common die fitting the items is used.
    With shuffle set the generated assignments are permuted across faces.
    """

    die_size: int | None = Field(default=None, ge=MIN_DIE_SIZE, le=MAX_DIE_SIZE)
    source_items: list[str] = Field(default_factory=list)
    fill_strategy: FillStrategy = FillStrategy.AUTO
    allow_duplicates: bool = False
    balanced: bool = False
    shuffle: bool = False


def validate_table_data(die_size: int, table_data: RollTableData) -> None:
    """Check rows against the die before anything is written.

    Every row's face must lie within 1..die_size and appear once. A row
    may reference an item or carry custom text, not both. Missing faces
    are allowed. The rows must fit the storage limit.

    Args:
        die_size: Number of faces on the table's die
        table_data: Rows and metadata to check

    Raises:
        ValidationError: On the first violated rule
    """
    if die_size < MIN_DIE_SIZE or die_size > MAX_DIE_SIZE:
        raise ValidationError(
            f"dieSize must be between {MIN_DIE_SIZE} and {MAX_DIE_SIZE}", field="dieSize"
        )

    seen: set[int] = set()
    for row in table_data.rolls:
        if row.roll > die_size:
            raise ValidationError(
                f"Roll {row.roll} is outside 1..{die_size}", field="tableData.rolls"
            )
        if row.roll in seen:
            raise ValidationError(f"Duplicate roll number: {row.roll}", field="tableData.rolls")
        seen.add(row.roll)
        if row.has_item and row.has_custom_text:
            raise ValidationError(
                f"Roll {row.roll} cannot have both magicItemId and customText",
                field="tableData.rolls",
            )

    if table_data.stored_size() > MAX_TABLE_DATA_BYTES:
        raise ValidationError(
            f"Table rows exceed the {MAX_TABLE_DATA_BYTES // 1_000_000} MB storage limit",
            field="tableData.rolls",
        )
