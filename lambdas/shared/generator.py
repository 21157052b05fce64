"""Roll table generation, analysis and export.

Generation produces one row per face. Stored tables may be sparse;
check_table reports completeness without rejecting anything.
"""

import csv
import io
import random
from collections import Counter
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

from .models import FillStrategy, RollTableData, RollTableMetadata, RollTableRow
from .utils import utc_now

MANUAL_PLACEHOLDER = "Enter custom text or select an item"
ROUND_ROBIN_LIMIT = 6
SPREAD_MULTIPLIER = 31
UNEVEN_SPREAD = 2


class ExportFormat(str, Enum):
    """Supported export formats."""

    CSV = "csv"
    JSON = "json"
    MARKDOWN = "markdown"


EXPORT_CONTENT_TYPES = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.JSON: "application/json",
    ExportFormat.MARKDOWN: "text/markdown",
}


def _select_item(roll: int, available: Sequence[str]) -> str:
    if len(available) == 1:
        return available[0]
    if len(available) <= ROUND_ROBIN_LIMIT:
        return available[(roll - 1) % len(available)]
    # Deterministic spread for larger pools
    return available[(roll * SPREAD_MULTIPLIER) % len(available)]


def _auto_row(
    roll: int, source_items: Sequence[str], allow_duplicates: bool, used: set[str]
) -> RollTableRow:
    if allow_duplicates:
        available = list(source_items)
    else:
        available = [item for item in source_items if item not in used]
    if not available:
        return RollTableRow(roll=roll)
    item = _select_item(roll, available)
    used.add(item)
    return RollTableRow(roll=roll, magic_item_id=item)


def generate_roll_table(
    die_size: int,
    source_items: Sequence[str],
    fill_strategy: FillStrategy,
    allow_duplicates: bool = False,
) -> RollTableData:
    """Generate a full table with one row per face.

    Args:
        die_size: Number of faces
        source_items: Candidate item slugs (auto strategy)
        fill_strategy: auto assigns items, manual adds placeholder text,
            blank leaves rows empty
        allow_duplicates: Let the same item fill several faces

    Returns:
        Generated table data
    """
    fill_strategy = FillStrategy(fill_strategy)
    rolls: list[RollTableRow] = []
    used: set[str] = set()

    for roll in range(1, die_size + 1):
        if fill_strategy == FillStrategy.AUTO:
            rolls.append(_auto_row(roll, source_items, allow_duplicates, used))
        elif fill_strategy == FillStrategy.MANUAL:
            rolls.append(RollTableRow(roll=roll, custom_text=MANUAL_PLACEHOLDER))
        else:
            rolls.append(RollTableRow(roll=roll))

    return RollTableData(
        rolls=rolls,
        metadata=RollTableMetadata(generated_at=utc_now(), fill_strategy=fill_strategy),
    )


def _refresh_metadata(data: RollTableData) -> RollTableMetadata:
    return data.metadata.model_copy(update={"generated_at": utc_now()})


def optimize_distribution(data: RollTableData, source_items: Sequence[str]) -> RollTableData:
    """Fill empty rows with unused, then under-represented, items.

    Args:
        data: Table to improve
        source_items: Candidate item slugs

    Returns:
        New table data; the input is not modified
    """
    counts = Counter(row.magic_item_id for row in data.rolls if row.has_item)
    empty_positions = [i for i, row in enumerate(data.rolls) if row.is_empty]
    expected = len(data.rolls) // len(source_items) if source_items else 0

    unused = [item for item in source_items if item not in counts]
    under = [item for item in source_items if counts.get(item, 0) < expected]
    fillers = unused + under

    rolls = list(data.rolls)
    for position, item in zip(empty_positions, fillers):
        rolls[position] = rolls[position].model_copy(update={"magic_item_id": item})

    return RollTableData(rolls=rolls, metadata=_refresh_metadata(data))


def shuffle_roll_table(data: RollTableData, rng: random.Random | None = None) -> RollTableData:
    """Shuffle assignments across faces, keeping face numbers in place.

    Args:
        data: Table to shuffle
        rng: Optional random source (defaults to the module source)

    Returns:
        New table data
    """
    assignments = [(row.magic_item_id, row.custom_text) for row in data.rolls]
    (rng or random).shuffle(assignments)
    rolls = [
        RollTableRow(roll=row.roll, magic_item_id=item, custom_text=text)
        for row, (item, text) in zip(data.rolls, assignments)
    ]
    return RollTableData(rolls=rolls, metadata=_refresh_metadata(data))


def create_balanced_roll_table(source_items: Sequence[str], die_size: int) -> RollTableData:
    """Auto-fill a table, repeating items when there are fewer than faces."""
    data = generate_roll_table(
        die_size,
        source_items,
        FillStrategy.AUTO,
        allow_duplicates=len(source_items) < die_size,
    )
    return optimize_distribution(data, source_items)


def table_stats(data: RollTableData) -> dict[str, Any]:
    """Summarize how a table is populated.

    Args:
        data: Table data

    Returns:
        Row counts, item distribution and completion percentage
    """
    total = len(data.rolls)
    filled = sum(1 for row in data.rolls if not row.is_empty)
    distribution = Counter(row.magic_item_id for row in data.rolls if row.has_item)
    return {
        "total_rolls": total,
        "filled_rolls": filled,
        "empty_rolls": total - filled,
        "unique_items": len(distribution),
        "item_distribution": dict(distribution),
        "completion_percentage": round(filled / total * 100, 2) if total else 0.0,
    }


def check_table(data: RollTableData, die_size: int) -> dict[str, Any]:
    """Check whether a table covers every face exactly once.

    Args:
        data: Table data
        die_size: Number of faces

    Returns:
        {"is_valid", "errors", "warnings"}
    """
    errors: list[str] = []
    warnings: list[str] = []

    faces = Counter(row.roll for row in data.rolls)
    if len(data.rolls) != die_size:
        errors.append(f"Expected {die_size} rolls, got {len(data.rolls)}")
    for face in range(1, die_size + 1):
        if face not in faces:
            errors.append(f"Missing roll: {face}")
    for face, count in sorted(faces.items()):
        if count > 1:
            errors.append(f"Duplicate roll number: {face} (appears {count} times)")

    empty = sum(1 for row in data.rolls if row.is_empty)
    if empty:
        warnings.append(f"{empty} empty roll entries")

    distribution = Counter(row.magic_item_id for row in data.rolls if row.has_item)
    if distribution and max(distribution.values()) - min(distribution.values()) > UNEVEN_SPREAD:
        warnings.append("Uneven item distribution detected")

    return {"is_valid": not errors, "errors": errors, "warnings": warnings}


def export_roll_table(
    data: RollTableData,
    export_format: ExportFormat | str,
    table_name: str | None = None,
    item_names: Mapping[str, str] | None = None,
) -> str:
    """Render a table as CSV, JSON or Markdown.

    Args:
        data: Table data
        export_format: csv, json or markdown
        table_name: Optional Markdown heading
        item_names: Optional slug to display-name map for Markdown

    Returns:
        Rendered text

    Raises:
        ValueError: If the format is unsupported
    """
    export_format = ExportFormat(export_format)
    if export_format == ExportFormat.JSON:
        return data.model_dump_json(by_alias=True, indent=2)

    if export_format == ExportFormat.CSV:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(["Roll", "Item ID", "Custom Text"])
        for row in data.rolls:
            writer.writerow([row.roll, row.magic_item_id or "", row.custom_text or ""])
        return buffer.getvalue().rstrip("\n")

    names = item_names or {}
    lines = ["| Roll | Item | Notes |", "|------|------|-------|"]
    for row in data.rolls:
        item = names.get(row.magic_item_id, row.magic_item_id) if row.magic_item_id else ""
        lines.append(f"| {row.roll} | {item} | {row.custom_text or ''} |")
    title = f"# {table_name}\n\n" if table_name else ""
    return title + "\n".join(lines)
