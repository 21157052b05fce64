"""Catalog seeding CLI.

Reads a JSON array of ``{name, slug, description, traits}`` objects and
either writes the catalog rows to DynamoDB or a normalized JSON file.

Usage:
    magic-items-seed --source magic-items-list.json --table my-table
    magic-items-seed --source magic-items-list.json --format json --output items.json
"""

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

from aws_lambda_powertools import Logger

from shared.catalog import item_keys
from shared.db import DynamoDBClient
from shared.exceptions import MagicItemsError

logger = Logger(service="magic-items-seed")

DEFAULT_SOURCE = "magic-items-list.json"
DEFAULT_OUTPUT = "magic-items.json"


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_items(raw: Any) -> list[dict[str, Any]]:
    """Clean source rows for storage.

    Strings are trimmed and traits default to an empty list. Rows without
    a name or slug are skipped, and only the first row per slug is kept.

    Args:
        raw: Parsed JSON document (must be a list)

    Returns:
        Normalized rows in source order

    Raises:
        ValueError: If the document is not a JSON array
    """
    if not isinstance(raw, list):
        raise ValueError("Source must be a JSON array of magic items")

    items: list[dict[str, Any]] = []
    seen: set[str] = set()
    for position, row in enumerate(raw):
        if not isinstance(row, dict):
            logger.warning("Skipping non-object row", extra={"position": position})
            continue
        name, slug = _text(row.get("name")), _text(row.get("slug"))
        if not name or not slug:
            logger.warning("Skipping row without name or slug", extra={"position": position})
            continue
        if slug in seen:
            logger.warning("Skipping duplicate slug", extra={"slug": slug})
            continue
        seen.add(slug)
        items.append(
            {
                "name": name,
                "slug": slug,
                "description": _text(row.get("description")),
                "traits": [
                    {"name": _text(t.get("name")), "description": _text(t.get("description"))}
                    for t in row.get("traits") or []
                    if isinstance(t, dict)
                ],
            }
        )
    return items


def load_source(path: Path) -> list[dict[str, Any]]:
    """Read and normalize a source file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If it is not a JSON array
    """
    with path.open(encoding="utf-8") as f:
        return normalize_items(json.load(f))


def write_json(items: list[dict[str, Any]], output: Path) -> None:
    """Write normalized items as an indented JSON array."""
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(items, indent=2), encoding="utf-8")
    logger.info("Wrote normalized catalog", extra={"path": str(output), "count": len(items)})


def seed_table(items: list[dict[str, Any]], db: DynamoDBClient) -> int:
    """Write catalog rows with the table's batch writer.

    Returns:
        Number of rows written
    """
    written = db.batch_put([(*item_keys(item["slug"]), item) for item in items])
    logger.info("Seeded catalog", extra={"table": db.table_name, "count": written})
    return written


def build_parser() -> argparse.ArgumentParser:
    """CLI arguments."""
    parser = argparse.ArgumentParser(description="Seed the magic item catalog.")
    parser.add_argument("--source", type=Path, default=Path(DEFAULT_SOURCE))
    parser.add_argument("--format", choices=("db", "json"), default="db")
    parser.add_argument("--table", default=None, help="DynamoDB table (default: $TABLE_NAME)")
    parser.add_argument("--output", type=Path, default=Path(DEFAULT_OUTPUT))
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point.

    Returns:
        0 on success, 1 if the source or target is unusable
    """
    args = build_parser().parse_args(argv)

    try:
        items = load_source(args.source)
    except (OSError, ValueError) as e:
        logger.error("Cannot read source", extra={"path": str(args.source), "error": str(e)})
        return 1

    if args.format == "json":
        write_json(items, args.output)
        return 0

    table_name = args.table or os.environ.get("TABLE_NAME")
    if not table_name:
        logger.error("No table given; pass --table or set TABLE_NAME")
        return 1
    try:
        seed_table(items, DynamoDBClient(table_name))
    except MagicItemsError as e:
        logger.error("Seeding failed", extra={"error": e.message})
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
