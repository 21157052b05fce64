"""Tests for the catalog seeding CLI."""

import json

import pytest

from magic_items.seed import main, normalize_items
from shared.catalog import MagicItemCatalog
from shared.db import DynamoDBClient

SOURCE = [
    {
        "name": "  Flaming Sword ",
        "slug": "flaming-sword",
        "description": "A common blade wreathed in fire",
    },
    {"name": "Flaming Sword Copy", "slug": "flaming-sword"},
    {"name": "", "slug": "nameless"},
    "not an item",
    {
        "name": "Ring of Protection",
        "slug": "ring-of-protection",
        "description": None,
        "traits": [{"name": "Warding"}],
    },
]


@pytest.fixture
def source_file(tmp_path):
    """Source JSON file with messy rows."""
    path = tmp_path / "magic-items-list.json"
    path.write_text(json.dumps(SOURCE), encoding="utf-8")
    return path


class TestNormalizeItems:
    """Tests for normalize_items."""

    def test_cleans_rows(self):
        """Strings are trimmed and optional fields defaulted."""
        items = normalize_items(SOURCE)

        assert [item["slug"] for item in items] == ["flaming-sword", "ring-of-protection"]
        assert items[0]["name"] == "Flaming Sword"
        assert items[0]["traits"] == []
        assert items[1]["description"] == ""
        assert items[1]["traits"] == [{"name": "Warding", "description": ""}]

    def test_first_slug_wins(self):
        """Duplicate slugs keep the first row."""
        assert normalize_items(SOURCE)[0]["name"] == "Flaming Sword"

    def test_not_a_list(self):
        """The document must be an array."""
        with pytest.raises(ValueError):
            normalize_items({"name": "Orb"})


class TestMain:
    """Tests for the CLI entry point."""

    def test_json_output(self, source_file, tmp_path):
        """JSON mode writes the normalized rows."""
        output = tmp_path / "out" / "magic-items.json"
        code = main(["--source", str(source_file), "--format", "json", "--output", str(output)])

        assert code == 0
        written = json.loads(output.read_text(encoding="utf-8"))
        assert [item["slug"] for item in written] == ["flaming-sword", "ring-of-protection"]

    def test_seed_table(self, source_file, dynamodb_table):
        """DB mode writes catalog rows the catalog can load."""
        code = main(["--source", str(source_file), "--table", "test-table"])

        assert code == 0
        catalog = MagicItemCatalog(DynamoDBClient("test-table"))
        assert [item.slug for item in catalog.load()] == ["flaming-sword", "ring-of-protection"]
        assert catalog.get_item_by_slug("flaming-sword").type.value == "weapon"

    def test_table_from_environment(self, source_file, dynamodb_table):
        """TABLE_NAME is used when --table is absent."""
        assert main(["--source", str(source_file)]) == 0

    def test_missing_table(self, source_file, monkeypatch):
        """Without a table name the CLI fails."""
        monkeypatch.delenv("TABLE_NAME", raising=False)
        assert main(["--source", str(source_file)]) == 1

    def test_missing_source(self, tmp_path):
        """An unreadable source fails."""
        assert main(["--source", str(tmp_path / "nope.json"), "--format", "json"]) == 1

    def test_invalid_json(self, tmp_path):
        """Malformed JSON fails."""
        path = tmp_path / "bad.json"
        path.write_text("{oops", encoding="utf-8")
        assert main(["--source", str(path), "--format", "json"]) == 1
