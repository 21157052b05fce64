"""Integration tests for magic item catalog Lambda handler."""

import json
from unittest.mock import MagicMock, patch

import pytest

from magic_items.handler import lambda_handler, reset_catalog
from shared.exceptions import StoreUnavailableError


@pytest.fixture(autouse=True)
def reset_handler():
    """Reset handler state before each test."""
    reset_catalog()
    yield
    reset_catalog()


def make_event(path: str, query: dict | None = None) -> dict:
    """Create an API Gateway GET event for testing."""
    return {
        "httpMethod": "GET",
        "path": path,
        "headers": {"Content-Type": "application/json"},
        "pathParameters": {},
        "queryStringParameters": query,
        "body": None,
        "requestContext": {
            "stage": "dev",
            "requestId": "test-request-id",
        },
        "resource": path,
    }


def get(path: str, **query) -> tuple[int, dict]:
    """Invoke the handler and decode the JSON body."""
    response = lambda_handler(make_event(path, query or None), MagicMock())
    return response["statusCode"], json.loads(response["body"])


def names(body: dict) -> list[str]:
    return [item["name"] for item in body["data"]["data"]]


class TestListItems:
    """Tests for GET /magic-items."""

    def test_all_items_in_catalog_order(self, seeded_table):
        """Without a query every item comes back by name."""
        status, body = get("/magic-items")

        assert status == 200
        assert body["data"]["total"] == 4
        assert names(body) == [
            "Cloak of Shadows",
            "Flaming Sword",
            "Potion of Healing",
            "Ring of Protection",
        ]

    def test_items_carry_facets(self, seeded_table):
        """Items include their inferred type and rarity."""
        _, body = get("/magic-items", search="flaming")
        item = body["data"]["data"][0]
        assert item["slug"] == "flaming-sword"
        assert item["type"] == "weapon"
        assert item["rarity"] == "common"

    def test_search_ranks_matches(self, seeded_table):
        """Text queries drop non-matches."""
        _, body = get("/magic-items", search="potion")
        assert names(body)[0] == "Potion of Healing"
        assert "Cloak of Shadows" not in names(body)

    def test_type_filter(self, seeded_table):
        """The type filter is exact."""
        _, body = get("/magic-items", type="accessory")
        assert names(body) == ["Cloak of Shadows", "Ring of Protection"]
        assert body["data"]["total"] == 2

    def test_rarity_filter(self, seeded_table):
        """The rarity filter is exact."""
        _, body = get("/magic-items", rarity="rare")
        assert names(body) == ["Ring of Protection"]

    def test_blank_filter_ignored(self, seeded_table):
        """An empty filter value means no filter."""
        _, body = get("/magic-items", type="")
        assert body["data"]["total"] == 4

    def test_invalid_type_returns_400(self, seeded_table):
        """Unknown types are rejected."""
        status, body = get("/magic-items", type="spaceship")
        assert status == 400
        assert "error" in body

    def test_sort_by_rarity(self, seeded_table):
        """Rarity sorts from common to unknown."""
        _, body = get("/magic-items", sort="rarity")
        assert names(body) == [
            "Flaming Sword",
            "Potion of Healing",
            "Ring of Protection",
            "Cloak of Shadows",
        ]

    def test_sort_by_name_desc(self, seeded_table):
        """Descending name order."""
        _, body = get("/magic-items", sort="name", order="desc")
        assert names(body)[0] == "Ring of Protection"

    def test_pagination_keeps_total(self, seeded_table):
        """Total counts matches before the page is cut."""
        _, body = get("/magic-items", limit="2", offset="1")
        assert names(body) == ["Flaming Sword", "Potion of Healing"]
        assert body["data"]["total"] == 4

    @pytest.mark.parametrize("limit", ["0", "101", "abc"])
    def test_bad_limit_returns_400(self, seeded_table, limit):
        """Page size must be 1..100."""
        status, _ = get("/magic-items", limit=limit)
        assert status == 400

    def test_empty_catalog(self, dynamodb_table):
        """An empty store is an empty catalog."""
        status, body = get("/magic-items")
        assert status == 200
        assert body["data"] == {"data": [], "total": 0}


class TestFacetsAndSuggestions:
    """Tests for facet and suggestion routes."""

    def test_facets(self, seeded_table):
        """Every enumeration value is counted."""
        status, body = get("/magic-items/facets")
        assert status == 200
        assert body["data"]["types"]["accessory"] == 2
        assert body["data"]["types"]["armor"] == 0
        assert body["data"]["rarities"]["unknown"] == 1

    def test_suggestions(self, seeded_table):
        """Partial names complete to item names."""
        status, body = get("/magic-items/suggestions", q="shad")
        assert status == 200
        assert body["data"] == ["Cloak of Shadows"]

    def test_short_query_no_suggestions(self, seeded_table):
        """Very short queries suggest nothing."""
        _, body = get("/magic-items/suggestions", q="s")
        assert body["data"] == []


class TestSingleItem:
    """Tests for GET /magic-items/<slug> and similar."""

    def test_get_item(self, seeded_table):
        """Items are fetched by slug."""
        status, body = get("/magic-items/ring-of-protection")
        assert status == 200
        assert body["data"]["name"] == "Ring of Protection"
        assert body["data"]["traits"] == [
            {"name": "Warding", "description": "Improves armor class."}
        ]

    def test_unknown_slug_returns_404(self, seeded_table):
        """Unknown slugs are not found."""
        status, body = get("/magic-items/no-such-thing")
        assert status == 404
        assert body["error"]["message"] == "Magic item not found"

    def test_similar_excludes_item(self, seeded_table):
        """Similar items never include the reference item."""
        status, body = get("/magic-items/ring-of-protection/similar")
        assert status == 200
        assert "ring-of-protection" not in [item["slug"] for item in body["data"]]

    def test_similar_unknown_slug_returns_404(self, seeded_table):
        """Similar items for an unknown slug are not found."""
        status, _ = get("/magic-items/no-such-thing/similar")
        assert status == 404


class TestStoreFailure:
    """Tests for backing store failures."""

    def test_store_failure_returns_500(self, seeded_table):
        """A failed catalog load becomes a generic 500 and is retried later."""
        with patch(
            "shared.db.DynamoDBClient.query_all_by_pk",
            side_effect=StoreUnavailableError("Failed to query: Boom"),
        ):
            status, body = get("/magic-items")
        assert status == 500
        assert body["error"]["message"] == "Service temporarily unavailable"

        status, _ = get("/magic-items")
        assert status == 200
