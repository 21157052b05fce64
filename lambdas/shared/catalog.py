"""Magic item catalog: loading, facet enrichment, lookup and search.

One MagicItemCatalog is created per process (see the handlers'
get_service) and injected wherever items are needed. The catalog and
its search index are built lazily on first use, at most once; a failed
load leaves nothing cached so the next call retries.
"""

import threading
import time
from collections.abc import Iterable
from typing import Any

from aws_lambda_powertools import Logger
from pydantic import BaseModel

from .db import DynamoDBClient
from .exceptions import InvalidFilterError, NotFoundError
from .facets import infer_rarity, infer_type
from .models import MagicItem, MagicItemRarity, MagicItemTrait, MagicItemType
from .search import SearchIndex, facet_counts

logger = Logger(child=True)

CATALOG_PK = "CATALOG"
ITEM_SK_PREFIX = "ITEM#"


class MagicItemSearchResult(BaseModel):
    """Query engine output."""

    data: list[MagicItem]
    total: int

    def to_api(self) -> dict[str, Any]:
        """Serialize for the API."""
        return self.model_dump(mode="json")


def build_item(row: dict[str, Any]) -> MagicItem:
    """Turn a raw store row into a MagicItem with inferred facets.

    Args:
        row: Store row with name, slug, description and traits

    Returns:
        Frozen MagicItem
    """
    name = row.get("name") or ""
    description = row.get("description") or ""
    traits = tuple(
        MagicItemTrait(name=trait.get("name") or "", description=trait.get("description") or "")
        for trait in row.get("traits") or []
    )
    return MagicItem(
        name=name,
        slug=row["slug"],
        description=description,
        traits=traits,
        type=infer_type(name, description),
        rarity=infer_rarity(name, description),
    )


def item_keys(slug: str) -> tuple[str, str]:
    """DynamoDB PK and SK for a catalog row."""
    return CATALOG_PK, f"{ITEM_SK_PREFIX}{slug}"


def _coerce_filter(value: Any, enum_cls: type, field: str) -> Any:
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidFilterError(f"Invalid {field} parameter", field=field) from None


class MagicItemCatalog:
    """Service for the read-only magic item catalog."""

    def __init__(self, db_client: DynamoDBClient) -> None:
        """Initialize the catalog service.

        Args:
            db_client: DynamoDB client instance
        """
        self.db = db_client
        self._items: tuple[MagicItem, ...] | None = None
        self._by_slug: dict[str, MagicItem] = {}
        self._index: SearchIndex | None = None
        self._load_lock = threading.Lock()
        self._index_lock = threading.Lock()

    def fetch_all_items(self) -> list[dict[str, Any]]:
        """Fetch every raw catalog row, ordered by name.

        Returns:
            Raw rows

        Raises:
            StoreUnavailableError: If the store query fails
        """
        rows = self.db.query_all_by_pk(CATALOG_PK, sk_prefix=ITEM_SK_PREFIX)
        return sorted(rows, key=lambda row: row.get("name") or "")

    def load(self) -> tuple[MagicItem, ...]:
        """Load the catalog, building it on first call.

        Returns:
            All items in name order

        Raises:
            StoreUnavailableError: If the first fetch fails (not cached)
        """
        items = self._items
        if items is not None:
            return items

        with self._load_lock:
            if self._items is None:
                started = time.perf_counter()
                built = tuple(build_item(row) for row in self.fetch_all_items())
                by_slug: dict[str, MagicItem] = {}
                for item in built:
                    by_slug.setdefault(item.slug, item)
                self._by_slug = by_slug
                self._items = built
                logger.info(
                    "Catalog loaded",
                    extra={
                        "item_count": len(built),
                        "elapsed_ms": round((time.perf_counter() - started) * 1000, 1),
                    },
                )
            return self._items

    @property
    def index(self) -> SearchIndex:
        """Search index over the loaded catalog, built once."""
        index = self._index
        if index is not None:
            return index

        items = self.load()
        with self._index_lock:
            if self._index is None:
                self._index = SearchIndex(items)
            return self._index

    def get_item_by_slug(self, slug: str) -> MagicItem | None:
        """Look up a single item.

        Args:
            slug: Item slug

        Returns:
            The item, or None if the slug is unknown
        """
        self.load()
        return self._by_slug.get(slug)

    def get_item_or_raise(self, slug: str) -> MagicItem:
        """Look up a single item or raise NotFoundError."""
        item = self.get_item_by_slug(slug)
        if item is None:
            raise NotFoundError("Magic item", slug)
        return item

    def get_items_by_slugs(self, slugs: Iterable[str]) -> list[MagicItem]:
        """Get the items whose slug is in the given set.

        Results follow catalog order, not input order; unknown slugs are
        ignored.

        Args:
            slugs: Slugs to select

        Returns:
            Matching items
        """
        wanted = set(slugs)
        return [item for item in self.load() if item.slug in wanted]

    def search(
        self,
        search: str | None = None,
        item_type: MagicItemType | str | None = None,
        rarity: MagicItemRarity | str | None = None,
    ) -> MagicItemSearchResult:
        """Run a catalog query.

        A non-empty ``search`` replaces catalog order with relevance order
        and drops non-matching items; facet filters are exact equality.

        Args:
            search: Optional free-text query
            item_type: Optional type filter
            rarity: Optional rarity filter

        Returns:
            Matching items and their count

        Raises:
            InvalidFilterError: If a filter is not an enumeration value
        """
        type_filter = _coerce_filter(item_type, MagicItemType, "type")
        rarity_filter = _coerce_filter(rarity, MagicItemRarity, "rarity")

        items: list[MagicItem] = list(self.load())
        if search and search.strip():
            items = [hit.item for hit in self.index.search(search)]
        if type_filter is not None:
            items = [item for item in items if item.type == type_filter]
        if rarity_filter is not None:
            items = [item for item in items if item.rarity == rarity_filter]

        logger.debug(
            "Catalog search",
            extra={
                "search": search,
                "type": type_filter.value if type_filter else None,
                "rarity": rarity_filter.value if rarity_filter else None,
                "total": len(items),
            },
        )
        return MagicItemSearchResult(data=items, total=len(items))

    def facets(self, search: str | None = None) -> dict[str, dict[str, int]]:
        """Count types and rarities, optionally within a text query's hits."""
        return facet_counts(self.search(search=search).data)

    def suggestions(self, query: str, limit: int = 5) -> list[str]:
        """Autocomplete names for a partial query."""
        return self.index.suggestions(query, limit=limit)

    def similar(self, slug: str, limit: int = 5) -> list[MagicItem]:
        """Find items similar to the one with the given slug.

        Raises:
            NotFoundError: If the slug is unknown
        """
        return self.index.similar(self.get_item_or_raise(slug), limit=limit)
