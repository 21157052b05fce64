"""Pydantic models for magic item query strings."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shared.models import MagicItemRarity, MagicItemType
from shared.search import SortField, SortOrder

MAX_PAGE_SIZE = 100
DEFAULT_RELATED_LIMIT = 5
MAX_RELATED_LIMIT = 20


def present_params(params: dict[str, str] | None) -> dict[str, Any]:
    """Drop blank query parameters so ``?type=`` means no filter."""
    return {key: value for key, value in (params or {}).items() if value and value.strip()}


class MagicItemQuery(BaseModel):
    """Query string for GET /magic-items."""

    model_config = ConfigDict(extra="ignore")

    search: str | None = None
    type: MagicItemType | None = None
    rarity: MagicItemRarity | None = None
    sort: SortField = SortField.RELEVANCE
    order: SortOrder = SortOrder.ASC
    limit: int | None = Field(default=None, ge=1, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)


class FacetQuery(BaseModel):
    """Query string for GET /magic-items/facets."""

    model_config = ConfigDict(extra="ignore")

    search: str | None = None


class SuggestionQuery(BaseModel):
    """Query string for GET /magic-items/suggestions."""

    model_config = ConfigDict(extra="ignore")

    q: str = ""
    limit: int = Field(default=DEFAULT_RELATED_LIMIT, ge=1, le=MAX_RELATED_LIMIT)


class SimilarQuery(BaseModel):
    """Query string for GET /magic-items/<slug>/similar."""

    model_config = ConfigDict(extra="ignore")

    limit: int = Field(default=DEFAULT_RELATED_LIMIT, ge=1, le=MAX_RELATED_LIMIT)
