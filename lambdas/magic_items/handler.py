"""Magic item catalog Lambda handler (public, read-only)."""
from typing import Any

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.event_handler import APIGatewayRestResolver, CORSConfig, Response
from aws_lambda_powertools.utilities.typing import LambdaContext

from magic_items.models import (
    FacetQuery,
    MagicItemQuery,
    SimilarQuery,
    SuggestionQuery,
    present_params,
)
from shared.catalog import MagicItemCatalog
from shared.config import get_config
from shared.db import DynamoDBClient
from shared.exceptions import ValidationError
from shared.search import paginate, sort_items
from shared.utils import data_response, register_error_handlers

logger = Logger()
tracer = Tracer()
cors_config = CORSConfig(
    allow_origin=get_config().allowed_origin,
    allow_headers=["Content-Type"],
    max_age=300,
)
app = APIGatewayRestResolver(cors=cors_config)
register_error_handlers(app)

# Catalog is loaded on first request and reused for the container's lifetime
_catalog: MagicItemCatalog | None = None


def get_catalog() -> MagicItemCatalog:
    """Get or create the catalog instance."""
    global _catalog
    if _catalog is None:
        _catalog = MagicItemCatalog(DynamoDBClient(get_config().table_name))
    return _catalog


def reset_catalog() -> None:
    """Reset the catalog instance (for testing)."""
    global _catalog
    _catalog = None


def _query_params() -> dict[str, Any]:
    return present_params(app.current_event.query_string_parameters)


def _require_slug(slug: str) -> str:
    if not slug or not slug.strip():
        raise ValidationError("Slug is required", field="slug")
    return slug.strip()


@app.get("/magic-items")
@tracer.capture_method
def list_items() -> Response:
    """Search, filter, sort and page the catalog.

    Returns:
        200 response with ``{"data": {"data": [...], "total": n}}``;
        total counts matches before paging
    """
    query = MagicItemQuery(**_query_params())
    result = get_catalog().search(search=query.search, item_type=query.type, rarity=query.rarity)
    ordered = sort_items(result.data, sort_by=query.sort, order=query.order)
    page = paginate(ordered, limit=query.limit, offset=query.offset)
    return data_response(
        {"data": [item.model_dump(mode="json") for item in page], "total": result.total}
    )


@app.get("/magic-items/facets")
@tracer.capture_method
def item_facets() -> Response:
    """Count items per type and rarity."""
    query = FacetQuery(**_query_params())
    return data_response(get_catalog().facets(search=query.search))


@app.get("/magic-items/suggestions")
@tracer.capture_method
def item_suggestions() -> Response:
    """Autocomplete item and trait names."""
    query = SuggestionQuery(**_query_params())
    return data_response(get_catalog().suggestions(query.q, limit=query.limit))


@app.get("/magic-items/<slug>")
@tracer.capture_method
def get_item(slug: str) -> Response:
    """Get a single item by slug."""
    item = get_catalog().get_item_or_raise(_require_slug(slug))
    return data_response(item.model_dump(mode="json"))


@app.get("/magic-items/<slug>/similar")
@tracer.capture_method
def similar_items(slug: str) -> Response:
    """Items resembling the given one."""
    query = SimilarQuery(**_query_params())
    items = get_catalog().similar(_require_slug(slug), limit=query.limit)
    return data_response([item.model_dump(mode="json") for item in items])


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def lambda_handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """Main Lambda entry point.

    Args:
        event: API Gateway event
        context: Lambda context

    Returns:
        API Gateway response
    """
    return app.resolve(event, context)
