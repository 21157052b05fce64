"""Roll table Lambda handler."""
from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler import APIGatewayRestResolver, CORSConfig, Response
from aws_lambda_powertools.event_handler.exceptions import UnauthorizedError
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from roll_tables.models import (
    RollTableCreateRequest,
    RollTableDuplicateRequest,
    RollTableGenerateRequest,
    RollTableUpdateRequest,
)
from roll_tables.resolver import RollOutcome
from roll_tables.service import RollTableService
from shared.catalog import MagicItemCatalog
from shared.config import get_config
from shared.db import DynamoDBClient
from shared.utils import (
    data_response,
    extract_user_id,
    register_error_handlers,
    text_response,
)

logger = Logger()
tracer = Tracer()
metrics = Metrics(namespace="MagicItemBrowser")

cors_config = CORSConfig(
    allow_origin=get_config().allowed_origin,
    allow_headers=["Content-Type", "X-User-Id"],
    max_age=300,
)
app = APIGatewayRestResolver(cors=cors_config)
register_error_handlers(app)

# Initialize service lazily
_service: RollTableService | None = None


def get_service() -> RollTableService:
    """Get or create the roll table service instance."""
    global _service
    if _service is None:
        config = get_config()
        db = DynamoDBClient(config.table_name)
        _service = RollTableService(
            db,
            MagicItemCatalog(db),
            max_tables_per_user=config.max_tables_per_user,
        )
    return _service


def reset_service() -> None:
    """Reset the service instance (for testing)."""
    global _service
    _service = None


def get_user_id() -> str:
    """Extract and validate user ID from headers.

    Raises:
        UnauthorizedError: If header is missing or blank
    """
    user_id = extract_user_id(app.current_event.headers)
    if not user_id:
        raise UnauthorizedError("Missing or invalid X-User-Id header")
    return user_id


def _json_body() -> dict[str, Any]:
    return app.current_event.json_body or {}


def _record_roll(outcome: RollOutcome, access: str) -> Response:
    metrics.add_dimension(name="Access", value=access)
    metrics.add_metric(name="TableRolls", unit=MetricUnit.Count, value=1)
    logger.info("Table rolled", extra={"roll": outcome.roll, "kind": outcome.kind.value})
    return data_response(outcome.to_api())


# =============================================================================
# SHARED (TOKEN) ROUTES - registered before /roll-tables/<table_id>
# =============================================================================


@app.get("/roll-tables/shared/<token>")
@tracer.capture_method
def get_shared_table(token: str) -> Response:
    """Read a table by its share token (no identity required)."""
    table = get_service().get_by_share_token(token)
    return data_response(table.to_shared_view().to_api())


@app.post("/roll-tables/shared/<token>/roll")
@tracer.capture_method
def roll_shared_table(token: str) -> Response:
    """Roll a shared table (no identity required)."""
    return _record_roll(get_service().roll_shared(token), "shared")


@app.post("/roll-tables/shared/<token>/duplicate")
@tracer.capture_method
def duplicate_shared_table(token: str) -> Response:
    """Copy a shared table into the caller's account."""
    user_id = get_user_id()
    request = RollTableDuplicateRequest(**_json_body())
    table = get_service().duplicate_shared(user_id, token, request.name)
    return data_response(table.to_api(), status_code=201)


# =============================================================================
# COLLECTION ROUTES
# =============================================================================


@app.post("/roll-tables/generate")
@tracer.capture_method
def generate_table() -> Response:
    """Generate table data without saving it."""
    request = RollTableGenerateRequest(**_json_body())
    table_data = get_service().generate(request)
    return data_response(table_data.model_dump(mode="json", by_alias=True))


@app.post("/roll-tables")
@tracer.capture_method
def create_table() -> Response:
    """Create a new roll table.

    Returns:
        201 response with the created table
    """
    user_id = get_user_id()
    request = RollTableCreateRequest(**_json_body())
    table = get_service().create_table(user_id, request)
    return data_response(table.to_api(), status_code=201)


@app.get("/roll-tables")
@tracer.capture_method
def list_tables() -> Response:
    """List the caller's tables, newest first."""
    user_id = get_user_id()
    params = app.current_event.query_string_parameters or {}
    tables = get_service().list_tables(
        user_id,
        search=params.get("search"),
        source_list_id=params.get("sourceListId"),
    )
    return data_response([table.to_api() for table in tables])


# =============================================================================
# SINGLE-TABLE ROUTES
# =============================================================================


@app.get("/roll-tables/<table_id>")
@tracer.capture_method
def get_table(table_id: str) -> Response:
    """Get one of the caller's tables."""
    user_id = get_user_id()
    return data_response(get_service().get_table(user_id, table_id).to_api())


@app.put("/roll-tables/<table_id>")
@tracer.capture_method
def update_table(table_id: str) -> Response:
    """Replace the name, die size or rows of a table."""
    user_id = get_user_id()
    request = RollTableUpdateRequest(**_json_body())
    table = get_service().update_table(user_id, table_id, request)
    return data_response(table.to_api())


@app.delete("/roll-tables/<table_id>")
@tracer.capture_method
def delete_table(table_id: str) -> Response:
    """Delete a table.

    Returns:
        204 response (no content)
    """
    user_id = get_user_id()
    get_service().delete_table(user_id, table_id)
    return Response(status_code=204, content_type="application/json", body=None)


@app.post("/roll-tables/<table_id>/roll")
@tracer.capture_method
def roll_table(table_id: str) -> Response:
    """Roll one of the caller's tables."""
    user_id = get_user_id()
    return _record_roll(get_service().roll(user_id, table_id), "owner")


@app.post("/roll-tables/<table_id>/duplicate")
@tracer.capture_method
def duplicate_table(table_id: str) -> Response:
    """Copy one of the caller's tables."""
    user_id = get_user_id()
    request = RollTableDuplicateRequest(**_json_body())
    table = get_service().duplicate_table(user_id, table_id, request.name)
    return data_response(table.to_api(), status_code=201)


@app.get("/roll-tables/<table_id>/stats")
@tracer.capture_method
def table_stats(table_id: str) -> Response:
    """Population statistics and completeness warnings."""
    user_id = get_user_id()
    return data_response(get_service().stats(user_id, table_id))


@app.get("/roll-tables/<table_id>/export")
@tracer.capture_method
def export_table(table_id: str) -> Response:
    """Download a table as csv, json or markdown."""
    user_id = get_user_id()
    params = app.current_event.query_string_parameters or {}
    text, content_type = get_service().export(user_id, table_id, params.get("format") or "json")
    return text_response(text, content_type)


@logger.inject_lambda_context
@tracer.capture_lambda_handler
@metrics.log_metrics
def lambda_handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """Main Lambda entry point.

    Args:
        event: API Gateway event
        context: Lambda context

    Returns:
        API Gateway response
    """
    return app.resolve(event, context)
