"""Utility functions for the magic item Lambda handlers."""
import json
import secrets
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from aws_lambda_powertools import Logger
from aws_lambda_powertools.event_handler import Response
from aws_lambda_powertools.event_handler.exceptions import ServiceError
from pydantic import ValidationError as PydanticValidationError

from .exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)

logger = Logger(child=True)

SHARE_TOKEN_BYTES = 16


def generate_id() -> str:
    """Generate a unique ID for resources.

    Returns:
        UUID string
    """
    return str(uuid4())


def generate_share_token() -> str:
    """Generate an opaque, unguessable share token.

    Returns:
        32 character hex string
    """
    return secrets.token_hex(SHARE_TOKEN_BYTES)


def utc_now() -> str:
    """Get current UTC timestamp in ISO format.

    Returns:
        ISO formatted timestamp string
    """
    return datetime.now(UTC).isoformat()


def extract_user_id(headers: dict[str, str] | None) -> str | None:
    """Extract user ID from request headers.

    Looks for the X-User-Id header (case-insensitive). The header is set
    by the upstream authorizer; an empty value counts as missing.

    Args:
        headers: Request headers dict

    Returns:
        User ID string or None if not found
    """
    for key, value in (headers or {}).items():
        if key.lower() == "x-user-id":
            if value and value.strip():
                return value.strip()
            return None
    return None


def data_response(data: Any, status_code: int = 200) -> Response:
    """Wrap a payload in the ``{"data": ...}`` envelope.

    Args:
        data: JSON-serializable payload
        status_code: HTTP status code

    Returns:
        Powertools Response
    """
    return Response(
        status_code=status_code,
        content_type="application/json",
        body={"data": data},
    )


def error_response(status_code: int, message: str) -> Response:
    """Format an error response as ``{"error": {"message": ...}}``.

    Args:
        status_code: HTTP status code
        message: Human-readable error message

    Returns:
        Powertools Response
    """
    return Response(
        status_code=status_code,
        content_type="application/json",
        body={"error": {"message": message}},
    )


def text_response(text: str, content_type: str) -> Response:
    """Return a plain text payload (exports)."""
    return Response(status_code=200, content_type=content_type, body=text)


def register_error_handlers(app: Any) -> None:
    """Map domain and request errors onto ``{"error": ...}`` responses.

    Args:
        app: Powertools REST resolver
    """

    @app.exception_handler(PydanticValidationError)
    def handle_request_validation(e: PydanticValidationError) -> Response:
        errors = e.errors()
        return error_response(400, errors[0].get("msg", "Invalid request") if errors else str(e))

    @app.exception_handler(json.JSONDecodeError)
    def handle_bad_json(e: json.JSONDecodeError) -> Response:
        return error_response(400, "Request body must be valid JSON")

    @app.exception_handler(ValidationError)
    def handle_validation(e: ValidationError) -> Response:
        return error_response(400, e.message)

    @app.exception_handler(NotFoundError)
    def handle_not_found(e: NotFoundError) -> Response:
        return error_response(404, f"{e.resource_type} not found")

    @app.exception_handler(ForbiddenError)
    def handle_forbidden(e: ForbiddenError) -> Response:
        return error_response(403, e.message)

    @app.exception_handler(ConflictError)
    def handle_conflict(e: ConflictError) -> Response:
        return error_response(409, e.message)

    @app.exception_handler(StoreUnavailableError)
    def handle_store_unavailable(e: StoreUnavailableError) -> Response:
        logger.error("Store unavailable", extra={"error": e.message})
        return error_response(500, "Service temporarily unavailable")

    @app.exception_handler(ServiceError)
    def handle_service_error(e: ServiceError) -> Response:
        return error_response(e.status_code, e.msg)
