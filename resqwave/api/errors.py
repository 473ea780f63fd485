"""Standardized error responses for the API.

Every error body has the same shape so dashboards and terminals can decide
whether to retry:

    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable message",
            "retryable": true/false,
            "details": {...}  # optional
        }
    }
"""

from enum import Enum
from typing import Any, NoReturn

from apiflask import APIFlask, HTTPError

from resqwave.exceptions import (
    InvalidTerminal,
    StoreFailure,
    TerminalNotFound,
    UpstreamUnavailable,
    WeatherCacheError,
)
from resqwave.utils.logging import get_logger

logger = get_logger(__name__)


class ErrorCode(str, Enum):
    """Error codes for API responses."""

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"

    # Server errors (potentially retryable)
    SERVER_ERROR = "SERVER_ERROR"
    TIMEOUT = "TIMEOUT"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Weather provider failed and nothing was cached
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"


# Errors a client may retry automatically (all weather reads are idempotent)
RETRYABLE_ERRORS = {
    ErrorCode.TIMEOUT,
    ErrorCode.SERVICE_UNAVAILABLE,
    ErrorCode.SERVER_ERROR,
    ErrorCode.EXTERNAL_SERVICE_ERROR,
}


def is_retryable(code: ErrorCode) -> bool:
    """Check if an error code indicates a retryable error."""
    return code in RETRYABLE_ERRORS


def create_error_response(
    code: ErrorCode,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create a standardized error response body."""
    error_data: dict[str, Any] = {
        "code": code.value,
        "message": message,
        "retryable": is_retryable(code),
    }
    if details:
        error_data["details"] = details
    return {"error": error_data}


def validation_error(message: str, field: str | None = None) -> tuple[dict[str, Any], int]:
    """Create a validation error response (400)."""
    details = {"field": field} if field else None
    return create_error_response(ErrorCode.VALIDATION_ERROR, message, details), 400


def not_found_error(resource: str = "Resource") -> tuple[dict[str, Any], int]:
    """Create a not found error response (404)."""
    return create_error_response(ErrorCode.NOT_FOUND, f"{resource} not found"), 404


def external_service_error(
    message: str = "Weather service unavailable. Please try again.",
    service: str | None = None,
) -> tuple[dict[str, Any], int]:
    """Create an external service error response (502)."""
    details = {"service": service} if service else None
    return create_error_response(ErrorCode.EXTERNAL_SERVICE_ERROR, message, details), 502


def service_unavailable_error(
    message: str = "Service temporarily unavailable. Please try again later.",
) -> tuple[dict[str, Any], int]:
    """Create a service unavailable error response (503)."""
    return create_error_response(ErrorCode.SERVICE_UNAVAILABLE, message), 503


# ============================================================================
# Raising variants
# ============================================================================
#
# Views decorated with @api.output only serialize successful bodies, so they
# raise errors instead of returning them. The error processor registered in
# register_error_handlers() renders the standard envelope.


def _raise(
    status_code: int, code: ErrorCode, message: str, details: dict[str, Any] | None = None
) -> NoReturn:
    raise HTTPError(status_code, message, extra_data={"code": code, "details": details})


def raise_validation_error(message: str, field: str | None = None) -> NoReturn:
    _raise(400, ErrorCode.VALIDATION_ERROR, message, {"field": field} if field else None)


def raise_invalid_json_error() -> NoReturn:
    _raise(400, ErrorCode.INVALID_FORMAT, "Invalid JSON in request body")


def raise_not_found_error(resource: str = "Resource") -> NoReturn:
    _raise(404, ErrorCode.NOT_FOUND, f"{resource} not found")


def raise_conflict_error(message: str) -> NoReturn:
    _raise(409, ErrorCode.CONFLICT, message)


# Codes for HTTP errors raised by Flask/APIFlask itself (unknown URL, bad method, ...)
_STATUS_ERROR_CODES = {
    400: ErrorCode.INVALID_REQUEST,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    503: ErrorCode.SERVICE_UNAVAILABLE,
    504: ErrorCode.TIMEOUT,
}


def register_error_handlers(app: APIFlask) -> None:
    """Map weather cache exceptions and HTTP errors to error responses."""

    @app.error_processor
    def handle_http_error(error: HTTPError) -> tuple[dict[str, Any], int, Any]:
        extra = error.extra_data or {}
        code = extra.get("code")
        if code is None:
            fallback = (
                ErrorCode.SERVER_ERROR if error.status_code >= 500 else ErrorCode.INVALID_REQUEST
            )
            code = _STATUS_ERROR_CODES.get(error.status_code, fallback)
        return (
            create_error_response(code, str(error.message), extra.get("details")),
            error.status_code,
            error.headers,
        )

    @app.errorhandler(WeatherCacheError)
    def handle_weather_cache_error(e: WeatherCacheError) -> tuple[dict[str, Any], int]:
        if isinstance(e, InvalidTerminal):
            return validation_error(f"Invalid terminal ID: {e.reason}", field="terminal_id")
        if isinstance(e, TerminalNotFound):
            return not_found_error("Terminal")
        if isinstance(e, UpstreamUnavailable):
            return external_service_error(service="openweather")
        if isinstance(e, StoreFailure):
            # Internal details stay in the logs
            logger.error("Store failure during request", extra={"operation": e.operation})
            return service_unavailable_error()
        logger.error("Unhandled weather cache error", extra={"error": str(e)})
        return create_error_response(
            ErrorCode.SERVER_ERROR, "An unexpected error occurred. Please try again."
        ), 500
