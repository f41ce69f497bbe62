"""Global exception handlers for consistent error responses.

Every AppError becomes ``{"error": {code, message, request_id, details?}}``
with a status picked from its type; anything else is a generic 500 that does
not leak internals.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from webguard.core.errors import (
    AppError,
    ConfigurationAppError,
    DatabaseAppError,
    RateLimitAppError,
)
from webguard.core.logging import get_request_id
from webguard.core.rate_limit import rate_limit_headers

logger = logging.getLogger(__name__)

# Checked in order; anything unmatched is a client error (400)
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (RateLimitAppError, 429),
    (DatabaseAppError, 502),
    (ConfigurationAppError, 500),
)


def status_for_error(exc: AppError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error with the status code matching its type.

    - ValidationAppError (and plain AppError) → 400
    - RateLimitAppError → 429, with Retry-After/X-RateLimit-* headers from details
    - ConfigurationAppError → 500
    - DatabaseAppError → 502
    """
    status_code = status_for_error(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitAppError) and exc.details and "retry_after" in exc.details:
        details = exc.details
        headers = rate_limit_headers(
            limit=details.get("limit", 0),
            remaining=details.get("remaining", 0),
            retry_after=int(details["retry_after"]),
            reset_at=details.get("reset_at"),
        )

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Safety net for unexpected errors; logs detail, returns a generic body."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register the AppError handler and the generic fallback on ``app``."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
