"""HTTP middleware: request correlation and security headers.

``request_id_middleware`` accepts or generates an X-Request-ID, binds it to
the logging context and echoes it (plus the request duration) on the response.

``security_headers_middleware`` attaches a fixed set of browser security
headers to every response whose path is not on the exclusion list (API
routes, static assets). It can also throttle those requests through the
process-wide request throttle, answering 429 when a client is over quota.

Usage:
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from functools import lru_cache
from typing import Iterable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from webguard.core.config import settings
from webguard.core.logging import clear_request_id, get_request_id, set_request_id
from webguard.core.rate_limit import (
    client_identifier,
    get_request_throttle,
    hash_identifier,
    rate_limit_headers,
)

logger = logging.getLogger(__name__)

SECURITY_HEADERS: dict[str, str] = {
    # Clickjacking
    "X-Frame-Options": "DENY",
    # MIME sniffing
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


@lru_cache(maxsize=16)
def _compile_patterns(patterns: tuple[str, ...]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p) for p in patterns)


def is_excluded_path(path: str, patterns: Iterable[str]) -> bool:
    """Return True when ``path`` matches any exclusion regex."""

    return any(p.search(path) for p in _compile_patterns(tuple(patterns)))


async def request_id_middleware(request: Request, call_next) -> Response:
    """Propagate a correlation id through logs and the response.

    The client-supplied header (name from ``LOG_REQUEST_ID_HEADER``) is reused
    when present, otherwise a UUID4 is generated. The id is cleared from the
    context once the downstream handler returns.

    Side Effects:
        - Adds the request id header to the response
        - Adds X-Request-Duration-ms header to the response
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


def _throttled_response(retry_after: int, limit: int, reset_at: int) -> JSONResponse:
    headers = rate_limit_headers(
        limit=limit, remaining=0, retry_after=retry_after, reset_at=reset_at
    )

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": {
                "code": "rate_limit_exceeded",
                "message": "Too many requests. Try again later.",
                "request_id": get_request_id(),
            }
        },
        headers=headers or None,
    )


async def security_headers_middleware(request: Request, call_next) -> Response:
    """Attach security headers, optionally throttling the request first.

    Excluded paths are forwarded untouched. For everything else, when
    ``APP_SECURITY_THROTTLE_ENABLED`` is set the client must be admitted by
    the request throttle before the request is forwarded.
    """

    cfg = settings.app
    if not cfg.security_headers_enabled or is_excluded_path(
        request.url.path, cfg.security_excluded_paths
    ):
        return await call_next(request)

    if cfg.security_throttle_enabled:
        identifier = client_identifier(request)
        result = get_request_throttle().check(
            identifier, cfg.rate_limit_requests, cfg.rate_limit_window_ms
        )
        if not result.allowed:
            logger.warning(
                "security.throttled",
                extra={
                    "identifier_hash": hash_identifier(identifier),
                    "path": request.url.path,
                    "limit": result.limit,
                },
            )
            response: Response = _throttled_response(
                result.retry_after_seconds or 0, result.limit, result.reset_at
            )
            response.headers.update(SECURITY_HEADERS)
            return response

    response = await call_next(request)
    response.headers.update(SECURITY_HEADERS)
    return response
