"""Process-wide request throttle and its FastAPI dependency.

The registry lives for the lifetime of the process and is shared by every
route and middleware that imports these helpers. The module-level
``try_admit``/``remaining_quota``/``clear``/``clear_all`` functions are the
library surface; ``enforce_rate_limit`` wires the same throttle into routes.
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Request

from webguard.adapters.rate_limit.base import DEFAULT_MAX_REQUESTS, DEFAULT_WINDOW_MS
from webguard.adapters.rate_limit.in_memory import RequestThrottle
from webguard.core.config import settings
from webguard.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)


_throttle: RequestThrottle | None = None
_throttle_config: int | None = None


def get_request_throttle() -> RequestThrottle:
    """Return the process-wide throttle instance.

    The instance is cached in-module to preserve state across requests.
    If the eviction cap changes (primarily in tests), the throttle is rebuilt.
    """

    global _throttle, _throttle_config

    max_entries = settings.app.rate_limit_max_entries

    if _throttle is None or _throttle_config != max_entries:
        _throttle = RequestThrottle(max_entries=max_entries)
        _throttle_config = max_entries

    return _throttle


def try_admit(
    identifier: str,
    max_requests: int = DEFAULT_MAX_REQUESTS,
    window_ms: int = DEFAULT_WINDOW_MS,
) -> bool:
    """Admit one request for ``identifier`` against the shared registry."""

    return get_request_throttle().try_admit(identifier, max_requests, window_ms)


def remaining_quota(
    identifier: str,
    max_requests: int = DEFAULT_MAX_REQUESTS,
    window_ms: int = DEFAULT_WINDOW_MS,
) -> int:
    return get_request_throttle().remaining_quota(identifier, max_requests, window_ms)


def clear(identifier: str) -> None:
    get_request_throttle().clear(identifier)


def clear_all() -> None:
    """Forget every identifier (used between test scenarios)."""

    get_request_throttle().clear_all()


def client_identifier(request: Request) -> str:
    """Build the throttle key for an inbound request.

    Keys on the socket peer address. The first ``X-Forwarded-For`` hop is used
    only when ``APP_TRUST_FORWARDED_FOR`` is set, since any client can send
    that header and would otherwise pick a fresh identifier per request.
    """

    if settings.app.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return f"ip:{first_hop}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def hash_identifier(identifier: str) -> str:
    """Hash an identifier for logging without exposing client addresses."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


def rate_limit_headers(
    *,
    limit: int,
    remaining: int,
    retry_after: int,
    reset_at: int | None = None,
) -> dict[str, str]:
    """Build Retry-After/X-RateLimit-* headers (empty when disabled in settings)."""

    if not settings.app.rate_limit_include_headers:
        return {}

    headers = {
        "Retry-After": str(retry_after),
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
    }
    if reset_at is not None:
        headers["X-RateLimit-Reset"] = str(reset_at)
    return headers


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing the configured per-client limit.

    When enabled, consumes one admission from the caller's quota. Once the
    quota is exhausted inside the window, raises RateLimitAppError, rendered
    as HTTP 429 by the global exception handler.

    Raises:
        RateLimitAppError: When the caller is throttled.
    """

    if not settings.app.rate_limit_enabled:
        return

    identifier = client_identifier(request)
    window_ms = settings.app.rate_limit_window_ms
    result = get_request_throttle().check(
        identifier,
        settings.app.rate_limit_requests,
        window_ms,
    )

    log_fields = {
        "identifier_hash": hash_identifier(identifier),
        "limit": result.limit,
        "remaining": result.remaining,
        "window_ms": window_ms,
    }

    if result.allowed:
        logger.info("rate_limit.allowed", extra=log_fields)
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning("rate_limit.exceeded", extra={**log_fields, "retry_after_s": retry_after})

    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message="Rate limit exceeded. Try again later.",
        details={
            "retry_after": retry_after,
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
        },
    )
