from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from webguard.core.config import settings
from webguard.core.rate_limit import client_identifier, enforce_rate_limit, remaining_quota
from webguard.schemas.rate_limit import QuotaResponse

router = APIRouter(tags=["Rate limit"])


@router.get(
    "/rate-limit",
    response_model=QuotaResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
def quota_status(request: Request) -> QuotaResponse:
    """Report the caller's remaining quota (this call counts against it)."""

    limit = settings.app.rate_limit_requests
    window_ms = settings.app.rate_limit_window_ms
    return QuotaResponse(
        limit=limit,
        remaining=remaining_quota(client_identifier(request), limit, window_ms),
        window_ms=window_ms,
    )
