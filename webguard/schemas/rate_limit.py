"""Pydantic schemas for rate limit responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class QuotaResponse(BaseModel):
    """Remaining admissions for the calling client."""

    limit: int = Field(..., description="Admissions allowed per window.")
    remaining: int = Field(..., ge=0, description="Admissions left in the current window.")
    window_ms: int = Field(..., description="Window length in milliseconds.")
