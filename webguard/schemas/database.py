"""Pydantic schemas for rows stored in the application database."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Profile(BaseModel):
    """A user profile row (``profiles`` table)."""

    id: str = Field(..., description="User id (matches the auth user id).")
    email: str = Field(..., description="Primary email address.")
    full_name: str | None = Field(default=None, description="Display name.")
    avatar_url: str | None = Field(default=None, description="Profile picture URL.")
    created_at: str = Field(..., description="ISO-8601 creation timestamp.")
    updated_at: str = Field(..., description="ISO-8601 last update timestamp.")


class AiCacheEntry(BaseModel):
    """A cached AI provider response (``ai_cache`` table)."""

    id: str
    query_hash: str = Field(..., description="Hash of the normalized query, used as lookup key.")
    query: str
    response: Any = Field(..., description="Raw provider response payload.")
    provider: str = Field(..., description="Provider that produced the response.")
    created_at: str
    expires_at: str | None = Field(
        default=None,
        description="ISO-8601 expiry; entries without one never expire.",
    )
    feedback_score: int = Field(0, description="Aggregated user feedback on the response.")
