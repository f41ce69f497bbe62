"""Typed lookups over the database client."""

from __future__ import annotations

from datetime import datetime, timezone

from webguard.adapters.database.client import DatabaseClient
from webguard.schemas.database import AiCacheEntry, Profile

PROFILES_TABLE = "profiles"
AI_CACHE_TABLE = "ai_cache"


def get_profile(client: DatabaseClient, user_id: str) -> Profile | None:
    rows = client.table(PROFILES_TABLE).select(id=user_id)
    return Profile.model_validate(rows[0]) if rows else None


def get_cached_response(
    client: DatabaseClient,
    query_hash: str,
    *,
    now: datetime | None = None,
) -> AiCacheEntry | None:
    """Return the cached response for ``query_hash`` unless it has expired."""

    rows = client.table(AI_CACHE_TABLE).select(query_hash=query_hash)
    if not rows:
        return None

    entry = AiCacheEntry.model_validate(rows[0])
    if entry.expires_at is None:
        return entry

    expires_at = datetime.fromisoformat(entry.expires_at.replace("Z", "+00:00"))
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at <= (now or datetime.now(timezone.utc)):
        return None
    return entry
