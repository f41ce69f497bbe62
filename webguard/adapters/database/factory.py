"""Process-wide database client built from settings."""

from __future__ import annotations

import logging

from webguard.adapters.database.client import DatabaseClient
from webguard.core.config import settings

logger = logging.getLogger(__name__)

_client: DatabaseClient | None = None


def get_database_client() -> DatabaseClient:
    """Return the shared client, creating it on first use.

    Reads ``settings.database``; missing url/key surface as a
    ConfigurationAppError from the client constructor.
    """
    global _client

    if _client is None:
        _client = DatabaseClient(
            settings.database.url or "",
            settings.database.anon_key or "",
            timeout_seconds=settings.database.timeout_seconds,
        )
        logger.info("database.client_created", extra={"timeout_s": settings.database.timeout_seconds})

    return _client


def reset_database_client() -> None:
    """Close and drop the shared client (tests, config reloads)."""
    global _client

    if _client is not None:
        _client.close()
    _client = None
