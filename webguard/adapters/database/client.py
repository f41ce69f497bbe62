"""Thin client for the hosted database's REST interface.

Requests go to ``{url}/rest/v1/{table}`` with the access key sent both as the
``apikey`` header and as a Bearer token. Filters use the ``column=eq.value``
query syntax.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from webguard.core.errors import ConfigurationAppError, DatabaseAppError

logger = logging.getLogger(__name__)

REST_PATH = "/rest/v1"


class TableQuery:
    """Operations against a single table."""

    def __init__(self, client: httpx.Client, table: str) -> None:
        self._client = client
        self.table = table

    @staticmethod
    def _filters(filters: dict[str, Any]) -> dict[str, str]:
        return {column: f"eq.{value}" for column, value in filters.items()}

    def _request(
        self,
        method: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        try:
            response = self._client.request(
                method, f"/{self.table}", params=params, json=json, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.warning(
                "database.request_failed",
                extra={"table": self.table, "method": method, "status_code": status_code},
            )
            raise DatabaseAppError(
                code="database_request_failed",
                message=f"Database {method} on '{self.table}' failed with status {status_code}",
                details={"http_status": status_code, "table": self.table},
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "database.unreachable",
                extra={"table": self.table, "method": method, "error_type": type(exc).__name__},
            )
            raise DatabaseAppError(
                code="database_unreachable",
                message=f"Database {method} on '{self.table}' could not be completed",
                details={"table": self.table},
            ) from exc

        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as exc:
            logger.warning(
                "database.invalid_response",
                extra={"table": self.table, "method": method, "status_code": response.status_code},
            )
            raise DatabaseAppError(
                code="database_invalid_response",
                message=f"Database {method} on '{self.table}' returned a non-JSON body",
                details={"http_status": response.status_code, "table": self.table},
            ) from exc

    def select(self, columns: str = "*", **filters: Any) -> list[dict[str, Any]]:
        """Fetch rows matching equality filters."""
        params = {"select": columns, **self._filters(filters)}
        return self._request("GET", params=params)

    def insert(self, row: dict[str, Any] | list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert one or more rows and return them as stored."""
        return self._request(
            "POST", json=row, headers={"Prefer": "return=representation"}
        )

    def delete(self, **filters: Any) -> list[dict[str, Any]]:
        """Delete rows matching equality filters.

        Raises:
            ValueError: If no filter is given (refuses to delete a whole table).
        """
        if not filters:
            raise ValueError("delete requires at least one filter")
        return self._request(
            "DELETE",
            params=self._filters(filters),
            headers={"Prefer": "return=representation"},
        )


class DatabaseClient:
    """Configured handle on the database REST interface.

    Usable as a context manager; the underlying connection pool is released
    on exit or via :meth:`close`.
    """

    def __init__(
        self,
        url: str,
        key: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Build the HTTP client.

        Args:
            url: Database service URL.
            key: Access key for the service.
            timeout_seconds: Per-request timeout.
            transport: Optional httpx transport (tests inject a MockTransport).

        Raises:
            ConfigurationAppError: If url or key is empty.
        """
        if not url or not key:
            raise ConfigurationAppError(
                code="database_not_configured",
                message="Database client requires both a service URL and an access key",
                details={"hint": "Set DATABASE_URL and DATABASE_ANON_KEY"},
            )

        self.url = url.rstrip("/")
        self._http = httpx.Client(
            base_url=f"{self.url}{REST_PATH}",
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Accept": "application/json",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    def table(self, name: str) -> TableQuery:
        return TableQuery(self._http, name)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "DatabaseClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
