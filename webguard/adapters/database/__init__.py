"""Database adapters.

Wraps the hosted database's REST interface behind a small client so the rest
of the app never builds URLs or auth headers by hand.
"""

from webguard.adapters.database.client import DatabaseClient, TableQuery
from webguard.adapters.database.factory import get_database_client, reset_database_client

__all__ = ["DatabaseClient", "TableQuery", "get_database_client", "reset_database_client"]
