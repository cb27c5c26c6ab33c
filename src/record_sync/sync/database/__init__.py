"""Database access for record sync.

This package provides the database collaborator used by the sync manager:
- DatabaseBackend: statement primitives and column metadata
- SQLiteBackend / PostgresBackend: vendor implementations
- ConnectionSettings, DbType, create_backend: connection construction
"""

from .base import DatabaseBackend
from .connection import ConnectionSettings, DbType, create_backend, open_connection
from .postgres_backend import PostgresBackend
from .sqlite_backend import SQLiteBackend

__all__ = [
    "ConnectionSettings",
    "DatabaseBackend",
    "DbType",
    "PostgresBackend",
    "SQLiteBackend",
    "create_backend",
    "open_connection",
]
