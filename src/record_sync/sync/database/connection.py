"""Connection settings and backend construction."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...config import Config
from .base import DatabaseBackend
from .postgres_backend import PostgresBackend
from .sqlite_backend import SQLiteBackend

DEFAULT_POSTGRES_PORT = 5432


class DbType(Enum):
    """Supported database vendors."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


def _libpq_quote(value) -> str:
    text = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{text}'"


@dataclass
class ConnectionSettings:
    """Vendor-neutral connection parameters."""

    vendor: DbType
    database_name: str
    host: str = "localhost"
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def build_dsn(self) -> str:
        """
        Assemble the vendor-specific connection string.

        SQLite uses database_name as the file path; PostgreSQL gets a libpq
        key/value string.
        """
        if self.vendor is DbType.SQLITE:
            return self.database_name

        parts = {
            "host": self.host,
            "port": self.port or DEFAULT_POSTGRES_PORT,
            "dbname": self.database_name,
            "user": self.username,
            "password": self.password,
        }
        return " ".join(f"{key}={_libpq_quote(value)}" for key, value in parts.items() if value is not None)

    def to_config(self, statement_timeout: Optional[float] = None) -> Config:
        if self.vendor is DbType.SQLITE:
            return Config(sqlite_db_path=self.build_dsn(), statement_timeout=statement_timeout)
        return Config(postgres_connection_string=self.build_dsn(), statement_timeout=statement_timeout)


def create_backend(config: Config) -> DatabaseBackend:
    """Build an unconnected backend for the configured database."""
    db_type = config.get_db_type()
    if db_type == "postgresql":
        return PostgresBackend(config.postgres_connection_string, statement_timeout=config.statement_timeout)
    return SQLiteBackend(config.sqlite_db_path, statement_timeout=config.statement_timeout)


def open_connection(settings: ConnectionSettings, statement_timeout: Optional[float] = None) -> DatabaseBackend:
    """Build and connect a backend from connection settings."""
    backend = create_backend(settings.to_config(statement_timeout=statement_timeout))
    backend.connect()
    return backend
