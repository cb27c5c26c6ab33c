"""Backend interface consumed by the sync manager."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from ...type_mapping import ColumnMetadata


class DatabaseBackend(ABC):
    """
    One database connection plus the statement primitives the manager needs.

    Every statement runs on its own cursor, which is closed on every exit
    path. Driver errors are re-raised as SqlError.
    """

    #: Vendor key used for type alias lookup ('sqlite' or 'postgresql')
    target_db: str = ""

    def __init__(self, statement_timeout: Optional[float] = None):
        self.statement_timeout = statement_timeout

    @abstractmethod
    def connect(self) -> None:
        """Establish the connection."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection. Safe to call when already closed."""

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """True when there is no open connection."""

    @abstractmethod
    def execute_query(self, sql: str, timeout: Optional[float] = None) -> list[dict[str, Any]]:
        """Run a SELECT and return every row as a column-name keyed dict."""

    @abstractmethod
    def execute_update(self, sql: str, timeout: Optional[float] = None) -> int:
        """Run an INSERT/UPDATE, commit it and return the affected row count."""

    @abstractmethod
    def column_metadata(self, table_name: str) -> list[ColumnMetadata]:
        """Return the table's columns in declaration order."""

    def _effective_timeout(self, timeout: Optional[float]) -> Optional[float]:
        return self.statement_timeout if timeout is None else timeout

    def __enter__(self):
        if self.is_closed:
            self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
