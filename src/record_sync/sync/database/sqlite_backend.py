"""SQLite backend."""

import sqlite3
import time
from typing import Any, Optional

from ...exceptions import ConnectionFailure, DatabaseConnectionError, SqlError
from ...type_mapping import ColumnMetadata
from .base import DatabaseBackend

# Number of SQLite VM instructions between deadline checks
PROGRESS_HANDLER_INTERVAL = 1000


class SQLiteBackend(DatabaseBackend):
    """Runs statements against a SQLite database file."""

    target_db = "sqlite"

    def __init__(self, db_path: str, statement_timeout: Optional[float] = None):
        super().__init__(statement_timeout)
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None

    def connect(self):
        """Establish database connection."""
        try:
            # The manager serializes access, so the connection may cross threads
            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as e:
            msg = f"Could not open SQLite database {self.db_path}: {e}"
            raise DatabaseConnectionError(msg, reason=ConnectionFailure.UNKNOWN) from e
        self.conn.row_factory = sqlite3.Row

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    @property
    def is_closed(self) -> bool:
        return self.conn is None

    def _connection(self) -> sqlite3.Connection:
        if not self.conn:
            self.connect()
        return self.conn

    def _arm_deadline(self, conn: sqlite3.Connection, timeout: Optional[float]):
        """Interrupt the running statement once the timeout has elapsed."""
        timeout = self._effective_timeout(timeout)
        if timeout is None:
            return
        deadline = time.monotonic() + timeout

        def check_deadline():
            return 1 if time.monotonic() > deadline else 0

        conn.set_progress_handler(check_deadline, PROGRESS_HANDLER_INTERVAL)

    def execute_query(self, sql: str, timeout: Optional[float] = None) -> list[dict[str, Any]]:
        conn = self._connection()
        cursor = conn.cursor()
        self._arm_deadline(conn, timeout)
        try:
            cursor.execute(sql)
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            msg = f"SQLite query failed: {e}"
            raise SqlError(msg, sql=sql) from e
        finally:
            conn.set_progress_handler(None, 0)
            cursor.close()

    def execute_update(self, sql: str, timeout: Optional[float] = None) -> int:
        conn = self._connection()
        cursor = conn.cursor()
        self._arm_deadline(conn, timeout)
        try:
            cursor.execute(sql)
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            conn.rollback()
            msg = f"SQLite update failed: {e}"
            raise SqlError(msg, sql=sql) from e
        finally:
            conn.set_progress_handler(None, 0)
            cursor.close()

    def column_metadata(self, table_name: str) -> list[ColumnMetadata]:
        """
        Query column names and declared types using PRAGMA table_info.

        Raises:
            SqlError: If the table does not exist or the query fails
        """
        conn = self._connection()
        cursor = conn.cursor()
        try:
            quoted = table_name.replace("'", "''")
            cursor.execute(f"PRAGMA table_info('{quoted}')")
            # row format: (cid, name, type, notnull, dflt_value, pk)
            columns = [ColumnMetadata(name=row[1], db_type=row[2]) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            msg = f"SQLite metadata query failed: {e}"
            raise SqlError(msg) from e
        finally:
            cursor.close()

        if not columns:
            msg = f"no such table: {table_name}"
            raise SqlError(msg)
        return columns
