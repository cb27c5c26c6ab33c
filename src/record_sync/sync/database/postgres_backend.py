"""PostgreSQL backend using psycopg2."""

from typing import Any, Optional

from ...exceptions import ConnectionFailure, DatabaseConnectionError, SqlError
from ...type_mapping import ColumnMetadata
from .base import DatabaseBackend

_AUTH_MARKERS = ("password authentication failed", "authentication failed", "no password supplied")
_NETWORK_MARKERS = (
    "could not connect",
    "connection refused",
    "could not translate host name",
    "timeout expired",
    "no route to host",
    "server closed the connection",
)


def classify_connection_error(message: str) -> ConnectionFailure:
    """Classify a driver connection error message."""
    lowered = message.lower()
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return ConnectionFailure.AUTHENTICATION
    if any(marker in lowered for marker in _NETWORK_MARKERS):
        return ConnectionFailure.NETWORK
    return ConnectionFailure.UNKNOWN


def _to_milliseconds(timeout: float) -> int:
    return max(1, int(timeout * 1000))


class PostgresBackend(DatabaseBackend):
    """Runs statements against PostgreSQL with autocommit enabled."""

    target_db = "postgresql"

    def __init__(self, connection_string: str, statement_timeout: Optional[float] = None):
        super().__init__(statement_timeout)
        self.connection_string = connection_string
        self.conn = None
        self._driver = None

    def connect(self):
        """Establish database connection."""
        try:
            import psycopg2  # noqa: PLC0415 - optional dependency
            import psycopg2.extras  # noqa: PLC0415
        except ImportError as e:
            msg = "psycopg2 not installed. Install with: pip install 'record-sync[postgres]'"
            raise DatabaseConnectionError(msg, reason=ConnectionFailure.DRIVER_NOT_FOUND) from e

        self._driver = psycopg2
        kwargs = {"cursor_factory": psycopg2.extras.RealDictCursor}
        if self.statement_timeout is not None:
            kwargs["options"] = f"-c statement_timeout={_to_milliseconds(self.statement_timeout)}"
        try:
            self.conn = psycopg2.connect(self.connection_string, **kwargs)
        except psycopg2.Error as e:
            msg = f"PostgreSQL connection failed: {e}"
            raise DatabaseConnectionError(msg, reason=classify_connection_error(str(e))) from e
        self.conn.autocommit = True

    def close(self):
        """Close database connection."""
        if self.conn is not None:
            if not self.conn.closed:
                self.conn.close()
            self.conn = None

    @property
    def is_closed(self) -> bool:
        return self.conn is None or bool(self.conn.closed)

    def _connection(self):
        if self.is_closed:
            self.connect()
        return self.conn

    def _run(self, sql: str, params: Optional[tuple], timeout: Optional[float], fetch: bool):
        conn = self._connection()
        override = timeout is not None and timeout != self.statement_timeout
        cursor = conn.cursor()
        try:
            if override:
                cursor.execute("SET statement_timeout = %s", (_to_milliseconds(timeout),))
            try:
                cursor.execute(sql, params)
                if fetch:
                    return [dict(row) for row in cursor.fetchall()]
                return cursor.rowcount
            finally:
                if override:
                    restore = self.statement_timeout
                    cursor.execute(
                        "SET statement_timeout = %s",
                        (_to_milliseconds(restore) if restore is not None else 0,),
                    )
        except self._driver.Error as e:
            msg = f"PostgreSQL statement failed: {e}"
            raise SqlError(msg, sql=sql) from e
        finally:
            cursor.close()

    def execute_query(self, sql: str, timeout: Optional[float] = None) -> list[dict[str, Any]]:
        return self._run(sql, None, timeout, fetch=True)

    def execute_update(self, sql: str, timeout: Optional[float] = None) -> int:
        return self._run(sql, None, timeout, fetch=False)

    def column_metadata(self, table_name: str) -> list[ColumnMetadata]:
        """
        Query column names and types from information_schema.

        Raises:
            SqlError: If the table does not exist or the query fails
        """
        rows = self._run(
            """
            SELECT column_name, data_type
            FROM information_schema.columns
            WHERE table_schema = current_schema() AND lower(table_name) = lower(%s)
            ORDER BY ordinal_position
            """,
            (table_name,),
            None,
            fetch=True,
        )
        if not rows:
            msg = f"no such table: {table_name}"
            raise SqlError(msg)
        return [ColumnMetadata(name=row["column_name"], db_type=row["data_type"]) for row in rows]
