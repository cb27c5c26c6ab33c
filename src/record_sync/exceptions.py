"""
Exceptions raised by the record synchronization engine.
"""

from enum import Enum


class RecordSyncError(Exception):
    """Base exception for all record sync errors."""


class InvalidArgumentError(RecordSyncError, ValueError):
    """
    An argument was rejected before any work was done.

    Raised when:
    - A table or field name is empty
    - A value cannot be stored under the requested kind
    - Two records from different tables are compared
    - A statement would be rendered without any columns
    """


class FieldNotFoundError(RecordSyncError, KeyError):
    """A field is not present on a record."""

    def __init__(self, field_name: str):
        super().__init__(f"Not existing field: {field_name}")
        self.field_name = field_name

    def __str__(self):
        return self.args[0]


class TypeMismatchError(RecordSyncError, TypeError):
    """The stored kind of a field differs from the kind requested."""

    def __init__(self, field_name: str, expected, actual):
        super().__init__(f"{field_name} is {actual.value}, not {expected.value}")
        self.field_name = field_name
        self.expected = expected
        self.actual = actual


class SchemaMismatchError(RecordSyncError):
    """
    A record disagrees with the live table schema.

    Raised during commit verification when a field has no matching column,
    or when the field kind differs from the kind mapped from the column type.
    """

    def __init__(self, message: str, table_name: str = None, field_name: str = None):
        super().__init__(message)
        self.table_name = table_name
        self.field_name = field_name


class UnsupportedColumnTypeError(RecordSyncError):
    """A column's database type has no field kind mapping."""

    def __init__(self, table_name: str, column_name: str, db_type: str):
        super().__init__(f"Column {table_name}.{column_name} has unsupported type: {db_type}")
        self.table_name = table_name
        self.column_name = column_name
        self.db_type = db_type


class RecordNotFoundError(RecordSyncError):
    """No database row matches the identity of an in-memory record."""


class DuplicateIdentityError(RecordSyncError):
    """More than one database row matches the identity of an in-memory record."""


class SqlError(RecordSyncError):
    """A database call failed. The driver exception is chained as the cause."""

    def __init__(self, message: str, sql: str = None):
        super().__init__(message)
        self.sql = sql


class ConnectionFailure(Enum):
    """Classification of a failed connection attempt."""

    AUTHENTICATION = "authentication"
    NETWORK = "network"
    DRIVER_NOT_FOUND = "driver_not_found"
    UNKNOWN = "unknown"


class DatabaseConnectionError(SqlError):
    """Connecting to the database failed."""

    def __init__(self, message: str, reason: ConnectionFailure = ConnectionFailure.UNKNOWN):
        super().__init__(message)
        self.reason = reason
