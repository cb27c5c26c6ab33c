"""Synchronization between in-memory records and database tables."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from ..config import Config
from ..exceptions import (
    DuplicateIdentityError,
    InvalidArgumentError,
    RecordNotFoundError,
    RecordSyncError,
    SchemaMismatchError,
    SqlError,
    UnsupportedColumnTypeError,
)
from ..record import Record
from ..type_mapping import RECORD_IDENTIFIER, FieldKind, FieldValue, map_db_type_to_kind
from .database import DatabaseBackend, create_backend
from .statements import build_insert, build_select, build_update


@dataclass
class CommitResult:
    """Outcome of the write phase of a commit."""

    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    failures: list = field(default_factory=list)  # (Record, exception) pairs

    @property
    def ok(self) -> bool:
        return not self.failures


def _identity_column(row: dict) -> Optional[str]:
    """Return the name of the identity column in a result row, matched case-insensitively."""
    if RECORD_IDENTIFIER in row:
        return RECORD_IDENTIFIER
    wanted = RECORD_IDENTIFIER.lower()
    for name in row:
        if name.lower() == wanted:
            return name
    return None


class RecordSyncManager:
    """
    Session that stages records in a pending pool and writes them back on commit.

    Records created with new_record() or returned by query() join the pending
    pool. commit() first verifies every pooled record against the live table
    schemas, and only if all of them pass does it insert new records and
    update changed ones. The pool is left intact after commit; call
    clear_pending() to drop it.

    All public operations hold an internal lock, so one manager can be shared
    between threads.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        backend: Optional[DatabaseBackend] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.backend = backend
        self.logger = logger or logging.getLogger(__name__)
        self._pending: list[Record] = []
        self._lock = threading.RLock()
        self.last_commit_result: Optional[CommitResult] = None

    # Connection lifecycle

    def open(self, config: Optional[Config] = None) -> DatabaseBackend:
        """
        Open the session, reusing the current connection when it is still open.

        Starting a session always empties the pending pool.
        """
        with self._lock:
            if config is not None:
                self.config = config
            self._pending = []
            return self._backend()

    def close(self) -> None:
        """Close the connection if open."""
        with self._lock:
            if self.backend is not None and not self.backend.is_closed:
                self.backend.close()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _backend(self) -> DatabaseBackend:
        """Return a connected backend, building it from config on first use. Leaves the pool alone."""
        with self._lock:
            if self.backend is None:
                if self.config is None:
                    msg = "No configuration or backend provided"
                    raise InvalidArgumentError(msg)
                self.backend = create_backend(self.config)
            if self.backend.is_closed:
                self.backend.connect()
            return self.backend

    # Pending pool

    @property
    def pending(self) -> tuple:
        """Snapshot of the pending pool, in insertion order."""
        with self._lock:
            return tuple(self._pending)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def clear_pending(self) -> None:
        with self._lock:
            self._pending = []

    def new_record(self, table_name: str) -> Record:
        """Create a blank record for table_name and add it to the pending pool."""
        record = Record(table_name)
        with self._lock:
            self._pending.append(record)
        return record

    # Schema

    def column_metadata(self, table_name: str) -> dict[str, FieldKind]:
        """
        Get the field kind of every column of a table, in column order.

        Raises:
            InvalidArgumentError: If table_name is empty
            UnsupportedColumnTypeError: If a column type has no kind mapping
            SqlError: If the metadata query fails
        """
        if not table_name:
            msg = "table_name is None or empty"
            raise InvalidArgumentError(msg)

        with self._lock:
            backend = self._backend()
            columns = backend.column_metadata(table_name)

        kinds = {}
        for column in columns:
            kind = map_db_type_to_kind(column.db_type, backend.target_db)
            if kind is None:
                raise UnsupportedColumnTypeError(table_name, column.name, column.db_type)
            kinds[column.name] = kind
        return kinds

    def verify_record(self, record: Record, columns: Optional[dict[str, FieldKind]] = None) -> None:
        """
        Check that every field of a record matches a column of the same kind.

        Field names must equal column names exactly, including case.

        Args:
            record: Record to check
            columns: Column kinds of the record's table; queried when omitted

        Raises:
            SchemaMismatchError: If a field has no column or a different kind
        """
        if columns is None:
            columns = self.column_metadata(record.table_name)

        for name, value in record.fields.items():
            column_kind = columns.get(name)
            if column_kind is None:
                msg = f"{record.table_name} doesn't have column: {name}"
                raise SchemaMismatchError(msg, table_name=record.table_name, field_name=name)
            if column_kind is not value.kind:
                msg = (
                    f"The kind of {name} is {value.kind.name}. "
                    f"Can not match {column_kind.name} in table {record.table_name}"
                )
                raise SchemaMismatchError(msg, table_name=record.table_name, field_name=name)

    # Reading

    def _materialize(self, table_name: str, rows: list[dict], columns: dict[str, FieldKind]) -> list[Record]:
        records = []
        for row in rows:
            record = Record(table_name, is_new_to_database=False)
            identity_column = _identity_column(row)
            if identity_column is None:
                msg = f"{table_name} has no {RECORD_IDENTIFIER} column"
                raise SqlError(msg)
            identity = row[identity_column]
            if identity is None:
                msg = f"{table_name} has a row with NULL {identity_column}"
                raise SqlError(msg)
            record.record_id = int(identity)
            for name, kind in columns.items():
                record.fields[name] = FieldValue.from_db(kind, row.get(name))
            records.append(record)
        return records

    def _query_base(self, table_name: str, where: Optional[str], timeout: Optional[float]) -> list[Record]:
        sql = build_select(table_name, where)
        self.logger.debug(sql)
        rows = self._backend().execute_query(sql, timeout=timeout)
        columns = self.column_metadata(table_name)
        return self._materialize(table_name, rows, columns)

    def query(self, table_name: str, where: Optional[str] = None, timeout: Optional[float] = None) -> list[Record]:
        """
        Load matching rows as records and add them to the pending pool.

        Args:
            table_name: Table to read
            where: Predicate appended verbatim after WHERE; omitted when empty
            timeout: Statement timeout in seconds, overriding the configured one

        Returns:
            One record per row, each marked as existing in the database
        """
        if not table_name:
            msg = "table_name is None or empty"
            raise InvalidArgumentError(msg)

        with self._lock:
            records = self._query_base(table_name, where, timeout)
            self._pending.extend(records)
        return records

    # Diffing

    @staticmethod
    def compare_and_diff(a: Record, b: Record) -> Record:
        """
        Capture the fields of a whose values differ in b.

        The returned record belongs to a's table and holds b's value and kind
        for each differing field. Values are compared together with their kind,
        so equal numbers of different kinds count as differing. Fields missing
        from b are skipped, and fields only present in b are ignored.

        Raises:
            InvalidArgumentError: If the records belong to different tables
        """
        if a is None or b is None:
            msg = "Cannot compare None records"
            raise InvalidArgumentError(msg)
        if a.table_name.lower() != b.table_name.lower():
            msg = f"Cannot compare records of different tables: {a.table_name} and {b.table_name}"
            raise InvalidArgumentError(msg)

        diff = Record(a.table_name)
        for name, value in a.fields.items():
            other = b.fields.get(name)
            if other is None:
                continue
            if value != other:
                diff.fields[name] = other
        return diff

    # Writing

    def _insert(self, record: Record, timeout: Optional[float]) -> None:
        sql = build_insert(record)
        self.logger.debug(sql)
        self._backend().execute_update(sql, timeout=timeout)

    def _update(self, record: Record, timeout: Optional[float]) -> bool:
        """Write the changed fields of an existing record. Returns False when nothing changed."""
        where = f"{RECORD_IDENTIFIER} = {record.record_id}"
        matches = self._query_base(record.table_name, where, timeout)

        if not matches:
            msg = f"{record.table_name} doesn't have a record for {RECORD_IDENTIFIER}: {record.record_id}"
            raise RecordNotFoundError(msg)
        if len(matches) > 1:
            msg = f"{record.table_name} has multiple records for {RECORD_IDENTIFIER}: {record.record_id}"
            raise DuplicateIdentityError(msg)

        db_record = matches[0]
        diff = self.compare_and_diff(db_record, record)
        diff.record_id = db_record.record_id
        if not diff.fields:
            return False

        sql = build_update(diff)
        self.logger.debug(sql)
        self._backend().execute_update(sql, timeout=timeout)
        return True

    def synchronize_record(self, record: Record, timeout: Optional[float] = None) -> str:
        """
        Write one record: insert it if new, otherwise update its changed fields.

        Returns:
            'inserted', 'updated' or 'unchanged'
        """
        with self._lock:
            if record.is_new_to_database:
                self._insert(record, timeout)
                return "inserted"
            if self._update(record, timeout):
                return "updated"
            return "unchanged"

    def commit(self, timeout: Optional[float] = None) -> CommitResult:
        """
        Verify and then write every record in the pending pool.

        Verification covers the whole pool before the first write, so a
        schema mismatch anywhere leaves the database untouched. Writes are
        independent per record: a failing record does not stop the others and
        records already written stay written. After all records have been
        attempted, the first failure is re-raised; every failure is kept in
        last_commit_result.

        Raises:
            SchemaMismatchError: If any record fails verification
            UnsupportedColumnTypeError: If a table has an unmapped column type
            RecordNotFoundError, DuplicateIdentityError, SqlError: From the write phase
        """
        with self._lock:
            pool = list(self._pending)

            table_columns: dict[str, dict[str, FieldKind]] = {}
            for record in pool:
                columns = table_columns.get(record.table_name)
                if columns is None:
                    columns = self.column_metadata(record.table_name)
                    table_columns[record.table_name] = columns
                self.verify_record(record, columns)

            result = CommitResult()
            for record in pool:
                try:
                    outcome = self.synchronize_record(record, timeout=timeout)
                except RecordSyncError as e:
                    self.logger.error(f"Failed to synchronize {record.table_name} record: {e}")
                    result.failures.append((record, e))
                    continue
                if outcome == "inserted":
                    result.inserted += 1
                elif outcome == "updated":
                    result.updated += 1
                else:
                    result.unchanged += 1

            self.last_commit_result = result
            self.logger.info(
                f"Commit complete: {result.inserted} inserted, {result.updated} updated, "
                f"{result.unchanged} unchanged, {len(result.failures)} failed"
            )

        if result.failures:
            raise result.failures[0][1]
        return result
