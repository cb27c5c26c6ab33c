"""Tests for the record sync manager."""

import sqlite3

import pytest

from record_sync.config import Config
from record_sync.exceptions import (
    InvalidArgumentError,
    SchemaMismatchError,
    SqlError,
    UnsupportedColumnTypeError,
)
from record_sync.record import Record
from record_sync.sync.database import SQLiteBackend
from record_sync.sync.manager import RecordSyncManager
from record_sync.type_mapping import FieldKind


def _snv(**fields) -> Record:
    record = Record("GHSNV")
    for name, value in fields.items():
        record.set_field(name, value)
    return record


class TestSession:
    """Test opening, closing and the pending pool."""

    def test_open_from_config(self, test_config):
        """Test open builds and connects a backend from config."""
        manager = RecordSyncManager(test_config)
        backend = manager.open()
        try:
            assert isinstance(backend, SQLiteBackend)
            assert backend.is_closed is False
        finally:
            manager.close()

    def test_open_without_config(self):
        """Test open requires a config or a backend."""
        with pytest.raises(InvalidArgumentError):
            RecordSyncManager().open()

    def test_open_reuses_connection(self, manager, backend):
        """Test a second open keeps the current connection."""
        conn = backend.conn
        manager.open()
        assert backend.conn is conn

    def test_open_reconnects_after_close(self, manager, backend):
        """Test open reconnects a closed backend."""
        manager.close()
        assert backend.is_closed is True
        manager.open()
        assert backend.is_closed is False

    def test_close_is_idempotent(self, manager):
        """Test closing twice is harmless."""
        manager.close()
        manager.close()

    def test_open_resets_pool(self, manager):
        """Test opening a session empties the pending pool."""
        manager.new_record("GHSNV")
        manager.query("GHSNV")
        assert manager.pending_count == 4

        manager.open()
        assert manager.pending_count == 0

    def test_new_record_joins_pool(self, manager):
        """Test new_record adds exactly one blank record to the pool."""
        before = manager.pending_count
        record = manager.new_record("GHSNV")

        assert manager.pending_count == before + 1
        assert manager.pending[-1] is record
        assert record.is_new_to_database is True
        assert record.table_name == "GHSNV"

    def test_query_twice_is_not_deduplicated(self, manager):
        """Test querying the same rows twice pools them twice."""
        manager.query("GHSNV", "Gene = 'EGFR'")
        manager.query("GHSNV", "Gene = 'EGFR'")
        assert manager.pending_count == 2

    def test_clear_pending(self, manager):
        """Test clear_pending drops every pooled record."""
        manager.new_record("GHSNV")
        manager.clear_pending()
        assert manager.pending == ()

    def test_first_query_keeps_staged_records(self, test_config):
        """Test connecting lazily on first query leaves records staged before it."""
        manager = RecordSyncManager(test_config)
        try:
            staged = manager.new_record("GHSNV")
            staged.set_field("SampleId", "staged")

            manager.query("GHSNV", "RecordId = 1")

            assert manager.pending_count == 2
            assert manager.pending[0] is staged
        finally:
            manager.close()

    def test_commit_without_open_keeps_pool(self, test_config, read_rows):
        """Test a commit that connects lazily still leaves the pool unchanged."""
        manager = RecordSyncManager(test_config)
        try:
            staged = manager.new_record("GHSNV")
            staged.set_field("SampleId", "staged")

            result = manager.commit()

            assert result.inserted == 1
            assert manager.pending == (staged,)
            assert read_rows("SELECT COUNT(*) FROM GHSNV WHERE SampleId = 'staged'") == [(1,)]
        finally:
            manager.close()

    def test_context_manager(self, test_config):
        """Test the manager opens on enter and closes on exit."""
        with RecordSyncManager(test_config) as manager:
            assert manager.backend.is_closed is False
        assert manager.backend.is_closed is True


class TestColumnMetadata:
    """Test mapping table columns to field kinds."""

    def test_ghsnv_columns(self, manager):
        """Test every GHSNV column maps to its kind in column order."""
        columns = manager.column_metadata("GHSNV")
        assert list(columns.items()) == [
            ("RecordId", FieldKind.INT64),
            ("SampleId", FieldKind.TEXT),
            ("RunId", FieldKind.TEXT),
            ("Gene", FieldKind.TEXT),
            ("Mutation_AA", FieldKind.TEXT),
            ("Percentage", FieldKind.FLOAT64),
            ("Chrom", FieldKind.INT32),
            ("Position", FieldKind.INT64),
        ]

    def test_three_column_table(self, manager, backend):
        """Test a (bigint, varchar, double) table maps to INT64, TEXT, FLOAT64."""
        backend.execute_update("CREATE TABLE T (RecordId bigint, SampleId varchar(32), Percentage double)")
        assert manager.column_metadata("T") == {
            "RecordId": FieldKind.INT64,
            "SampleId": FieldKind.TEXT,
            "Percentage": FieldKind.FLOAT64,
        }

    def test_unsupported_column_type(self, manager, backend):
        """Test an unmapped column type raises UnsupportedColumnTypeError."""
        backend.execute_update("CREATE TABLE Blobs (RecordId INTEGER PRIMARY KEY, Payload BLOB)")
        with pytest.raises(UnsupportedColumnTypeError) as exc_info:
            manager.column_metadata("Blobs")
        assert exc_info.value.column_name == "Payload"

    def test_missing_table(self, manager):
        """Test a missing table raises SqlError."""
        with pytest.raises(SqlError):
            manager.column_metadata("NoSuchTable")

    def test_empty_table_name(self, manager):
        """Test an empty table name is rejected."""
        with pytest.raises(InvalidArgumentError):
            manager.column_metadata("")


class TestVerifyRecord:
    """Test verification of records against table schemas."""

    def test_matching_record(self, manager):
        """Test a record whose fields match column kinds passes."""
        record = _snv(SampleId="A", Chrom=7, Percentage=9.3)
        record.set_field("Position", 1744567441, FieldKind.INT64)
        manager.verify_record(record)

    def test_unknown_column(self, manager):
        """Test a field without a column fails verification."""
        record = _snv(SampleId="A", Colour="red")
        with pytest.raises(SchemaMismatchError, match="doesn't have column: Colour") as exc_info:
            manager.verify_record(record)
        assert exc_info.value.field_name == "Colour"

    def test_kind_mismatch(self, manager):
        """Test a field of the wrong kind fails verification."""
        # 7 infers INT32 but Position is BIGINT
        record = _snv(Position=7)
        with pytest.raises(SchemaMismatchError, match="Position"):
            manager.verify_record(record)

    def test_column_names_match_case(self, manager):
        """Test a field whose name differs from its column only in case is rejected."""
        with pytest.raises(SchemaMismatchError, match="doesn't have column: gene") as exc_info:
            manager.verify_record(_snv(SampleId="A", gene="EGFR"))
        assert exc_info.value.field_name == "gene"


class TestQuery:
    """Test loading records from the database."""

    def test_query_materializes_rows(self, manager):
        """Test each row becomes a typed record with its identity."""
        records = manager.query("GHSNV", "SampleId = 'A09090101'")

        assert len(records) == 1
        snv = records[0]
        assert snv.is_new_to_database is False
        assert snv.record_id == 1
        assert snv.get_int64("RecordId") == 1
        assert snv.get_text("SampleId") == "A09090101"
        assert snv.get_text("RunId") == "160122_NB501062_0070_AHWNNNBGXX"
        assert snv.get_text("Gene") == "EGFR"
        assert snv.get_text("Mutation_AA") == "T790M"
        assert snv.get_float64("Percentage") == 10.5
        assert snv.get_int32("Chrom") == 8
        assert snv.get_int64("Position") == 1744567456

    def test_query_without_predicate(self, manager, backend):
        """Test an empty predicate selects the whole table."""
        records = manager.query("GHSNV", "")
        assert len(records) == 3
        assert backend.queries[-1] == "SELECT * FROM GHSNV"

    def test_query_adds_to_pool(self, manager):
        """Test queried records join the pending pool."""
        records = manager.query("GHSNV", "SampleId = 'A2049602_1'")
        assert len(records) == 2
        assert manager.pending == tuple(records)

    def test_null_columns_use_defaults(self, manager):
        """Test NULL columns materialize as the kind's default value."""
        manager.backend.execute_update("INSERT INTO GHSNV (SampleId) VALUES ('sparse')")
        (snv,) = manager.query("GHSNV", "SampleId = 'sparse'")

        assert snv.get_text("Gene") == ""
        assert snv.get_int32("Chrom") == 0
        assert snv.get_float64("Percentage") == 0.0

    def test_query_requires_table(self, manager):
        """Test an empty table name is rejected."""
        with pytest.raises(InvalidArgumentError):
            manager.query("", "1 = 1")

    def test_table_without_identity(self, manager, backend):
        """Test rows need a RecordId column to become records."""
        backend.execute_update("CREATE TABLE NoId (Name varchar(10))")
        backend.execute_update("INSERT INTO NoId VALUES ('x')")
        with pytest.raises(SqlError, match="RecordId"):
            manager.query("NoId")

    def test_null_identity(self, manager, backend):
        """Test a row whose RecordId is NULL is reported as such."""
        backend.execute_update("CREATE TABLE Loose (RecordId bigint, Name varchar(10))")
        backend.execute_update("INSERT INTO Loose VALUES (NULL, 'x')")
        with pytest.raises(SqlError, match="NULL RecordId"):
            manager.query("Loose")


class TestCompareAndDiff:
    """Test diffing two records."""

    def test_identical_records(self):
        """Test identical records produce an empty diff."""
        a = _snv(SampleId="A2049602_1", Gene="EGFR", Chrom=7)
        b = _snv(SampleId="A2049602_1", Gene="EGFR", Chrom=7)

        diff = RecordSyncManager.compare_and_diff(a, b)
        assert len(diff) == 0
        assert diff.table_name == "GHSNV"

    def test_single_difference(self):
        """Test one differing field yields exactly that field with b's value."""
        a = _snv(SampleId="A2049602_1", Gene="EGFR", Chrom=7)
        b = _snv(SampleId="A2049602_1", Gene="BRCA2", Chrom=7)

        diff = RecordSyncManager.compare_and_diff(a, b)
        assert diff.values() == {"Gene": "BRCA2"}

    def test_many_differences(self):
        """Test every differing field takes b's value and kind."""
        a = _snv(
            SampleId="A2049602_1",
            RunId="160122_NB501062_0070_AHWNNNBGXX",
            Gene="EGFR",
            Mutation_AA="T790M",
            Percentage=9.3,
            Chrom=7,
        )
        b = _snv(
            SampleId="A2049602_1",
            RunId="160122_NB501062_0070_AHWNNNBGXX",
            Gene="BRCA2",
            Mutation_AA="R232L",
            Percentage=19.3,
            Chrom=10,
        )

        diff = RecordSyncManager.compare_and_diff(a, b)
        assert diff.values() == {"Gene": "BRCA2", "Mutation_AA": "R232L", "Percentage": 19.3, "Chrom": 10}
        assert diff.kinds()["Chrom"] is FieldKind.INT32

    def test_fields_missing_from_b_skipped(self):
        """Test fields only in a are skipped and fields only in b are ignored."""
        a = _snv(Gene="EGFR", Chrom=7)
        b = _snv(Gene="EGFR", Percentage=1.0)

        diff = RecordSyncManager.compare_and_diff(a, b)
        assert len(diff) == 0

    def test_table_names_compared_case_insensitively(self):
        """Test GHSNV and ghsnv are the same table."""
        a = _snv(Gene="EGFR")
        b = Record("ghsnv")
        b.set_field("Gene", "TP53")

        diff = RecordSyncManager.compare_and_diff(a, b)
        assert diff.values() == {"Gene": "TP53"}

    def test_different_tables_rejected(self):
        """Test records of different tables cannot be compared."""
        with pytest.raises(InvalidArgumentError):
            RecordSyncManager.compare_and_diff(Record("GHSNV"), Record("Other"))

    def test_kind_change_counts_as_difference(self):
        """Test equal numbers stored under different kinds are diffed."""
        a = _snv(Chrom=7)
        b = Record("GHSNV")
        b.set_field("Chrom", 7, FieldKind.INT64)

        diff = RecordSyncManager.compare_and_diff(a, b)
        assert diff.kinds() == {"Chrom": FieldKind.INT64}


class TestThreadSafety:
    """Test the manager can be shared across threads."""

    def test_concurrent_new_records(self, manager):
        """Test records created from several threads all reach the pool."""
        import threading

        def worker():
            for _ in range(50):
                manager.new_record("GHSNV")

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert manager.pending_count == 200

    def test_backend_used_from_another_thread(self, manager):
        """Test a query issued from a worker thread uses the shared connection."""
        import threading

        results = []
        thread = threading.Thread(target=lambda: results.append(manager.query("GHSNV")))
        thread.start()
        thread.join()

        assert len(results[0]) == 3


def test_sqlite_integer_primary_key_is_int64(temp_db):
    """Test INTEGER PRIMARY KEY columns are treated as INT64."""
    conn = sqlite3.connect(temp_db)
    conn.execute("CREATE TABLE Ids (RecordId INTEGER PRIMARY KEY AUTOINCREMENT, Name varchar(10))")
    conn.close()

    manager = RecordSyncManager(Config(sqlite_db_path=temp_db))
    with manager:
        assert manager.column_metadata("Ids")["RecordId"] is FieldKind.INT64
