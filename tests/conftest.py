"""Shared pytest fixtures for all tests."""

import sqlite3
import tempfile
from pathlib import Path

import pytest

from record_sync.config import Config
from record_sync.sync.manager import RecordSyncManager
from tests.helpers.recording_backend import RecordingSQLiteBackend

GHSNV_DDL = """
    CREATE TABLE GHSNV (
        RecordId INTEGER PRIMARY KEY AUTOINCREMENT,
        SampleId varchar(255),
        RunId varchar(255),
        Gene varchar(255),
        Mutation_AA varchar(255),
        Percentage double,
        Chrom int,
        Position bigint
    )
"""

GHSNV_ROWS = [
    ("A09090101", "160122_NB501062_0070_AHWNNNBGXX", "EGFR", "T790M", 10.5, 8, 1744567456),
    ("A2049602_1", "160122_NB501062_0070_AHWNNNBGXX", "BRCA2", "R232L", 19.3, 10, 1744567441),
    ("A2049602_1", "160122_NB501062_0070_AHWNNNBGXX", "TP53", "R175H", 42.0, 17, 7675088),
]


@pytest.fixture
def temp_db():
    """Create temporary database file that auto-cleans up."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield db_path
    Path(db_path).unlink(missing_ok=True)


@pytest.fixture
def ghsnv_db(temp_db):
    """Temporary database holding a seeded GHSNV table."""
    conn = sqlite3.connect(temp_db)
    conn.execute(GHSNV_DDL)
    conn.executemany(
        "INSERT INTO GHSNV (SampleId, RunId, Gene, Mutation_AA, Percentage, Chrom, Position) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        GHSNV_ROWS,
    )
    conn.commit()
    conn.close()
    return temp_db


@pytest.fixture
def test_config(ghsnv_db):
    """Create test configuration pointing at the seeded database."""
    return Config(sqlite_db_path=ghsnv_db)


@pytest.fixture
def backend(ghsnv_db):
    """Recording backend over the seeded database."""
    return RecordingSQLiteBackend(ghsnv_db)


@pytest.fixture
def manager(backend):
    """Open manager over the recording backend; closed after the test."""
    sync_manager = RecordSyncManager(backend=backend)
    sync_manager.open()
    yield sync_manager
    sync_manager.close()


@pytest.fixture
def read_rows(ghsnv_db):
    """Read rows directly with sqlite3, bypassing the engine."""

    def _read(sql, params=()):
        conn = sqlite3.connect(ghsnv_db)
        try:
            return conn.execute(sql, params).fetchall()
        finally:
            conn.close()

    return _read
