"""Schema-flexible record mapper that keeps in-memory records in sync with table rows."""

from record_sync.record import Record
from record_sync.sync.manager import CommitResult, RecordSyncManager
from record_sync.type_mapping import FieldKind, FieldValue

__version__ = "0.1.0"

__all__ = ["CommitResult", "FieldKind", "FieldValue", "Record", "RecordSyncManager", "__version__"]
