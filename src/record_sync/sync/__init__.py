"""Record synchronization engine."""

from .manager import CommitResult, RecordSyncManager
from .statements import build_insert, build_select, build_update

__all__ = ["CommitResult", "RecordSyncManager", "build_insert", "build_select", "build_update"]
