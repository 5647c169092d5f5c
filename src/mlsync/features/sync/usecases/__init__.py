"""Sync use cases: synchronizer state machine, locks, I/O and the worker pipeline."""

from .file_operations import FileOperations
from .locks import KeyedLocks
from .pipeline import InboxTask, SyncPipeline
from .ports import InboxStatusPort
from .sync_types import (
    CancelToken,
    Cancelled,
    Indexed,
    QuarantineReason,
    Quarantined,
    Rejected,
    Removed,
    SyncEvent,
    SyncOutcome,
    SyncState,
    Unchanged,
    outcome_label,
)
from .synchronizer import LibrarySynchronizer, PreparedTrack, ReconcileReport, SyncSettings

__all__ = [
    "CancelToken",
    "Cancelled",
    "FileOperations",
    "InboxStatusPort",
    "InboxTask",
    "Indexed",
    "KeyedLocks",
    "LibrarySynchronizer",
    "PreparedTrack",
    "QuarantineReason",
    "Quarantined",
    "ReconcileReport",
    "Rejected",
    "Removed",
    "SyncEvent",
    "SyncOutcome",
    "SyncPipeline",
    "SyncSettings",
    "SyncState",
    "Unchanged",
    "outcome_label",
]
