"""src/mlsync/features/sync/usecases/sync_types.py
Where: Sync feature usecases layer.
What: Shared enums, outcome dataclasses and the cancel token for the synchronizer.
Why: Keep the synchronizer lean by centralising type definitions.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


class SyncEvent(StrEnum):
    """Structured event identifiers for synchronizer logs."""

    SCAN_START = "sync.scan.start"
    SCAN_COMPLETE = "sync.scan.complete"
    SCAN_EMPTY = "sync.scan.empty"
    TRACK_DETECTED = "sync.track.detected"
    TRACK_REJECTED = "sync.track.rejected"
    TRACK_MOVE = "sync.track.move"
    TRACK_RETRY = "sync.track.retry"
    TRACK_INDEXED = "sync.track.indexed"
    TRACK_REFRESHED = "sync.track.refreshed"
    TRACK_UNCHANGED = "sync.track.unchanged"
    TRACK_CANCELLED = "sync.track.cancelled"
    TRACK_ROLLBACK = "sync.track.rollback"
    TRACK_QUARANTINED = "sync.track.quarantined"
    TRACK_INCONSISTENT = "sync.track.inconsistent"
    TRACK_REMOVED = "sync.track.removed"
    FILE_UNSUPPORTED = "sync.file.unsupported"


class SyncState(StrEnum):
    """Lifecycle states of one in-flight track."""

    DETECTED = "detected"
    VALIDATED = "validated"
    PATH_RESOLVED = "path-resolved"
    MOVED = "moved"
    INDEXED = "indexed"
    REJECTED = "rejected"
    QUARANTINED = "quarantined"


class QuarantineReason(StrEnum):
    """Failure reasons that are not tag rejections."""

    IO_FAILURE = "io-failure"
    INDEX_COMMIT_FAILURE = "index-commit-failure"
    COLLISION_EXHAUSTED = "collision-exhausted"
    UNEXPECTED_ERROR = "unexpected-error"


@dataclass(frozen=True, slots=True)
class Indexed:
    """The track is at ``path`` and the index agrees."""

    identity: str
    path: str
    source_path: Path
    refreshed: bool = False
    moved: bool = True


@dataclass(frozen=True, slots=True)
class Rejected:
    """Validation failed; the file stays where it is."""

    source_path: Path
    reason: str
    identity: str | None = None


@dataclass(frozen=True, slots=True)
class Quarantined:
    """The track needs operator attention.

    ``inconsistent`` means a compensating move failed and the filesystem and
    index disagree.
    """

    source_path: Path
    reason: str
    identity: str | None = None
    inconsistent: bool = False
    location: Path | None = None
    previously_recorded: bool = False


@dataclass(frozen=True, slots=True)
class Unchanged:
    """Refresh found nothing to do."""

    identity: str
    path: str


@dataclass(frozen=True, slots=True)
class Removed:
    """The indexed file no longer exists, so its record was dropped."""

    identity: str
    path: str


@dataclass(frozen=True, slots=True)
class Cancelled:
    """The task was cancelled before its move began."""

    source_path: Path


SyncOutcome = Indexed | Rejected | Quarantined | Unchanged | Removed | Cancelled


def outcome_label(outcome: SyncOutcome) -> str:
    """Short label used in summaries and tables."""

    return type(outcome).__name__.lower()


class CancelToken:
    """Cooperative cancellation flag checked up to the start of a move."""

    def __init__(self) -> None:
        self._event: threading.Event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


__all__ = [
    "CancelToken",
    "Cancelled",
    "Indexed",
    "QuarantineReason",
    "Quarantined",
    "Rejected",
    "Removed",
    "SyncEvent",
    "SyncOutcome",
    "SyncState",
    "Unchanged",
    "outcome_label",
]
