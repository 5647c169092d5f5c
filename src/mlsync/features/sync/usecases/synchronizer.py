"""src/mlsync/features/sync/usecases/synchronizer.py
What: Drive one track through Detected -> Validated -> PathResolved -> Moved -> Indexed.
Why: Keep the library tree and the metadata index in lock-step for imports,
refreshes and startup reconciliation.

Locking order is always identity lock, then stem lock, then the index publish
lock. The publish lock is only held for a single move attempt plus its index
commit (or compensating move), never across retry back-off sleeps.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import Any, TypeVar, final

from mlsync.config.settings import QUARANTINE_DIR_NAME, RESERVED_INBOX_DIRS, UNSUPPORTED_DIR_NAME
from mlsync.features.index.domain.track import Track
from mlsync.features.index.usecases.metadata_index import MetadataIndex
from mlsync.features.path.domain.path_resolver import PathResolver
from mlsync.features.validation.domain.validator import Rejected as Rejection
from mlsync.features.validation.domain.validator import RejectionReason, TagValidator
from mlsync.platform.filesystem import prune_empty_parents, remove_empty_directories
from mlsync.platform.logging import logger
from mlsync.shared.errors import CollisionError, IndexCommitFailure, IOFailure, NotFoundError
from mlsync.shared.track_metadata import NormalizedMetadata

from .file_operations import FileOperations
from .locks import KeyedLocks
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
)

T = TypeVar("T")


class _Origin(StrEnum):
    INBOX = "inbox"
    REFRESH = "refresh"
    ADOPT = "adopt"


@dataclass(frozen=True, slots=True)
class SyncSettings:
    """Retry policy for filesystem operations."""

    move_retries: int = 3
    retry_backoff_seconds: float = 0.5

    def delay_for(self, failed_attempts: int) -> float:
        """Back-off before the next attempt, doubling per failure."""

        return self.retry_backoff_seconds * (2 ** (failed_attempts - 1))


@dataclass(frozen=True, slots=True)
class PreparedTrack:
    """An inbox file that passed validation and awaits placement."""

    source_path: Path
    identity: str
    metadata: NormalizedMetadata
    provenance: str | None
    base_path: str

    @property
    def stem_key(self) -> str:
        return PathResolver.stem_key(self.base_path)


@dataclass(slots=True)
class ReconcileReport:
    """Summary of a startup reconciliation pass."""

    removed: list[Removed] = field(default_factory=list)
    adopted: list[SyncOutcome] = field(default_factory=list)


@final
class LibrarySynchronizer:
    """Reconcile inbox, library tree and index one track at a time."""

    def __init__(
        self,
        *,
        index: MetadataIndex,
        resolver: PathResolver,
        files: FileOperations,
        inbox_root: Path,
        inbox_status: InboxStatusPort,
        settings: SyncSettings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.index: MetadataIndex = index
        self.resolver: PathResolver = resolver
        self.files: FileOperations = files
        self.inbox_root: Path = inbox_root
        self.inbox_status: InboxStatusPort = inbox_status
        self.settings: SyncSettings = settings or SyncSettings()
        self._sleep: Callable[[float], None] = sleep
        self.identity_locks: KeyedLocks = KeyedLocks("identity")
        self.stem_locks: KeyedLocks = KeyedLocks("stem")

    @property
    def library_root(self) -> Path:
        return self.resolver.library_root

    @property
    def quarantine_root(self) -> Path:
        return self.inbox_root / QUARANTINE_DIR_NAME

    @property
    def unsupported_root(self) -> Path:
        return self.inbox_root / UNSUPPORTED_DIR_NAME

    # ------------------------------------------------------------------
    # Logging helpers
    # ------------------------------------------------------------------

    def _log(self, level: int, event: SyncEvent, message: str, *args: object, **context: Any) -> None:
        extra: dict[str, Any] = {"sync_event": event.value}
        for key, value in context.items():
            extra[key] = str(value) if isinstance(value, Path) else value
        logger.log(level, message, *args, extra=extra, stacklevel=2)

    def _transition(self, state: SyncState, path: Path, identity: str | None = None) -> None:
        logger.debug("%s -> %s (identity=%s)", path, state.value, identity[:12] if identity else "-")

    # ------------------------------------------------------------------
    # Inbox import
    # ------------------------------------------------------------------

    def is_reserved(self, path: Path) -> bool:
        """Return True for paths inside the quarantine or unsupported folders."""

        try:
            relative = path.relative_to(self.inbox_root)
        except ValueError:
            return False
        return bool(relative.parts) and relative.parts[0] in RESERVED_INBOX_DIRS

    def provenance_for(self, path: Path) -> str | None:
        """Top-level inbox folder ``path`` was dropped into, if any."""

        relative = path.relative_to(self.inbox_root)
        return relative.parts[0] if len(relative.parts) > 1 else None

    def prepare(self, path: Path, token: CancelToken | None = None) -> PreparedTrack | SyncOutcome:
        """Identify, read and validate one inbox file.

        Returns the prepared track, or a terminal outcome when the file is
        rejected, unreadable, still quarantined, or the task was cancelled.
        """
        if token is not None and token.cancelled:
            return self._cancelled(path)

        self._transition(SyncState.DETECTED, path)
        self._log(
            logging.DEBUG,
            SyncEvent.TRACK_DETECTED,
            "Detected %s",
            path,
            source_path=path,
            source_base_path=self.inbox_root,
        )

        try:
            identity = self._with_retries(path, lambda: self.files.identify(path))
        except IOFailure as exc:
            return self._quarantine_in_place(path, None, QuarantineReason.IO_FAILURE, exc)

        status = self.inbox_status.get(path)
        if status is not None and status.state == "quarantined" and status.identity == identity:
            logger.debug("Skipping %s: quarantined (%s) until released", path, status.reason)
            return Quarantined(
                source_path=path,
                reason=status.reason,
                identity=identity,
                inconsistent=status.inconsistent,
                location=path,
                previously_recorded=True,
            )

        try:
            raw = self._with_retries(path, lambda: self.files.read_tags(path))
        except IOFailure as exc:
            return self._quarantine_in_place(path, identity, QuarantineReason.IO_FAILURE, exc)

        decision = TagValidator.validate(raw)
        if isinstance(decision, Rejection):
            return self._reject(path, identity, decision.reason)

        self._transition(SyncState.VALIDATED, path, identity)
        if token is not None and token.cancelled:
            return self._cancelled(path)

        return PreparedTrack(
            source_path=path,
            identity=identity,
            metadata=decision.metadata,
            provenance=self.provenance_for(path),
            base_path=self.resolver.base_path(decision.metadata),
        )

    def commit(self, prepared: PreparedTrack, token: CancelToken | None = None) -> SyncOutcome:
        """Resolve, move and index a prepared inbox file."""

        with self.identity_locks.hold(prepared.identity):
            if token is not None and token.cancelled:
                return self._cancelled(prepared.source_path)
            if not prepared.source_path.is_file():
                logger.debug("Inbox file vanished before commit: %s", prepared.source_path)
                return Cancelled(prepared.source_path)

            existing = self.index.get(prepared.identity)
            if existing is not None:
                if self.resolver.absolute(existing.path).is_file():
                    return self._reject(prepared.source_path, prepared.identity, RejectionReason.DUPLICATE)
                logger.info("Replacing stale record for %s (file missing at %s)", prepared.identity[:12], existing.path)

            with self.stem_locks.hold(prepared.stem_key):
                try:
                    target = self.resolver.resolve(
                        prepared.metadata,
                        identity=prepared.identity,
                        holder_of=self.index.holder_of,
                    )
                except CollisionError as exc:
                    logger.error("Disambiguation exhausted for %s: %s", prepared.source_path, exc)
                    return self._quarantine_in_place(
                        prepared.source_path, prepared.identity, QuarantineReason.COLLISION_EXHAUSTED, exc
                    )
                self._transition(SyncState.PATH_RESOLVED, prepared.source_path, prepared.identity)

                # Last cancellation point: the move starts below.
                if token is not None and token.cancelled:
                    return self._cancelled(prepared.source_path)

                track = Track(
                    identity=prepared.identity,
                    path=target,
                    metadata=prepared.metadata,
                    provenance=prepared.provenance,
                )
                return self._publish(prepared.source_path, track, origin=_Origin.INBOX)

    def process_inbox_file(self, path: Path, token: CancelToken | None = None) -> SyncOutcome:
        """Run the full import pipeline for one inbox file."""

        prepared = self.prepare(path, token)
        if not isinstance(prepared, PreparedTrack):
            return prepared
        return self.commit(prepared, token)

    def record_failure(self, path: Path, error: Exception, identity: str | None = None) -> SyncOutcome:
        """Quarantine an inbox file in place after an unexpected error while processing it."""

        return self._quarantine_in_place(path, identity, QuarantineReason.UNEXPECTED_ERROR, error)

    def set_aside_unsupported(self, path: Path) -> Path | None:
        """Move a non-audio inbox file into the unsupported folder."""

        destination = self._unique_destination(self.unsupported_root / path.relative_to(self.inbox_root))
        try:
            self.files.move(path, destination)
        except IOFailure as exc:
            logger.warning("Could not set aside %s: %s", path, exc)
            return None
        self._log(
            logging.INFO,
            SyncEvent.FILE_UNSUPPORTED,
            "Set aside unsupported file %s",
            path,
            source_path=path,
            source_base_path=self.inbox_root,
            target_path=destination,
        )
        prune_empty_parents(path, stop_at=self._inbox_prune_boundary(path))
        return destination

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh(self, identity: str, token: CancelToken | None = None) -> SyncOutcome:
        """Re-read tags of an indexed track and move it if its canonical path changed.

        Raises:
            NotFoundError: If ``identity`` is not indexed.
        """
        with self.identity_locks.hold(identity):
            track = self.index.get(identity)
            if track is None:
                raise NotFoundError(f"no indexed track with identity {identity}")

            current = self.resolver.absolute(track.path)
            if not current.is_file():
                return self._drop_missing(track)

            if token is not None and token.cancelled:
                return self._cancelled(current)

            try:
                raw = self._with_retries(current, lambda: self.files.read_tags(current))
            except IOFailure as exc:
                self._log(
                    logging.ERROR,
                    SyncEvent.TRACK_QUARANTINED,
                    "Could not re-read %s: %s",
                    current,
                    exc,
                    identity=identity,
                    source_path=current,
                    reason=QuarantineReason.IO_FAILURE.value,
                )
                return Quarantined(current, QuarantineReason.IO_FAILURE.value, identity, location=current)

            decision = TagValidator.validate(raw)
            if isinstance(decision, Rejection):
                return self._quarantine_indexed(track, current, decision.reason.value)
            metadata = decision.metadata
            self._transition(SyncState.VALIDATED, current, identity)

            base = self.resolver.base_path(metadata)
            with self.stem_locks.hold(PathResolver.stem_key(base)):
                try:
                    target = self.resolver.resolve(
                        metadata,
                        identity=identity,
                        holder_of=self.index.holder_of,
                        current=track.path,
                    )
                except CollisionError as exc:
                    logger.error("Disambiguation exhausted while refreshing %s: %s", track.path, exc)
                    return Quarantined(
                        current, QuarantineReason.COLLISION_EXHAUSTED.value, identity, location=current
                    )
                self._transition(SyncState.PATH_RESOLVED, current, identity)

                if target == track.path:
                    if metadata == track.metadata:
                        self._log(
                            logging.DEBUG,
                            SyncEvent.TRACK_UNCHANGED,
                            "Unchanged %s",
                            track.path,
                            identity=identity,
                            source_path=track.path,
                        )
                        return Unchanged(identity, track.path)
                    return self._update_in_place(track.with_location(target, metadata), current)

                if token is not None and token.cancelled:
                    return self._cancelled(current)
                return self._publish(current, track.with_location(target, metadata), origin=_Origin.REFRESH)

    def _update_in_place(self, updated: Track, current: Path) -> SyncOutcome:
        try:
            with self.index.publishing():
                self.index.upsert(updated)
        except IndexCommitFailure as exc:
            logger.error("Failed to record new tags for %s: %s", updated.path, exc)
            return Quarantined(
                current,
                QuarantineReason.INDEX_COMMIT_FAILURE.value,
                updated.identity,
                location=current,
            )
        self._log(
            logging.INFO,
            SyncEvent.TRACK_REFRESHED,
            "Refreshed tags for %s",
            updated.path,
            identity=updated.identity,
            source_path=updated.path,
        )
        return Indexed(updated.identity, updated.path, current, refreshed=True, moved=False)

    def _drop_missing(self, track: Track) -> SyncOutcome:
        try:
            with self.index.publishing():
                self.index.remove(track.identity)
        except IndexCommitFailure as exc:
            logger.error("Failed to drop stale record %s: %s", track.identity, exc)
            raise
        self._log(
            logging.WARNING,
            SyncEvent.TRACK_REMOVED,
            "Dropped stale record %s",
            track.path,
            identity=track.identity,
            source_path=track.path,
        )
        return Removed(track.identity, track.path)

    def _quarantine_indexed(self, track: Track, current: Path, reason: str) -> SyncOutcome:
        """Move an indexed track that no longer validates out of the library."""

        destination = self._unique_destination(self.quarantine_root / PurePosixPath(track.path))
        with self.index.publishing():
            try:
                self.files.move(current, destination)
            except IOFailure as exc:
                logger.error("Could not quarantine %s (%s): %s", current, reason, exc)
                return Quarantined(current, reason, track.identity, location=current)
            try:
                self.index.remove(track.identity)
            except IndexCommitFailure as exc:
                logger.error("Could not drop %s from the index: %s", track.identity, exc)
                return self._roll_back(current, destination, track, exc, origin=_Origin.REFRESH)

        _ = self.inbox_status.record(destination, state="quarantined", reason=reason, identity=track.identity)
        prune_empty_parents(current, stop_at=self.library_root)
        self._log(
            logging.ERROR,
            SyncEvent.TRACK_QUARANTINED,
            "Quarantined %s (%s)",
            track.path,
            reason,
            identity=track.identity,
            source_path=current,
            source_base_path=self.library_root,
            reason=reason,
        )
        return Quarantined(current, reason, track.identity, location=destination)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, is_audio: Callable[[Path], bool]) -> ReconcileReport:
        """Make the index and the library tree agree after a restart.

        Records whose file is missing are dropped. Audio files under the
        library root that are not indexed are adopted into canonical place or
        quarantined.
        """
        report = ReconcileReport()
        for track in self.index.snapshot():
            if not self.resolver.absolute(track.path).is_file():
                with self.identity_locks.hold(track.identity):
                    report.removed.append(self._drop_missing(track))

        untracked = sorted(
            path
            for path in self.library_root.rglob("*")
            if path.is_file()
            and is_audio(path)
            and self.index.get_by_path(self.resolver.relative(path)) is None
        )
        for path in untracked:
            report.adopted.append(self.adopt(path))

        remove_empty_directories(self.library_root)
        return report

    def adopt(self, path: Path) -> SyncOutcome:
        """Bring an unindexed file found under the library root into the index."""

        try:
            identity = self._with_retries(path, lambda: self.files.identify(path))
            raw = self._with_retries(path, lambda: self.files.read_tags(path))
        except IOFailure as exc:
            logger.error("Could not read untracked library file %s: %s", path, exc)
            return self._evict_from_library(path, None, QuarantineReason.IO_FAILURE.value)

        decision = TagValidator.validate(raw)
        if isinstance(decision, Rejection):
            return self._evict_from_library(path, identity, decision.reason.value)

        with self.identity_locks.hold(identity):
            existing = self.index.get(identity)
            if existing is not None and self.resolver.absolute(existing.path).is_file():
                return self._evict_from_library(path, identity, RejectionReason.DUPLICATE.value)

            base = self.resolver.base_path(decision.metadata)
            with self.stem_locks.hold(PathResolver.stem_key(base)):
                current = self.resolver.relative(path)
                try:
                    target = self.resolver.resolve(
                        decision.metadata,
                        identity=identity,
                        holder_of=self.index.holder_of,
                        current=current,
                    )
                except CollisionError:
                    return self._evict_from_library(path, identity, QuarantineReason.COLLISION_EXHAUSTED.value)
                track = Track(identity=identity, path=target, metadata=decision.metadata)
                return self._publish(path, track, origin=_Origin.ADOPT)

    def _evict_from_library(self, path: Path, identity: str | None, reason: str) -> SyncOutcome:
        destination = self._unique_destination(self.quarantine_root / path.relative_to(self.library_root))
        try:
            self.files.move(path, destination)
        except IOFailure as exc:
            logger.error("Could not move %s out of the library: %s", path, exc)
            return Quarantined(path, reason, identity, inconsistent=True, location=path)
        _ = self.inbox_status.record(destination, state="quarantined", reason=reason, identity=identity)
        self._log(
            logging.ERROR,
            SyncEvent.TRACK_QUARANTINED,
            "Quarantined untracked library file %s (%s)",
            path,
            reason,
            identity=identity,
            source_path=path,
            source_base_path=self.library_root,
            reason=reason,
        )
        return Quarantined(path, reason, identity, location=destination)

    # ------------------------------------------------------------------
    # Move + commit
    # ------------------------------------------------------------------

    def _publish(self, source: Path, track: Track, *, origin: _Origin) -> SyncOutcome:
        """Move ``source`` to the track's canonical path and commit the record."""

        attempts = self.settings.move_retries + 1
        failure: IOFailure | None = None

        for attempt in range(1, attempts + 1):
            with self.index.publishing():
                try:
                    track = self._reclaim_target(source, track)
                except CollisionError as exc:
                    return self._collision_exhausted(source, track.identity, exc, origin)
                destination = self.resolver.absolute(track.path)
                self._log(
                    logging.INFO,
                    SyncEvent.TRACK_MOVE,
                    "Moving %s",
                    source,
                    identity=track.identity,
                    source_path=source,
                    target_path=destination,
                    target_base_path=self.library_root,
                    attempt=attempt,
                )
                started = time.perf_counter()
                try:
                    if source != destination:
                        self.files.move(source, destination)
                except IOFailure as exc:
                    failure = exc
                else:
                    self._transition(SyncState.MOVED, destination, track.identity)
                    return self._commit_moved(source, destination, track, origin, started)

            assert failure is not None
            if not failure.retryable or attempt == attempts:
                break
            delay = self.settings.delay_for(attempt)
            self._log(
                logging.WARNING,
                SyncEvent.TRACK_RETRY,
                "Retrying move of %s in %.2fs: %s",
                source,
                delay,
                failure,
                identity=track.identity,
                source_path=source,
                attempt=attempt,
            )
            self._sleep(delay)

        assert failure is not None
        if origin is _Origin.INBOX:
            return self._quarantine_in_place(source, track.identity, QuarantineReason.IO_FAILURE, failure)
        self._log(
            logging.ERROR,
            SyncEvent.TRACK_QUARANTINED,
            "Could not move %s: %s",
            source,
            failure,
            identity=track.identity,
            source_path=source,
            reason=QuarantineReason.IO_FAILURE.value,
        )
        return Quarantined(source, QuarantineReason.IO_FAILURE.value, track.identity, location=source)

    def _reclaim_target(self, source: Path, track: Track) -> Track:
        """Re-resolve ``track`` when another identity claimed its path after it was resolved.

        Caller holds the publish lock. A title that already ends in ``(n)`` has
        its own stem lock, so it can claim a variant of a different base path
        between that track's resolve and its move.
        """
        holder = self.index.holder_of(track.key)
        if holder is None or holder == track.identity:
            return track
        target = self.resolver.resolve(track.metadata, identity=track.identity, holder_of=self.index.holder_of)
        logger.info("%s was claimed by %s; placing %s at %s", track.path, holder[:12], source, target)
        return track.with_location(target, track.metadata)

    def _collision_exhausted(
        self,
        source: Path,
        identity: str,
        error: CollisionError,
        origin: _Origin,
    ) -> SyncOutcome:
        if origin is _Origin.INBOX:
            return self._quarantine_in_place(source, identity, QuarantineReason.COLLISION_EXHAUSTED, error)
        logger.error("Disambiguation exhausted for %s: %s", source, error)
        return Quarantined(source, QuarantineReason.COLLISION_EXHAUSTED.value, identity, location=source)

    def _commit_moved(
        self,
        source: Path,
        destination: Path,
        track: Track,
        origin: _Origin,
        started: float,
    ) -> SyncOutcome:
        """Commit the record for a file that has just moved; caller holds the publish lock."""

        try:
            self.index.upsert(track)
        except IndexCommitFailure as exc:
            logger.error("Index commit failed for %s: %s", track.path, exc)
            return self._roll_back(source, destination, track, exc, origin=origin)

        self._transition(SyncState.INDEXED, destination, track.identity)
        moved = source != destination
        if origin is _Origin.INBOX:
            _ = self.inbox_status.clear(source)
            prune_empty_parents(source, stop_at=self._inbox_prune_boundary(source))
        elif moved:
            prune_empty_parents(source, stop_at=self.library_root)

        event = SyncEvent.TRACK_REFRESHED if origin is _Origin.REFRESH else SyncEvent.TRACK_INDEXED
        self._log(
            logging.INFO,
            event,
            "%s %s -> %s",
            "Refreshed" if origin is _Origin.REFRESH else "Indexed",
            source,
            track.path,
            identity=track.identity,
            source_path=source,
            source_base_path=self.library_root if origin is not _Origin.INBOX else self.inbox_root,
            target_path=destination,
            target_base_path=self.library_root,
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        return Indexed(
            track.identity,
            track.path,
            source,
            refreshed=origin is _Origin.REFRESH,
            moved=moved,
        )

    def _roll_back(
        self,
        source: Path,
        destination: Path,
        track: Track,
        error: IndexCommitFailure,
        *,
        origin: _Origin,
    ) -> SyncOutcome:
        """Move the file back to ``source`` after a failed index write."""

        reason = QuarantineReason.INDEX_COMMIT_FAILURE
        self._log(
            logging.WARNING,
            SyncEvent.TRACK_ROLLBACK,
            "Rolling back %s after index failure: %s",
            destination,
            error,
            identity=track.identity,
            source_path=destination,
            target_path=source,
        )

        restored = source == destination
        last_error: IOFailure | None = None
        for _attempt in range(self.settings.move_retries + 1):
            if restored:
                break
            try:
                self.files.move(destination, source)
                restored = True
            except IOFailure as exc:
                last_error = exc
                if not exc.retryable:
                    break

        if not restored:
            self._log(
                logging.ERROR,
                SyncEvent.TRACK_INCONSISTENT,
                "Inconsistent state for %s: file at %s, index not updated (%s)",
                track.identity,
                destination,
                last_error,
                identity=track.identity,
                source_path=destination,
                reason=reason.value,
            )
            _ = self.inbox_status.record(
                destination,
                state="quarantined",
                reason=reason.value,
                identity=track.identity,
                inconsistent=True,
            )
            return Quarantined(source, reason.value, track.identity, inconsistent=True, location=destination)

        prune_empty_parents(destination, stop_at=self.library_root)
        if origin is _Origin.INBOX:
            _ = self.inbox_status.record(source, state="quarantined", reason=reason.value, identity=track.identity)
        self._log(
            logging.ERROR,
            SyncEvent.TRACK_QUARANTINED,
            "Quarantined %s (%s)",
            source,
            reason.value,
            identity=track.identity,
            source_path=source,
            reason=reason.value,
        )
        return Quarantined(source, reason.value, track.identity, location=source)

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _with_retries(self, path: Path, operation: Callable[[], T]) -> T:
        attempts = self.settings.move_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except IOFailure as exc:
                if not exc.retryable or attempt == attempts:
                    raise
                delay = self.settings.delay_for(attempt)
                self._log(
                    logging.WARNING,
                    SyncEvent.TRACK_RETRY,
                    "Retrying read of %s in %.2fs: %s",
                    path,
                    delay,
                    exc,
                    source_path=path,
                    attempt=attempt,
                )
                self._sleep(delay)
        raise AssertionError("unreachable")

    def _reject(self, path: Path, identity: str | None, reason: RejectionReason) -> SyncOutcome:
        _ = self.inbox_status.record(path, state="rejected", reason=reason.value, identity=identity)
        self._transition(SyncState.REJECTED, path, identity)
        self._log(
            logging.WARNING,
            SyncEvent.TRACK_REJECTED,
            "Rejected %s (%s)",
            path,
            reason.value,
            identity=identity,
            source_path=path,
            source_base_path=self.inbox_root,
            reason=reason.value,
        )
        return Rejected(path, reason.value, identity)

    def _quarantine_in_place(
        self,
        path: Path,
        identity: str | None,
        reason: QuarantineReason,
        error: Exception,
    ) -> SyncOutcome:
        """Quarantine an inbox file that stays where it is."""

        _ = self.inbox_status.record(path, state="quarantined", reason=reason.value, identity=identity)
        self._transition(SyncState.QUARANTINED, path, identity)
        self._log(
            logging.ERROR,
            SyncEvent.TRACK_QUARANTINED,
            "Quarantined %s (%s): %s",
            path,
            reason.value,
            error,
            identity=identity,
            source_path=path,
            source_base_path=self.inbox_root,
            reason=reason.value,
        )
        return Quarantined(path, reason.value, identity, location=path)

    def _cancelled(self, path: Path) -> SyncOutcome:
        self._log(logging.INFO, SyncEvent.TRACK_CANCELLED, "Cancelled %s", path, source_path=path)
        return Cancelled(path)

    def _inbox_prune_boundary(self, path: Path) -> Path:
        provenance = self.provenance_for(path)
        return self.inbox_root / provenance if provenance else self.inbox_root

    @staticmethod
    def _unique_destination(destination: Path) -> Path:
        if not destination.exists():
            return destination
        counter = 2
        while True:
            candidate = destination.with_name(f"{destination.stem} ({counter}){destination.suffix}")
            if not candidate.exists():
                return candidate
            counter += 1


__all__ = ["LibrarySynchronizer", "PreparedTrack", "ReconcileReport", "SyncSettings"]
