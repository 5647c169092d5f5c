"""Application service owning one running library context.

Where: application/services/library_service.py
What: Construct the index, synchronizer, pipeline and watcher from a ``Config``
and expose the boundary operations used by the CLI and other front ends.
Why: All long-lived state has one explicit owner with a defined open and close.
"""

from __future__ import annotations

import fnmatch
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Self, final

from mlsync.config.config import Config
from mlsync.config.settings import ROOT_POLL_INTERVAL_SECONDS
from mlsync.features.index.domain.track import Track, path_key
from mlsync.features.index.usecases.metadata_index import MetadataIndex
from mlsync.features.metadata.usecases.extraction import MetadataExtractor
from mlsync.features.metadata.usecases.ports import TagReaderPort
from mlsync.features.path.domain.path_resolver import PathResolver
from mlsync.features.query.usecases.compiler import QueryCompiler
from mlsync.features.sync.adapters.watchdog_watcher import InboxWatcher
from mlsync.features.sync.usecases.file_operations import FileOperations
from mlsync.features.sync.usecases.pipeline import SyncPipeline
from mlsync.features.sync.usecases.sync_types import SyncOutcome
from mlsync.features.sync.usecases.synchronizer import LibrarySynchronizer, ReconcileReport, SyncSettings
from mlsync.platform.db.daos.inbox_status_dao import InboxStatusDAO, InboxStatusRecord
from mlsync.platform.db.daos.tracks_dao import TracksDAO
from mlsync.platform.db.db_manager import DatabaseManager
from mlsync.platform.instance_lock import InstanceLock
from mlsync.platform.logging import logger
from mlsync.shared.errors import NotFoundError, ServiceStateError


@dataclass(slots=True)
class _Runtime:
    db: DatabaseManager
    instance_lock: InstanceLock
    index: MetadataIndex
    inbox_status: InboxStatusDAO
    files: FileOperations
    synchronizer: LibrarySynchronizer
    pipeline: SyncPipeline
    watcher: InboxWatcher | None = None


@final
class LibraryService:
    """Service context for one library root and its inbox.

    ``open`` waits for the roots, takes the single-instance lock, attaches the
    index and reconciles it with the tree; ``close`` stops the watcher and
    workers, closes the database and releases the lock.
    Every boundary operation raises ``ServiceStateError`` while closed.
    """

    def __init__(
        self,
        config: Config,
        *,
        reader: TagReaderPort | None = None,
        db_factory: Callable[[Path], DatabaseManager] | None = None,
        root_wait_seconds: float = 0.0,
        reconcile_on_open: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config: Config = config
        self.library_root, self.inbox_root = config.require_roots()
        self._reader: TagReaderPort = reader or MetadataExtractor
        self._db_factory: Callable[[Path], DatabaseManager] = db_factory or DatabaseManager
        self._root_wait_seconds: float = root_wait_seconds
        self._reconcile_on_open: bool = reconcile_on_open
        self._sleep: Callable[[float], None] = sleep
        self._runtime: _Runtime | None = None
        self.last_reconcile: ReconcileReport | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._runtime is not None

    def open(self) -> Self:
        """Attach the index and prepare workers.

        Raises:
            ServiceStateError: If the roots do not appear within the wait window,
                or another service already has the index open.
        """
        if self._runtime is not None:
            return self
        self._wait_for_roots()

        db_path = self.config.resolved_db_path()
        instance_lock = InstanceLock.for_database(db_path)
        instance_lock.acquire()
        try:
            db = self._db_factory(db_path)
            db.connect()
        except Exception:
            instance_lock.release()
            raise
        conn = db.require_connection()
        try:
            index = MetadataIndex(TracksDAO(conn, db.lock))
            loaded = index.load()
            inbox_status = InboxStatusDAO(conn, db.lock)
            files = FileOperations(
                self._reader,
                timeout_seconds=self.config.io_timeout_seconds,
                max_workers=self.config.workers,
            )
            synchronizer = LibrarySynchronizer(
                index=index,
                resolver=PathResolver(self.library_root),
                files=files,
                inbox_root=self.inbox_root,
                inbox_status=inbox_status,
                settings=SyncSettings(
                    move_retries=self.config.move_retries,
                    retry_backoff_seconds=self.config.retry_backoff_seconds,
                ),
                sleep=self._sleep,
            )
            pipeline = SyncPipeline(
                synchronizer,
                workers=self.config.workers,
                is_supported=self._reader.is_supported,
                sweep_unsupported=self.config.sweep_unsupported,
            )
        except Exception:
            db.close()
            instance_lock.release()
            raise

        self._runtime = _Runtime(db, instance_lock, index, inbox_status, files, synchronizer, pipeline)
        logger.info("Opened library %s (%d indexed tracks)", self.library_root, loaded)

        if self._reconcile_on_open:
            self.last_reconcile = synchronizer.reconcile(self._reader.is_supported)
            report = self.last_reconcile
            if report.removed or report.adopted:
                logger.info(
                    "Reconciled library: %d stale records dropped, %d untracked files handled",
                    len(report.removed),
                    len(report.adopted),
                )
        return self

    def close(self) -> None:
        runtime = self._runtime
        if runtime is None:
            return
        self._runtime = None
        if runtime.watcher is not None:
            runtime.watcher.stop()
        runtime.pipeline.stop()
        runtime.files.shutdown()
        runtime.db.close()
        runtime.instance_lock.release()
        logger.info("Closed library %s", self.library_root)

    def __enter__(self) -> Self:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _wait_for_roots(self) -> None:
        deadline = time.monotonic() + self._root_wait_seconds
        while True:
            missing = [root for root in (self.library_root, self.inbox_root) if not root.is_dir()]
            if not missing:
                return
            if time.monotonic() >= deadline:
                names = ", ".join(str(root) for root in missing)
                raise ServiceStateError(f"root directory not available: {names}")
            logger.info("Waiting for %s to become available", ", ".join(str(root) for root in missing))
            self._sleep(ROOT_POLL_INTERVAL_SECONDS)

    def _require(self) -> _Runtime:
        if self._runtime is None:
            raise ServiceStateError("library service is not open")
        return self._runtime

    @property
    def index(self) -> MetadataIndex:
        return self._require().index

    @property
    def synchronizer(self) -> LibrarySynchronizer:
        return self._require().synchronizer

    @property
    def watcher(self) -> InboxWatcher | None:
        return self._require().watcher

    # ------------------------------------------------------------------
    # Boundary operations
    # ------------------------------------------------------------------

    def enqueue_inbox_scan(self) -> list[SyncOutcome]:
        """Run one synchronization pass over the inbox and return per-file outcomes."""

        return self._require().pipeline.scan_inbox()

    def refresh(
        self,
        identity: str | None = None,
        *,
        path_selector: str | None = None,
        all_tracks: bool = False,
    ) -> list[SyncOutcome]:
        """Re-resolve one or more indexed tracks.

        Args:
            identity: A single track identity.
            path_selector: Glob matched case-insensitively against canonical paths.
            all_tracks: Refresh every indexed track.

        Raises:
            ValueError: Unless exactly one selector is given.
            NotFoundError: If ``identity`` is not indexed.
        """
        runtime = self._require()
        chosen = sum((identity is not None, path_selector is not None, all_tracks))
        if chosen != 1:
            raise ValueError("refresh needs exactly one of identity, path_selector or all_tracks")

        if identity is not None:
            return [runtime.synchronizer.refresh(identity)]

        snapshot = runtime.index.snapshot()
        if path_selector is not None:
            pattern = path_key(path_selector)
            targets = [track.identity for track in snapshot if fnmatch.fnmatchcase(track.key, pattern)]
        else:
            targets = [track.identity for track in snapshot]

        outcomes: list[SyncOutcome] = []
        for target in targets:
            try:
                outcomes.append(runtime.synchronizer.refresh(target))
            except NotFoundError:
                logger.debug("Track %s vanished before refresh", target)
        return outcomes

    def query(self, expression: str) -> list[Track]:
        """Evaluate a bang expression against a snapshot of the index.

        Raises:
            QuerySyntaxError: If ``expression`` is malformed.
        """
        runtime = self._require()
        compiled = QueryCompiler.compile(expression)
        return list(runtime.index.query(compiled))

    def get_track(self, identity: str) -> Track:
        """Return the indexed track for ``identity``.

        Raises:
            NotFoundError: If nothing is indexed under ``identity``.
        """
        track = self._require().index.get(identity)
        if track is None:
            raise NotFoundError(f"no indexed track with identity {identity}")
        return track

    def start_watching(self) -> None:
        """Submit settled inbox arrivals to the worker pool until closed."""

        runtime = self._require()
        if runtime.watcher is not None:
            return
        runtime.pipeline.start()
        runtime.watcher = InboxWatcher(
            self.inbox_root,
            runtime.pipeline.submit,
            settle_seconds=self.config.settle_seconds,
            is_ignored=runtime.synchronizer.is_reserved,
            roots=(self.library_root, self.inbox_root),
            on_restart=self._resume_after_outage,
        )
        runtime.watcher.start()

    def _resume_after_outage(self) -> None:
        """Catch up on changes made while a root was unavailable."""

        runtime = self._runtime
        if runtime is None:
            return
        report = runtime.synchronizer.reconcile(self._reader.is_supported)
        outcomes = runtime.pipeline.scan_inbox()
        logger.info(
            "Resumed after root outage: %d stale records dropped, %d untracked files handled, %d inbox files",
            len(report.removed),
            len(report.adopted),
            len(outcomes),
        )

    def inbox_status(self) -> list[InboxStatusRecord]:
        """Recorded rejections and quarantines, oldest path first."""

        return self._require().inbox_status.list_all()

    def release_quarantine(self, path: Path) -> Path:
        """Clear the quarantine marker for ``path`` so the next scan retries it.

        Files parked under the quarantine folder are moved back into the inbox.

        Returns:
            Where the file now lives.

        Raises:
            NotFoundError: If no status is recorded for ``path``.
        """
        runtime = self._require()
        record = runtime.inbox_status.get(path)
        if record is None:
            raise NotFoundError(f"no recorded status for {path}")

        location = path
        quarantine_root = runtime.synchronizer.quarantine_root
        if path.is_file() and path.is_relative_to(quarantine_root):
            location = _free_path(self.inbox_root / path.relative_to(quarantine_root))
            runtime.files.move(path, location)
        _ = runtime.inbox_status.clear(path)
        logger.info("Released %s from quarantine", path)
        return location


def _free_path(candidate: Path) -> Path:
    counter = 2
    result = candidate
    while result.exists():
        result = candidate.with_name(f"{candidate.stem} ({counter}){candidate.suffix}")
        counter += 1
    return result


__all__ = ["LibraryService"]
