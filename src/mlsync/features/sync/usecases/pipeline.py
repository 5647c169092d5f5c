"""src/mlsync/features/sync/usecases/pipeline.py
What: Bounded task queue plus worker threads that drive the synchronizer.
Why: Decouple inbox detection from processing and make back-pressure and
cancellation explicit.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import defaultdict
from collections.abc import Callable, Iterable
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Any, final

from mlsync.config.settings import CUE_SHEET_SUFFIX
from mlsync.platform.logging import logger

from .sync_types import CancelToken, SyncEvent, SyncOutcome, outcome_label
from .synchronizer import LibrarySynchronizer, PreparedTrack

DEFAULT_QUEUE_SIZE = 256


@dataclass(slots=True)
class _Job:
    work: Callable[[], Any]
    future: Future[Any]


@dataclass(slots=True)
class InboxTask:
    """A queued inbox file with its cancel token."""

    path: Path
    token: CancelToken
    future: Future[SyncOutcome | None]


@final
class SyncPipeline:
    """Worker pool consuming inbox tasks.

    ``submit`` is used by the watcher for single arrivals; ``scan_inbox``
    processes every file currently in the inbox, serializing entries that share
    a canonical base path in ascending identity order.
    """

    def __init__(
        self,
        synchronizer: LibrarySynchronizer,
        *,
        workers: int,
        is_supported: Callable[[Path], bool],
        sweep_unsupported: bool = True,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self.synchronizer: LibrarySynchronizer = synchronizer
        self.workers: int = max(1, workers)
        self.is_supported: Callable[[Path], bool] = is_supported
        self.sweep_unsupported: bool = sweep_unsupported
        self._queue: queue.Queue[_Job | None] = queue.Queue(maxsize=max(1, queue_size))
        self._threads: list[threading.Thread] = []
        self._pending: dict[Path, InboxTask] = {}
        self._pending_lock: threading.Lock = threading.Lock()
        self._scan_lock: threading.Lock = threading.Lock()
        self._stopped: bool = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._threads:
            return
        self._stopped = False
        for number in range(self.workers):
            thread = threading.Thread(target=self._worker, name=f"mlsync-worker-{number}", daemon=True)
            thread.start()
            self._threads.append(thread)
        logger.debug("Started %d sync workers", self.workers)

    def stop(self, *, cancel_pending: bool = True) -> None:
        """Stop accepting work and join the workers.

        Pending inbox tasks are cancelled first when ``cancel_pending`` is set;
        tasks whose move already started run to completion.
        """
        if self._stopped:
            return
        self._stopped = True
        if cancel_pending:
            _ = self.cancel_all()
        for _thread in self._threads:
            self._queue.put(None)
        for thread in self._threads:
            thread.join()
        self._threads.clear()
        logger.debug("Sync workers stopped")

    @property
    def running(self) -> bool:
        return bool(self._threads) and not self._stopped

    @property
    def pending(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def _worker(self) -> None:
        while True:
            job = self._queue.get()
            try:
                if job is None:
                    return
                if not job.future.set_running_or_notify_cancel():
                    continue
                try:
                    job.future.set_result(job.work())
                except Exception as exc:
                    logger.exception("Sync task failed: %s", exc)
                    job.future.set_exception(exc)
            finally:
                self._queue.task_done()

    def _enqueue(self, work: Callable[[], Any]) -> Future[Any]:
        if not self.running:
            self.start()
        future: Future[Any] = Future()
        self._queue.put(_Job(work, future))
        return future

    # ------------------------------------------------------------------
    # Single arrivals
    # ------------------------------------------------------------------

    def submit(self, path: Path) -> Future[SyncOutcome | None]:
        """Queue one inbox file; a file already pending returns its existing future."""

        with self._pending_lock:
            existing = self._pending.get(path)
            if existing is not None and not existing.token.cancelled:
                return existing.future
            token = CancelToken()
            future: Future[SyncOutcome | None] = Future()
            task = InboxTask(path, token, future)
            self._pending[path] = task

        def _run() -> SyncOutcome | None:
            try:
                return self._process(path, token)
            finally:
                self._forget(task)

        inner = self._enqueue(_run)
        inner.add_done_callback(lambda done: _chain(done, future))
        return future

    def cancel(self, path: Path) -> bool:
        """Cancel a pending task; returns False when nothing was pending."""

        with self._pending_lock:
            task = self._pending.get(path)
        if task is None:
            return False
        task.token.cancel()
        return True

    def cancel_all(self) -> int:
        with self._pending_lock:
            tasks = list(self._pending.values())
        for task in tasks:
            task.token.cancel()
        return len(tasks)

    def _forget(self, task: InboxTask) -> None:
        with self._pending_lock:
            if self._pending.get(task.path) is task:
                del self._pending[task.path]

    def _process(self, path: Path, token: CancelToken) -> SyncOutcome | None:
        if not path.is_file():
            logger.debug("Inbox file vanished before processing: %s", path)
            return None
        if self.synchronizer.is_reserved(path) or _is_cue_sheet(path):
            return None
        if not self.is_supported(path):
            if self.sweep_unsupported:
                _ = self.synchronizer.set_aside_unsupported(path)
            return None
        try:
            return self.synchronizer.process_inbox_file(path, token)
        except Exception as exc:
            logger.exception("Unexpected error while processing %s", path)
            return self.synchronizer.record_failure(path, exc)

    # ------------------------------------------------------------------
    # Full scans
    # ------------------------------------------------------------------

    def list_inbox(self) -> list[Path]:
        """Return inbox files outside the reserved folders, sorted."""

        root = self.synchronizer.inbox_root
        if not root.is_dir():
            return []
        return sorted(
            path for path in root.rglob("*") if path.is_file() and not self.synchronizer.is_reserved(path)
        )

    def scan_inbox(self, token: CancelToken | None = None) -> list[SyncOutcome]:
        """Process every file currently in the inbox and wait for the result.

        Must not be called from a worker thread.
        """
        token = token or CancelToken()
        with self._scan_lock:
            started = time.perf_counter()
            with self._pending_lock:
                queued = set(self._pending)
            files = [path for path in self.list_inbox() if path not in queued]
            audio = [path for path in files if self.is_supported(path)]
            unsupported = [path for path in files if not self.is_supported(path) and not _is_cue_sheet(path)]

            if not audio:
                self._sweep(unsupported)
                logger.info(
                    "Inbox is empty",
                    extra={"sync_event": SyncEvent.SCAN_EMPTY.value, "source_path": str(self.synchronizer.inbox_root)},
                )
                return []

            logger.info(
                "Scanning %d inbox files",
                len(audio),
                extra={"sync_event": SyncEvent.SCAN_START.value, "source_path": str(self.synchronizer.inbox_root)},
            )

            prepared_futures = [
                self._enqueue(lambda path=path: self.synchronizer.prepare(path, token)) for path in audio
            ]
            results: dict[Path, SyncOutcome] = {}
            groups: dict[str, list[PreparedTrack]] = defaultdict(list)
            for path, future in zip(audio, prepared_futures, strict=True):
                try:
                    prepared = future.result()
                except Exception as exc:
                    results[path] = self.synchronizer.record_failure(path, exc)
                    continue
                if isinstance(prepared, PreparedTrack):
                    groups[prepared.stem_key].append(prepared)
                else:
                    results[path] = prepared

            # Companion files must still sit beside their audio while it is prepared.
            self._sweep(unsupported)

            commit_futures = [
                self._enqueue(lambda members=members: self._commit_group(members, token))
                for members in groups.values()
            ]
            for future in commit_futures:
                results.update(future.result())

            outcomes = [results[path] for path in audio if path in results]
            self._log_summary(outcomes, time.perf_counter() - started)
            return outcomes

    def _commit_group(self, members: Iterable[PreparedTrack], token: CancelToken) -> dict[Path, SyncOutcome]:
        results: dict[Path, SyncOutcome] = {}
        for prepared in sorted(members, key=lambda prepared: prepared.identity):
            try:
                results[prepared.source_path] = self.synchronizer.commit(prepared, token)
            except Exception as exc:
                logger.exception("Unexpected error while committing %s", prepared.source_path)
                results[prepared.source_path] = self.synchronizer.record_failure(
                    prepared.source_path, exc, prepared.identity
                )
        return results

    def _sweep(self, paths: Iterable[Path]) -> None:
        if not self.sweep_unsupported:
            return
        for path in paths:
            _ = self.synchronizer.set_aside_unsupported(path)

    @staticmethod
    def _log_summary(outcomes: list[SyncOutcome], elapsed: float) -> None:
        counts: dict[str, int] = defaultdict(int)
        for outcome in outcomes:
            counts[outcome_label(outcome)] += 1
        summary = ", ".join(f"{label}={count}" for label, count in sorted(counts.items()))
        logger.log(
            logging.INFO,
            "Inbox scan finished: %s",
            summary,
            extra={
                "sync_event": SyncEvent.SCAN_COMPLETE.value,
                "duration_ms": elapsed * 1000,
                "reason": summary,
            },
        )


def _is_cue_sheet(path: Path) -> bool:
    return path.suffix.lower() == CUE_SHEET_SUFFIX


def _chain(source: Future[Any], target: Future[SyncOutcome | None]) -> None:
    if target.done():
        return
    if source.cancelled():
        _ = target.cancel()
        return
    error = source.exception()
    if error is not None:
        target.set_exception(error)
    else:
        target.set_result(source.result())


__all__ = ["InboxTask", "SyncPipeline"]
