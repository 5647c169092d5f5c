"""Where: features/sync/adapters/watchdog_watcher.py
What: Turn watchdog inbox events into pipeline submissions.
Why: Files are often still being copied when the first event fires, so an
arrival is only submitted once its size has stopped changing. Roots on
removable or network storage may vanish, so the observer is paused and
restarted around outages.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import final, override

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from mlsync.config.settings import ROOT_POLL_INTERVAL_SECONDS
from mlsync.platform.logging import logger


@final
class SettleTracker:
    """Delay callbacks until a file's size is unchanged for ``settle_seconds``."""

    def __init__(
        self,
        on_settled: Callable[[Path], object],
        *,
        settle_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.on_settled: Callable[[Path], object] = on_settled
        self.settle_seconds: float = settle_seconds
        self._clock: Callable[[], float] = clock
        self._lock: threading.Lock = threading.Lock()
        # path -> (last observed size, time the size was first observed)
        self._watching: dict[Path, tuple[int, float]] = {}
        self._stop: threading.Event = threading.Event()
        self._thread: threading.Thread | None = None

    def touch(self, path: Path) -> None:
        """Start or restart the settle timer for ``path``."""

        with self._lock:
            self._watching[path] = (-1, self._clock())

    def poll(self) -> list[Path]:
        """Fire callbacks for every settled file and return them."""

        now = self._clock()
        settled: list[Path] = []
        with self._lock:
            for path, (size, since) in list(self._watching.items()):
                try:
                    current = path.stat().st_size
                except OSError:
                    del self._watching[path]
                    continue
                if current != size:
                    self._watching[path] = (current, now)
                elif now - since >= self.settle_seconds:
                    del self._watching[path]
                    settled.append(path)
        for path in settled:
            _ = self.on_settled(path)
        return settled

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="mlsync-settle", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _run(self) -> None:
        interval = min(0.5, max(self.settle_seconds / 2, 0.05))
        while not self._stop.wait(interval):
            try:
                _ = self.poll()
            except Exception:
                logger.exception("Settle check failed")

    def __len__(self) -> int:
        with self._lock:
            return len(self._watching)


class _InboxEventHandler(FileSystemEventHandler):
    def __init__(self, tracker: SettleTracker, is_ignored: Callable[[Path], bool]) -> None:
        super().__init__()
        self.tracker: SettleTracker = tracker
        self.is_ignored: Callable[[Path], bool] = is_ignored

    def _track(self, raw_path: str | bytes) -> None:
        path = Path(raw_path.decode() if isinstance(raw_path, bytes) else raw_path)
        if self.is_ignored(path):
            return
        if path.is_dir():
            for child in path.rglob("*"):
                if child.is_file() and not self.is_ignored(child):
                    self.tracker.touch(child)
            return
        self.tracker.touch(path)

    @override
    def on_created(self, event: FileSystemEvent) -> None:
        self._track(event.src_path)

    @override
    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._track(event.src_path)

    @override
    def on_moved(self, event: FileSystemEvent) -> None:
        self._track(event.dest_path)


@final
class InboxWatcher:
    """Watch the inbox recursively and submit settled files.

    A keep-alive thread polls ``roots`` every ``poll_interval`` seconds. When a
    root disappears the observer is stopped; once every root is back it is
    restarted and ``on_restart`` runs so arrivals missed in between are picked
    up.
    """

    def __init__(
        self,
        inbox_root: Path,
        submit: Callable[[Path], object],
        *,
        settle_seconds: float,
        is_ignored: Callable[[Path], bool],
        roots: Sequence[Path] = (),
        on_restart: Callable[[], object] | None = None,
        poll_interval: float = ROOT_POLL_INTERVAL_SECONDS,
    ) -> None:
        self.inbox_root: Path = inbox_root
        self.roots: tuple[Path, ...] = tuple(roots) or (inbox_root,)
        self.on_restart: Callable[[], object] | None = on_restart
        self.poll_interval: float = poll_interval
        self.tracker: SettleTracker = SettleTracker(submit, settle_seconds=settle_seconds)
        self._handler: _InboxEventHandler = _InboxEventHandler(self.tracker, is_ignored)
        self._observer: BaseObserver | None = None
        self._lock: threading.RLock = threading.RLock()
        self._stop: threading.Event = threading.Event()
        self._keepalive: threading.Thread | None = None

    @property
    def running(self) -> bool:
        """True while the observer is delivering inbox events."""

        return self._observer is not None

    @property
    def started(self) -> bool:
        return self._keepalive is not None

    def missing_roots(self) -> list[Path]:
        return [root for root in self.roots if not root.is_dir()]

    def start(self) -> None:
        if self._keepalive is not None:
            return
        self._stop.clear()
        self.tracker.start()
        with self._lock:
            missing = self.missing_roots()
            if missing:
                logger.warning("Waiting for %s before watching the inbox", ", ".join(map(str, missing)))
            else:
                self._start_observer()
        self._keepalive = threading.Thread(target=self._keep_alive, name="mlsync-watch-keepalive", daemon=True)
        self._keepalive.start()

    def stop(self) -> None:
        if self._keepalive is None:
            return
        self._stop.set()
        self._keepalive.join()
        self._keepalive = None
        with self._lock:
            self._stop_observer()
        self.tracker.stop()
        logger.info("Stopped watching inbox %s", self.inbox_root)

    def check(self) -> bool:
        """Run one keep-alive step and return whether the observer is running."""

        restarted = False
        with self._lock:
            missing = self.missing_roots()
            if missing and self._observer is not None:
                logger.warning(
                    "Lost %s; pausing the inbox watcher until it returns",
                    ", ".join(map(str, missing)),
                )
                self._stop_observer()
            elif not missing and self._observer is None:
                self._start_observer()
                restarted = True
            running = self._observer is not None
        if restarted and self.on_restart is not None:
            logger.info("Roots are back; rescanning the inbox")
            _ = self.on_restart()
        return running

    def _keep_alive(self) -> None:
        while not self._stop.wait(self.poll_interval):
            try:
                _ = self.check()
            except Exception:
                logger.exception("Inbox watcher keep-alive check failed")

    def _start_observer(self) -> None:
        observer = Observer()
        _ = observer.schedule(self._handler, str(self.inbox_root), recursive=True)
        observer.start()
        self._observer = observer
        logger.info("Watching inbox %s", self.inbox_root)

    def _stop_observer(self) -> None:
        observer = self._observer
        if observer is None:
            return
        self._observer = None
        try:
            observer.stop()
            observer.join()
        except OSError as exc:
            logger.warning("Inbox observer did not stop cleanly: %s", exc)


__all__ = ["InboxWatcher", "SettleTracker"]
