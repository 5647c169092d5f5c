"""src/mlsync/features/sync/usecases/file_operations.py
What: Filesystem I/O for the synchronizer with timeouts and move verification.
Why: Every read and move must surface failures as ``IOFailure`` so retries and
quarantine follow one policy.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path
from typing import TypeVar, final

from mutagen import MutagenError

from mlsync.features.metadata.usecases.identity import calculate_file_hash
from mlsync.features.metadata.usecases.ports import TagReaderPort
from mlsync.platform.filesystem import ensure_parent_directory
from mlsync.platform.logging import logger
from mlsync.shared.errors import IOFailure
from mlsync.shared.track_metadata import RawTags

T = TypeVar("T")


@final
class FileOperations:
    """Timed reads and verified moves.

    Reads that exceed ``timeout_seconds`` fail with a retryable ``IOFailure``;
    the background read is left to finish on its own. Moves are never
    abandoned: a slow move is joined to completion and then verified. Moves
    run on their own executor so a hung read never holds one up.
    """

    def __init__(self, reader: TagReaderPort, *, timeout_seconds: float, max_workers: int = 4) -> None:
        self.reader: TagReaderPort = reader
        self.timeout_seconds: float = timeout_seconds
        self._executor: ThreadPoolExecutor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="mlsync-io"
        )
        self._move_executor: ThreadPoolExecutor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="mlsync-move"
        )

    def shutdown(self) -> None:
        self._move_executor.shutdown(wait=True, cancel_futures=True)
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _timed(self, what: str, path: Path, operation: Callable[[], T]) -> T:
        future: Future[T] = self._executor.submit(operation)
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeout as exc:
            _ = future.cancel()
            raise IOFailure(f"{what} timed out after {self.timeout_seconds:.1f}s: {path}") from exc
        except (OSError, MutagenError) as exc:
            raise IOFailure(f"{what} failed for {path}: {exc}") from exc
        except Exception as exc:
            raise IOFailure(f"{what} failed for {path}: {exc!r}", retryable=False) from exc

    def read_tags(self, path: Path) -> RawTags:
        """Read raw tags; raise ``IOFailure`` on error or timeout."""

        return self._timed("tag read", path, lambda: self.reader.extract(path))

    def identify(self, path: Path) -> str:
        """Hash file contents into an identity; raise ``IOFailure`` on error or timeout."""

        return self._timed("hash", path, lambda: calculate_file_hash(path))

    def move(self, source: Path, destination: Path) -> None:
        """Move ``source`` to ``destination`` once.

        Raises:
            IOFailure: ``retryable=False`` when the destination is occupied or the
                source is gone; retryable for every other failure.
        """
        if not source.exists():
            raise IOFailure(f"source disappeared: {source}", retryable=False)
        if destination.exists() and not _same_file(source, destination):
            raise IOFailure(f"destination already exists: {destination}", retryable=False)

        def _move() -> None:
            _ = ensure_parent_directory(destination)
            _ = shutil.move(str(source), str(destination))

        future = self._move_executor.submit(_move)
        try:
            future.result(timeout=self.timeout_seconds)
        except FutureTimeout:
            logger.warning(
                "Move of %s exceeded %.1fs; waiting for it to finish",
                source,
                self.timeout_seconds,
            )
            try:
                future.result()
            except OSError as exc:
                raise IOFailure(f"move failed for {source}: {exc}") from exc
        except OSError as exc:
            raise IOFailure(f"move failed for {source}: {exc}") from exc

        if not destination.exists() or (source.exists() and not _same_file(source, destination)):
            raise IOFailure(f"move of {source} to {destination} could not be verified")


def _same_file(first: Path, second: Path) -> bool:
    try:
        return first.samefile(second)
    except OSError:
        return False


__all__ = ["FileOperations"]
