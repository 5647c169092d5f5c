"""Where: src/mlsync/platform/instance_lock.py
What: Exclusive advisory lock on a file next to the index database.
Why: Two services on one index would each hold their own in-memory copy and
overwrite each other's records, so only one may be open at a time.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import final

from mlsync.platform.filesystem import ensure_parent_directory
from mlsync.platform.logging import logger
from mlsync.shared.errors import ServiceStateError

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl


@final
class InstanceLock:
    """Non-blocking, process-wide lock held from ``acquire`` until ``release``.

    The operating system drops the lock when the holding process exits, so a
    crashed service never leaves a stale lock behind.
    """

    def __init__(self, path: Path) -> None:
        self.path: Path = path
        self._fd: int | None = None

    @classmethod
    def for_database(cls, db_path: Path) -> InstanceLock:
        return cls(db_path.with_name(f"{db_path.name}.lock"))

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            ServiceStateError: If another process or service already holds it.
        """
        if self._fd is not None:
            return
        _ = ensure_parent_directory(self.path)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            _lock(fd)
        except OSError as exc:
            os.close(fd)
            raise ServiceStateError(f"another mlsync instance is using {self.path.with_suffix('')}") from exc
        _ = os.ftruncate(fd, 0)
        _ = os.write(fd, str(os.getpid()).encode("ascii"))
        self._fd = fd
        logger.debug("Acquired instance lock %s", self.path)

    def release(self) -> None:
        fd = self._fd
        if fd is None:
            return
        self._fd = None
        try:
            _unlock(fd)
        finally:
            os.close(fd)
        logger.debug("Released instance lock %s", self.path)


if sys.platform == "win32":

    def _lock(fd: int) -> None:
        _ = os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)

    def _unlock(fd: int) -> None:
        _ = os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)

else:

    def _lock(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)

    def _unlock(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_UN)


__all__ = ["InstanceLock"]
