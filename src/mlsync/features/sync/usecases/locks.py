"""Where: features/sync/usecases/locks.py
What: Mutual exclusion scoped to a string key (identity or path stem).
Why: Serialize work on one track or one destination without a global lock.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import final


@final
class KeyedLocks:
    """Lazily created, reference-counted locks keyed by string.

    Entries are dropped once no thread holds or waits for them, so the table
    does not grow with the size of the library.
    """

    def __init__(self, name: str) -> None:
        self.name: str = name
        self._guard: threading.Lock = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(key, (threading.Lock(), 0))
            self._locks[key] = (lock, users + 1)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                _lock, users = self._locks[key]
                if users <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


__all__ = ["KeyedLocks"]
