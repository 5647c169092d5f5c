"""Where: features/index/usecases/metadata_index.py
What: Authoritative identity -> track record store with snapshot queries.
Why: Queries run concurrently with synchronizer mutations and must never see
a half-published move.

The index keeps every record in memory and writes through to the database.
``publishing()`` is the serialization point shared with the synchronizer: a
file move and its index commit run inside it, and ``query()`` takes its
snapshot inside it, so a snapshot sees either the old or the new state.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import Protocol, final, runtime_checkable

from mlsync.features.index.domain.track import Track, path_key
from mlsync.platform.logging import logger
from mlsync.shared.errors import ConflictError

TrackPredicate = Callable[[Track], bool]


@runtime_checkable
class SnapshotFilter(Protocol):
    """A filter whose answer for one track depends on the rest of the snapshot."""

    def bind(self, tracks: Sequence[Track]) -> TrackPredicate:
        """Return a per-track predicate evaluated against ``tracks``."""
        ...


@runtime_checkable
class TrackStorePort(Protocol):
    """Port for durable track persistence."""

    def upsert(self, track: Track) -> None:
        """Persist ``track``; raise ``IndexCommitFailure`` on failure."""
        ...

    def delete(self, identity: str) -> None:
        """Remove the record for ``identity``; raise ``IndexCommitFailure`` on failure."""
        ...

    def fetch_all(self) -> list[Track]:
        """Return every persisted record."""
        ...


@final
class MetadataIndex:
    """In-memory view of the tracks table with write-through persistence."""

    def __init__(self, store: TrackStorePort) -> None:
        self._store: TrackStorePort = store
        self._lock: threading.RLock = threading.RLock()
        self._by_identity: dict[str, Track] = {}
        self._by_key: dict[str, str] = {}
        self._snapshot: tuple[Track, ...] | None = None

    def load(self) -> int:
        """Replace the in-memory view with the persisted records."""

        records = self._store.fetch_all()
        with self._lock:
            self._by_identity = {track.identity: track for track in records}
            self._by_key = {track.key: track.identity for track in records}
            self._snapshot = None
        logger.debug("Loaded %d indexed tracks", len(records))
        return len(records)

    @contextmanager
    def publishing(self) -> Iterator[None]:
        """Hold the publish lock so queries cannot observe an intermediate state."""

        with self._lock:
            yield

    def upsert(self, track: Track) -> None:
        """Insert or replace ``track``.

        Raises:
            ConflictError: If a different identity already holds ``track.path``.
            IndexCommitFailure: If the database write fails; memory is unchanged.
        """
        with self._lock:
            holder = self._by_key.get(track.key)
            if holder is not None and holder != track.identity:
                raise ConflictError(track.path, holder, track.identity)

            self._store.upsert(track)

            previous = self._by_identity.get(track.identity)
            if previous is not None and previous.key != track.key:
                _ = self._by_key.pop(previous.key, None)
            self._by_identity[track.identity] = track
            self._by_key[track.key] = track.identity
            self._snapshot = None

    def remove(self, identity: str) -> None:
        """Delete the record for ``identity``; absent identities are a no-op."""

        with self._lock:
            previous = self._by_identity.get(identity)
            if previous is None:
                return
            self._store.delete(identity)
            del self._by_identity[identity]
            if self._by_key.get(previous.key) == identity:
                del self._by_key[previous.key]
            self._snapshot = None

    def get(self, identity: str) -> Track | None:
        with self._lock:
            return self._by_identity.get(identity)

    def get_by_path(self, path: str) -> Track | None:
        """Look up a track by canonical relative path (case-insensitive)."""

        with self._lock:
            identity = self._by_key.get(path_key(path))
            return self._by_identity.get(identity) if identity is not None else None

    def holder_of(self, key: str) -> str | None:
        """Return the identity holding a case-folded path key."""

        with self._lock:
            return self._by_key.get(key)

    def snapshot(self) -> tuple[Track, ...]:
        """Return an immutable, path-ordered view of every record."""

        with self._lock:
            if self._snapshot is None:
                self._snapshot = tuple(sorted(self._by_identity.values(), key=lambda t: t.key))
            return self._snapshot

    def query(self, predicate: TrackPredicate | SnapshotFilter) -> Iterator[Track]:
        """Lazily yield tracks matching ``predicate`` from a snapshot taken now.

        A ``SnapshotFilter`` is bound to that same snapshot before filtering.
        Mutations after this call are not reflected in the returned iterator.
        """
        tracks = self.snapshot()
        matches = predicate.bind(tracks) if isinstance(predicate, SnapshotFilter) else predicate
        return (track for track in tracks if matches(track))

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_identity)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._by_identity


__all__ = ["MetadataIndex", "SnapshotFilter", "TrackPredicate", "TrackStorePort"]
