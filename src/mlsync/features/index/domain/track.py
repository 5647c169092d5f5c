"""Where: features/index/domain/track.py
What: Immutable record describing one indexed track.
Why: Give the index, synchronizer and query layers one shared value type.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import PurePosixPath

from mlsync.shared.track_metadata import NormalizedMetadata


def path_key(relative_path: str) -> str:
    """Return the case-folded key used to compare canonical paths for occupancy."""

    return relative_path.casefold()


@dataclass(frozen=True, slots=True)
class Track:
    """A track as recorded in the index.

    ``path`` is POSIX-style and relative to the library root.
    """

    identity: str
    path: str
    metadata: NormalizedMetadata
    provenance: str | None = None

    @property
    def key(self) -> str:
        return path_key(self.path)

    @property
    def file_name(self) -> str:
        return PurePosixPath(self.path).name

    def with_location(self, path: str, metadata: NormalizedMetadata | None = None) -> "Track":
        """Return a copy at ``path`` and optionally with new metadata."""

        return replace(self, path=path, metadata=metadata or self.metadata)


__all__ = ["Track", "path_key"]
