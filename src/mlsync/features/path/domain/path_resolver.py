"""Where: features/path/domain/path_resolver.py
What: Map accepted metadata to a canonical path inside the library root.
Why: The canonical layout must be a pure function of metadata plus current occupancy.

Layout::

    <Artist>/<Album>/<NN - Title>.<ext>       single disc or unknown disc
    <Artist>/<Album>/<D-NN - Title>.<ext>     disc number above 1
    <Artist>/<Album>/<Title>.<ext>            no track number

When the base path is held by a different identity, `` (n)`` is appended to
the stem, using the smallest ``n >= 2`` that is free for this identity.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path, PurePosixPath
from typing import final

from mlsync.config.settings import MAX_DISAMBIGUATION
from mlsync.features.index.domain.track import path_key
from mlsync.shared.errors import CollisionError
from mlsync.shared.track_metadata import NormalizedMetadata

from .sanitizer import Sanitizer

# Returns the identity holding a case-folded path key, or None when free.
HolderLookup = Callable[[str], str | None]


@final
class PathResolver:
    """Derive canonical relative paths and resolve collisions."""

    def __init__(self, library_root: Path) -> None:
        self.library_root: Path = library_root

    @staticmethod
    def file_stem(metadata: NormalizedMetadata) -> str:
        """Build the undecorated file stem for ``metadata``."""

        title = Sanitizer.sanitize_component(metadata.title)
        if metadata.track_number is None:
            stem = title
        elif metadata.disc_number is not None and metadata.disc_number > 1:
            stem = f"{metadata.disc_number}-{metadata.track_number:02d} - {title}"
        else:
            stem = f"{metadata.track_number:02d} - {title}"
        return Sanitizer.sanitize_stem(stem)

    @classmethod
    def base_path(cls, metadata: NormalizedMetadata) -> str:
        """Return the collision-free form of the canonical path (POSIX, relative)."""

        artist = Sanitizer.sanitize_artist_name(metadata.primary_artist)
        album = Sanitizer.sanitize_album_name(metadata.album)
        file_name = cls.file_stem(metadata) + metadata.format.extension
        return str(PurePosixPath(artist, album, file_name))

    @staticmethod
    def candidate(base: str, index: int) -> str:
        """Return the ``index``-th disambiguated variant of ``base`` (``index >= 2``)."""

        pure = PurePosixPath(base)
        return str(pure.with_name(f"{pure.stem} ({index}){pure.suffix}"))

    @staticmethod
    def stem_key(base: str) -> str:
        """Key shared by a base path and all of its disambiguated variants."""

        return path_key(base)

    @classmethod
    def is_variant_of(cls, path: str, base: str) -> bool:
        """Return True when ``path`` is ``base`` or one of its ``(n)`` variants."""

        candidate_key = path_key(path)
        base_pure = PurePosixPath(path_key(base))
        if candidate_key == str(base_pure):
            return True
        pattern = re.compile(
            re.escape(str(base_pure.with_name(base_pure.stem))) + r" \((\d+)\)" + re.escape(base_pure.suffix)
        )
        match = pattern.fullmatch(candidate_key)
        return match is not None and 2 <= int(match.group(1)) <= MAX_DISAMBIGUATION

    def resolve(
        self,
        metadata: NormalizedMetadata,
        *,
        identity: str,
        holder_of: HolderLookup,
        current: str | None = None,
    ) -> str:
        """Return the canonical relative path for ``identity``.

        Args:
            metadata: Accepted metadata.
            identity: Identity of the track being placed.
            holder_of: Lookup from case-folded path key to the identity holding it.
            current: Path the track already occupies, if indexed. It is kept when it
                is still a valid variant of the base path, so placed tracks never
                shuffle when others come and go.

        Raises:
            CollisionError: If every disambiguator up to the limit is taken.
        """
        base = self.base_path(metadata)
        if current is not None and self.is_variant_of(current, base):
            holder = holder_of(path_key(current))
            if holder is None or holder == identity:
                return current

        holder = holder_of(path_key(base))
        if holder is None or holder == identity:
            return base

        for index in range(2, MAX_DISAMBIGUATION + 1):
            candidate = self.candidate(base, index)
            holder = holder_of(path_key(candidate))
            if holder is None or holder == identity:
                return candidate

        raise CollisionError(f"no free disambiguator for {base!r} after {MAX_DISAMBIGUATION} attempts")

    def absolute(self, relative_path: str) -> Path:
        """Join a canonical relative path onto the library root."""

        return self.library_root.joinpath(*PurePosixPath(relative_path).parts)

    def relative(self, absolute_path: Path) -> str:
        """Express a path under the library root as a canonical POSIX string."""

        return absolute_path.relative_to(self.library_root).as_posix()


__all__ = ["HolderLookup", "PathResolver"]
