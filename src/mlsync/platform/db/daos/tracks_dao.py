"""src/mlsync/platform/db/daos/tracks_dao.py
What: Persist indexed track records.
Why: Keep SQL for the ``tracks`` table out of the in-memory index.
"""

from __future__ import annotations

import sqlite3
import threading
from typing import Final, final

from mlsync.features.index.domain.track import Track
from mlsync.platform.logging import logger
from mlsync.shared.errors import IndexCommitFailure
from mlsync.shared.track_metadata import AudioFormat, NormalizedMetadata

_COLUMNS: Final[str] = """
    identity, path, path_key, title, artist, album, album_artist,
    track_number, disc_number, format, bitrate, bit_depth, has_cover,
    cover_width, cover_height, has_musicbrainz_id, provenance
"""


@final
class TracksDAO:
    """Data access object for the tracks table."""

    _UPSERT_SQL: Final[str] = (
        f"""
        INSERT INTO tracks ({_COLUMNS})
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(identity) DO UPDATE SET
            path = excluded.path,
            path_key = excluded.path_key,
            title = excluded.title,
            artist = excluded.artist,
            album = excluded.album,
            album_artist = excluded.album_artist,
            track_number = excluded.track_number,
            disc_number = excluded.disc_number,
            format = excluded.format,
            bitrate = excluded.bitrate,
            bit_depth = excluded.bit_depth,
            has_cover = excluded.has_cover,
            cover_width = excluded.cover_width,
            cover_height = excluded.cover_height,
            has_musicbrainz_id = excluded.has_musicbrainz_id,
            provenance = excluded.provenance,
            updated_at = CURRENT_TIMESTAMP
        """
    )

    conn: sqlite3.Connection
    lock: threading.RLock

    def __init__(self, conn: sqlite3.Connection, lock: threading.RLock | None = None) -> None:
        self.conn = conn
        self.lock = lock or threading.RLock()

    def upsert(self, track: Track) -> None:
        """Insert or replace the record for ``track.identity``.

        Raises:
            IndexCommitFailure: If the write fails; nothing is committed.
        """
        meta = track.metadata
        with self.lock:
            try:
                cursor = self.conn.cursor()
                _ = cursor.execute(
                    self._UPSERT_SQL,
                    (
                        track.identity,
                        track.path,
                        track.key,
                        meta.title,
                        meta.artist,
                        meta.album,
                        meta.album_artist,
                        meta.track_number,
                        meta.disc_number,
                        meta.format.value,
                        meta.bitrate,
                        meta.bit_depth,
                        int(meta.has_cover),
                        meta.cover_width,
                        meta.cover_height,
                        int(meta.has_musicbrainz_id),
                        track.provenance,
                    ),
                )
                self.conn.commit()
            except sqlite3.Error as exc:
                logger.error("Failed to upsert track %s: %s", track.identity, exc)
                self._rollback()
                raise IndexCommitFailure(f"could not write track {track.identity}: {exc}") from exc

    def delete(self, identity: str) -> None:
        """Delete the record for ``identity``; deleting a missing record is a no-op."""

        with self.lock:
            try:
                cursor = self.conn.cursor()
                _ = cursor.execute("DELETE FROM tracks WHERE identity = ?", (identity,))
                self.conn.commit()
            except sqlite3.Error as exc:
                logger.error("Failed to delete track %s: %s", identity, exc)
                self._rollback()
                raise IndexCommitFailure(f"could not delete track {identity}: {exc}") from exc

    def fetch(self, identity: str) -> Track | None:
        """Fetch a single record straight from the database."""

        with self.lock:
            cursor = self.conn.cursor()
            _ = cursor.execute(f"SELECT {_COLUMNS} FROM tracks WHERE identity = ?", (identity,))
            row = cursor.fetchone()
        return self._row_to_track(row) if row else None

    def fetch_all(self) -> list[Track]:
        """Load every record, ordered by path for stable iteration."""

        with self.lock:
            cursor = self.conn.cursor()
            _ = cursor.execute(f"SELECT {_COLUMNS} FROM tracks ORDER BY path_key")
            rows = cursor.fetchall()
        return [self._row_to_track(row) for row in rows]

    def _rollback(self) -> None:
        try:
            self.conn.rollback()
        except sqlite3.Error:
            logger.debug("Rollback after failed track write also failed")

    @staticmethod
    def _row_to_track(row: tuple[object, ...]) -> Track:
        (
            identity,
            path,
            _key,
            title,
            artist,
            album,
            album_artist,
            track_number,
            disc_number,
            fmt,
            bitrate,
            bit_depth,
            has_cover,
            cover_width,
            cover_height,
            has_mbid,
            provenance,
        ) = row
        metadata = NormalizedMetadata(
            title=str(title),
            artist=str(artist),
            album=str(album),
            format=AudioFormat(str(fmt)),
            album_artist=str(album_artist) if album_artist is not None else None,
            track_number=track_number if isinstance(track_number, int) else None,
            disc_number=disc_number if isinstance(disc_number, int) else None,
            bitrate=bitrate if isinstance(bitrate, int) else 0,
            bit_depth=bit_depth if isinstance(bit_depth, int) else None,
            has_cover=bool(has_cover),
            cover_width=cover_width if isinstance(cover_width, int) else None,
            cover_height=cover_height if isinstance(cover_height, int) else None,
            has_musicbrainz_id=bool(has_mbid),
        )
        return Track(
            identity=str(identity),
            path=str(path),
            metadata=metadata,
            provenance=str(provenance) if provenance is not None else None,
        )


__all__ = ["TracksDAO"]
