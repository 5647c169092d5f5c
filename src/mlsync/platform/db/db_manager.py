"""Database manager for mlsync."""

import sqlite3
import threading
from pathlib import Path
from typing import Any, final

from mlsync.config.paths import default_data_dir
from mlsync.config.settings import INDEX_FILE_NAME
from mlsync.platform.filesystem import ensure_directory, ensure_parent_directory
from mlsync.platform.logging import logger


@final
class DatabaseManager:
    """Owns the SQLite connection backing the metadata index.

    The connection is shared by worker threads. Every DAO built on it must hold
    ``lock`` around each statement and its commit or rollback so transactions
    from different threads never interleave.
    """

    db_path: str | Path
    conn: sqlite3.Connection | None
    lock: threading.RLock

    def __init__(self, db_path: Path | str | None = None) -> None:
        """Initialize database manager.

        Args:
            db_path: Path to database file. If None, use the default data directory.
                   If ":memory:", use in-memory database.
        """
        if db_path == ":memory:":
            self.db_path = ":memory:"
        elif db_path is None:
            data_dir = default_data_dir()
            _ = ensure_directory(data_dir)
            self.db_path = data_dir / INDEX_FILE_NAME
        else:
            self.db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self.conn = None
        self.lock = threading.RLock()

    def connect(self) -> None:
        """Connect to database and initialize schema."""
        try:
            if isinstance(self.db_path, Path):
                _ = ensure_parent_directory(self.db_path)

            try:
                self.conn = sqlite3.connect(
                    self.db_path,
                    timeout=30.0,
                    isolation_level="IMMEDIATE",
                    check_same_thread=False,  # DAOs are used from worker threads
                )
            except sqlite3.OperationalError as e:
                if "unable to open database file" in str(e):
                    raise PermissionError(f"Unable to open database at {self.db_path}") from e
                raise

            _ = self.conn.execute("PRAGMA foreign_keys = ON")
            _ = self.conn.execute("PRAGMA synchronous = NORMAL")
            _ = self.conn.execute("PRAGMA journal_mode = WAL")
            _ = self.conn.execute("PRAGMA busy_timeout = 30000")

            self._init_schema()

        except sqlite3.Error as e:
            logger.error("Failed to connect to database: %s", e)
            raise

    def _init_schema(self) -> None:
        """Initialize database schema."""
        if self.conn is None:
            return

        try:
            cursor = self.conn.cursor()

            _ = cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS tracks (
                    identity TEXT PRIMARY KEY,
                    path TEXT NOT NULL,
                    path_key TEXT NOT NULL UNIQUE,
                    title TEXT NOT NULL,
                    artist TEXT NOT NULL,
                    album TEXT NOT NULL,
                    album_artist TEXT,
                    track_number INTEGER,
                    disc_number INTEGER,
                    format TEXT NOT NULL,
                    bitrate INTEGER NOT NULL DEFAULT 0,
                    bit_depth INTEGER,
                    has_cover INTEGER NOT NULL DEFAULT 0,
                    cover_width INTEGER,
                    cover_height INTEGER,
                    has_musicbrainz_id INTEGER NOT NULL DEFAULT 0,
                    provenance TEXT,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

            _ = cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS inbox_status (
                    source_path TEXT PRIMARY KEY,
                    identity TEXT,
                    state TEXT NOT NULL CHECK (state IN ('rejected', 'quarantined')),
                    reason TEXT NOT NULL,
                    inconsistent INTEGER NOT NULL DEFAULT 0,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

            _ = cursor.execute("CREATE INDEX IF NOT EXISTS idx_tracks_album ON tracks(album)")
            _ = cursor.execute("CREATE INDEX IF NOT EXISTS idx_inbox_status_state ON inbox_status(state)")

            self.conn.commit()
            logger.debug("Database schema ready at %s", self.db_path)

        except sqlite3.Error as e:
            logger.error("Failed to initialize schema: %s", e)
            self.conn.rollback()
            raise

    def require_connection(self) -> sqlite3.Connection:
        """Return the open connection or fail when ``connect()`` was not called."""

        if self.conn is None:
            raise sqlite3.ProgrammingError("database is not connected")
        return self.conn

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            with self.lock:
                try:
                    self.conn.close()
                    self.conn = None
                except sqlite3.Error as e:
                    logger.error("Failed to close database connection: %s", e)

    def __enter__(self) -> "DatabaseManager":
        """Enter context manager."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any | None,
    ) -> None:
        """Exit context manager."""
        self.close()
