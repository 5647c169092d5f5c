"""src/mlsync/platform/db/daos/inbox_status_dao.py
What: Record why inbox files were rejected or quarantined.
Why: Let scans skip quarantined files and let operators see pending problems.
"""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Literal, final

from mlsync.platform.logging import logger

InboxState = Literal["rejected", "quarantined"]


@dataclass(frozen=True, slots=True)
class InboxStatusRecord:
    """One recorded inbox problem."""

    source_path: Path
    identity: str | None
    state: InboxState
    reason: str
    inconsistent: bool = False
    updated_at: str | None = None


@final
class InboxStatusDAO:
    """Data access object for the inbox_status table."""

    _UPSERT_SQL: Final[str] = (
        """
        INSERT INTO inbox_status (source_path, identity, state, reason, inconsistent)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(source_path) DO UPDATE SET
            identity = excluded.identity,
            state = excluded.state,
            reason = excluded.reason,
            inconsistent = excluded.inconsistent,
            updated_at = CURRENT_TIMESTAMP
        """
    )

    conn: sqlite3.Connection
    lock: threading.RLock

    def __init__(self, conn: sqlite3.Connection, lock: threading.RLock | None = None) -> None:
        self.conn = conn
        self.lock = lock or threading.RLock()

    def record(
        self,
        source_path: Path,
        *,
        state: InboxState,
        reason: str,
        identity: str | None = None,
        inconsistent: bool = False,
    ) -> bool:
        """Insert or update the status row for ``source_path``."""

        with self.lock:
            try:
                cursor = self.conn.cursor()
                _ = cursor.execute(
                    self._UPSERT_SQL,
                    (str(source_path), identity, state, reason, int(inconsistent)),
                )
                self.conn.commit()
                return True
            except sqlite3.Error as exc:
                logger.error("Failed to record inbox status for %s: %s", source_path, exc)
                self._rollback()
                return False

    def get(self, source_path: Path) -> InboxStatusRecord | None:
        """Fetch the status row for ``source_path``."""

        with self.lock:
            try:
                cursor = self.conn.cursor()
                _ = cursor.execute(
                    """
                    SELECT source_path, identity, state, reason, inconsistent, updated_at
                    FROM inbox_status
                    WHERE source_path = ?
                    """,
                    (str(source_path),),
                )
                row = cursor.fetchone()
            except sqlite3.Error as exc:
                logger.error("Failed to fetch inbox status for %s: %s", source_path, exc)
                return None
        return self._row_to_record(row) if row else None

    def list_all(self) -> list[InboxStatusRecord]:
        """Return every recorded problem, quarantines first."""

        with self.lock:
            try:
                cursor = self.conn.cursor()
                _ = cursor.execute(
                    """
                    SELECT source_path, identity, state, reason, inconsistent, updated_at
                    FROM inbox_status
                    ORDER BY state DESC, source_path
                    """
                )
                rows = cursor.fetchall()
            except sqlite3.Error as exc:
                logger.error("Failed to list inbox status: %s", exc)
                return []
        return [self._row_to_record(row) for row in rows]

    def clear(self, source_path: Path) -> bool:
        """Forget the status row for ``source_path``."""

        with self.lock:
            try:
                cursor = self.conn.cursor()
                _ = cursor.execute("DELETE FROM inbox_status WHERE source_path = ?", (str(source_path),))
                self.conn.commit()
                return True
            except sqlite3.Error as exc:
                logger.error("Failed to clear inbox status for %s: %s", source_path, exc)
                self._rollback()
                return False

    def _rollback(self) -> None:
        try:
            self.conn.rollback()
        except sqlite3.Error:
            logger.debug("Rollback after failed inbox status write also failed")

    @staticmethod
    def _row_to_record(row: tuple[object, ...]) -> InboxStatusRecord:
        source_path, identity, state, reason, inconsistent, updated_at = row
        return InboxStatusRecord(
            source_path=Path(str(source_path)),
            identity=str(identity) if identity is not None else None,
            state="quarantined" if state == "quarantined" else "rejected",
            reason=str(reason),
            inconsistent=bool(inconsistent),
            updated_at=str(updated_at) if updated_at is not None else None,
        )


__all__ = ["InboxState", "InboxStatusDAO", "InboxStatusRecord"]
