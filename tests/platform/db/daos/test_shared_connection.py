"""Summary: Both DAOs writing through one connection from many threads.
Why: Statements from different threads must not join each other's transactions."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from pathlib import Path

import pytest

from mlsync.features.index.domain.track import Track
from mlsync.features.validation.domain.validator import TagValidator
from mlsync.platform.db.daos.inbox_status_dao import InboxStatusDAO
from mlsync.platform.db.daos.tracks_dao import TracksDAO
from mlsync.platform.db.db_manager import DatabaseManager
from mlsync.shared.errors import IndexCommitFailure
from support import make_tags

WRITERS = 6
ROWS_PER_WRITER = 50


@pytest.fixture
def file_db(tmp_path: Path) -> Iterator[DatabaseManager]:
    manager = DatabaseManager(tmp_path / "index.db")
    manager.connect()
    try:
        yield manager
    finally:
        manager.close()


def _track(writer: int, row: int) -> Track:
    metadata = TagValidator.require(make_tags(title=f"Song {writer}-{row}", track_number=row + 1))
    return Track(identity=f"{writer:02d}{row:04d}", path=f"Boris/Flood/{writer}-{row:03d}.flac", metadata=metadata)


def test_daos_share_the_manager_lock(file_db: DatabaseManager) -> None:
    conn = file_db.require_connection()

    assert TracksDAO(conn, file_db.lock).lock is file_db.lock
    assert InboxStatusDAO(conn, file_db.lock).lock is file_db.lock


def test_concurrent_track_and_status_writes_are_all_kept(file_db: DatabaseManager) -> None:
    conn = file_db.require_connection()
    tracks = TracksDAO(conn, file_db.lock)
    status = InboxStatusDAO(conn, file_db.lock)
    errors: list[Exception] = []
    recorded: list[bool] = []
    start = threading.Barrier(WRITERS * 2)

    def write_tracks(writer: int) -> None:
        _ = start.wait()
        for row in range(ROWS_PER_WRITER):
            try:
                tracks.upsert(_track(writer, row))
            except IndexCommitFailure as exc:
                errors.append(exc)

    def write_status(writer: int) -> None:
        _ = start.wait()
        for row in range(ROWS_PER_WRITER):
            recorded.append(
                status.record(Path(f"/inbox/{writer}/{row}.wav"), state="rejected", reason="forbidden-format")
            )

    threads = [threading.Thread(target=write_tracks, args=(writer,)) for writer in range(WRITERS)]
    threads += [threading.Thread(target=write_status, args=(writer,)) for writer in range(WRITERS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert errors == []
    assert all(recorded)
    assert len(tracks.fetch_all()) == WRITERS * ROWS_PER_WRITER
    assert len(status.list_all()) == WRITERS * ROWS_PER_WRITER
