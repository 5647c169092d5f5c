"""Summary: Concurrent workers, queries and a file-backed index database.
Why: Queries must only ever see fully published moves, and parallel workers
sharing one SQLite connection must not lose or corrupt each other's writes."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from mlsync.features.index.domain.track import Track
from mlsync.features.index.usecases.metadata_index import MetadataIndex
from mlsync.features.path.domain.path_resolver import PathResolver
from mlsync.features.sync.usecases.file_operations import FileOperations
from mlsync.features.sync.usecases.pipeline import SyncPipeline
from mlsync.features.sync.usecases.sync_types import Indexed, Rejected
from mlsync.features.sync.usecases.synchronizer import LibrarySynchronizer, SyncSettings
from mlsync.platform.db.daos.inbox_status_dao import InboxStatusDAO
from mlsync.platform.db.daos.tracks_dao import TracksDAO
from mlsync.platform.db.db_manager import DatabaseManager
from mlsync.shared.track_metadata import AudioFormat
from support import StubTagReader, SyncHarness, make_tags


@pytest.fixture
def file_harness(tmp_path: Path, reader: StubTagReader) -> Iterator[SyncHarness]:
    library = tmp_path / "library"
    inbox = tmp_path / "inbox"
    library.mkdir()
    inbox.mkdir()
    db = DatabaseManager(tmp_path / "state" / "index.db")
    db.connect()
    conn = db.require_connection()
    store = TracksDAO(conn, db.lock)
    index = MetadataIndex(store)
    status = InboxStatusDAO(conn, db.lock)
    files = FileOperations(reader, timeout_seconds=5.0, max_workers=4)
    sync = LibrarySynchronizer(
        index=index,
        resolver=PathResolver(library),
        files=files,
        inbox_root=inbox,
        inbox_status=status,
        settings=SyncSettings(move_retries=1, retry_backoff_seconds=0.0),
    )
    try:
        yield SyncHarness(library, inbox, reader, db, store, index, status, files, sync)
    finally:
        files.shutdown()
        db.close()


def test_query_never_observes_a_half_published_move(harness: SyncHarness, mocker: MockerFixture) -> None:
    source = harness.drop("a.flac")
    real_move = harness.files.move
    seen: list[list[Track]] = []
    blocked: list[bool] = []
    queriers: list[threading.Thread] = []

    def move_while_querying(src: Path, dst: Path) -> None:
        querier = threading.Thread(target=lambda: seen.append(list(harness.index.query(lambda _track: True))))
        querier.start()
        queriers.append(querier)
        real_move(src, dst)
        querier.join(timeout=0.2)
        blocked.append(querier.is_alive())

    _ = mocker.patch.object(harness.files, "move", side_effect=move_while_querying)

    outcome = harness.sync.process_inbox_file(source)
    queriers[0].join(timeout=5)

    assert isinstance(outcome, Indexed)
    assert blocked == [True]
    assert [track.identity for track in seen[0]] == [outcome.identity]
    assert (harness.library / seen[0][0].path).is_file()


def test_parallel_scan_against_a_file_database(file_harness: SyncHarness) -> None:
    harness = file_harness
    for number in range(1, 41):
        tags = make_tags(title=f"Song {number}", track_number=number)
        _ = harness.drop(f"Album {number % 4}/{number:02d}.flac", tags)
    for number in range(1, 11):
        _ = harness.drop(f"wav/{number:02d}.wav", make_tags(format=AudioFormat.WAV, title=f"Wav {number}"))

    stop = threading.Event()
    missing: list[str] = []

    def query_continuously() -> None:
        while not stop.is_set():
            for track in harness.index.query(lambda _track: True):
                if not (harness.library / track.path).is_file():
                    missing.append(track.path)

    querier = threading.Thread(target=query_continuously)
    querier.start()
    pipeline = SyncPipeline(harness.sync, workers=4, is_supported=harness.reader.is_supported)
    try:
        outcomes = pipeline.scan_inbox()
    finally:
        pipeline.stop()
        stop.set()
        querier.join(timeout=10)

    assert sum(isinstance(outcome, Indexed) for outcome in outcomes) == 40
    assert sum(isinstance(outcome, Rejected) for outcome in outcomes) == 10
    assert missing == []

    with sqlite3.connect(harness.db.db_path) as conn:
        assert conn.execute("SELECT COUNT(*) FROM tracks").fetchone() == (40,)
        assert conn.execute("SELECT COUNT(*) FROM inbox_status WHERE state = 'rejected'").fetchone() == (10,)
    reloaded = MetadataIndex(harness.store)
    assert reloaded.load() == 40
