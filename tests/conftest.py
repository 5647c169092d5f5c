"""Shared fixtures: a content-keyed stub tag reader and a wired synchronizer."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from mlsync.features.index.usecases.metadata_index import MetadataIndex
from mlsync.features.path.domain.path_resolver import PathResolver
from mlsync.features.sync.usecases.file_operations import FileOperations
from mlsync.features.sync.usecases.synchronizer import LibrarySynchronizer, SyncSettings
from mlsync.platform.db.daos.inbox_status_dao import InboxStatusDAO
from mlsync.platform.db.daos.tracks_dao import TracksDAO
from mlsync.platform.db.db_manager import DatabaseManager
from mlsync.shared.track_metadata import RawTags
from support import StubTagReader, SyncHarness, make_tags


@pytest.fixture
def reader() -> StubTagReader:
    return StubTagReader()


@pytest.fixture
def db() -> Iterator[DatabaseManager]:
    manager = DatabaseManager(":memory:")
    manager.connect()
    try:
        yield manager
    finally:
        manager.close()


@pytest.fixture
def harness(tmp_path: Path, reader: StubTagReader, db: DatabaseManager) -> Iterator[SyncHarness]:
    library = tmp_path / "library"
    inbox = tmp_path / "inbox"
    library.mkdir()
    inbox.mkdir()

    conn = db.require_connection()
    store = TracksDAO(conn, db.lock)
    index = MetadataIndex(store)
    status = InboxStatusDAO(conn, db.lock)
    files = FileOperations(reader, timeout_seconds=5.0, max_workers=2)
    sleeps: list[float] = []
    sync = LibrarySynchronizer(
        index=index,
        resolver=PathResolver(library),
        files=files,
        inbox_root=inbox,
        inbox_status=status,
        settings=SyncSettings(move_retries=3, retry_backoff_seconds=0.5),
        sleep=sleeps.append,
    )
    try:
        yield SyncHarness(library, inbox, reader, db, store, index, status, files, sync, sleeps)
    finally:
        files.shutdown()


@pytest.fixture
def raw_tags() -> Callable[..., RawTags]:
    """Factory for valid FLAC tag sets; keyword arguments override fields."""

    return make_tags
