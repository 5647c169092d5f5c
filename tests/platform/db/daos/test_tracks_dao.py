"""Summary: Persist and reload indexed track records."""

from __future__ import annotations

import sqlite3

import pytest
from pytest_mock import MockerFixture

from mlsync.features.index.domain.track import Track
from mlsync.features.validation.domain.validator import TagValidator
from mlsync.platform.db.daos.tracks_dao import TracksDAO
from mlsync.platform.db.db_manager import DatabaseManager
from mlsync.shared.errors import IndexCommitFailure
from support import make_tags


@pytest.fixture
def dao(db: DatabaseManager) -> TracksDAO:
    return TracksDAO(db.require_connection())


def _track(identity: str = "abc", path: str = "Boris/Flood/01 - Dronevil.flac", **overrides: object) -> Track:
    metadata = TagValidator.require(make_tags(**overrides))
    return Track(identity=identity, path=path, metadata=metadata, provenance="drop")


def test_round_trip_of_every_field(dao: TracksDAO) -> None:
    track = _track(
        album_artist="Boris",
        disc_number=2,
        has_cover=True,
        cover_width=1000,
        cover_height=1000,
        musicbrainz_id="mbid",
    )

    dao.upsert(track)

    assert dao.fetch("abc") == track


def test_upsert_replaces_existing_record(dao: TracksDAO) -> None:
    dao.upsert(_track())
    dao.upsert(_track(path="Boris/Flood/01 - Flood I.flac", title="Flood I"))

    records = dao.fetch_all()
    assert len(records) == 1
    assert records[0].metadata.title == "Flood I"


def test_fetch_all_is_ordered_by_path_key(dao: TracksDAO) -> None:
    dao.upsert(_track("1", "b/x.flac"))
    dao.upsert(_track("2", "A/x.flac"))

    assert [track.identity for track in dao.fetch_all()] == ["2", "1"]


def test_delete(dao: TracksDAO) -> None:
    dao.upsert(_track())

    dao.delete("abc")
    dao.delete("abc")

    assert dao.fetch("abc") is None


def test_database_error_becomes_index_commit_failure(dao: TracksDAO, mocker: MockerFixture) -> None:
    broken = mocker.MagicMock()
    broken.cursor.side_effect = sqlite3.OperationalError("database is locked")
    dao.conn = broken

    with pytest.raises(IndexCommitFailure, match="database is locked"):
        dao.upsert(_track())
    with pytest.raises(IndexCommitFailure):
        dao.delete("abc")
    broken.rollback.assert_called()
