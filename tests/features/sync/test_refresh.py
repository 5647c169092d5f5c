"""Summary: Refresh indexed tracks after their tags change on disk.
Why: Refresh must be idempotent, move files when the canonical path changes,
and never leave the index pointing at a missing file."""

from __future__ import annotations

import pytest
from pytest_mock import MockerFixture

from mlsync.features.sync.usecases.sync_types import Indexed, Quarantined, Removed, Unchanged
from mlsync.shared.errors import IndexCommitFailure, NotFoundError
from support import SyncHarness, make_tags

CANONICAL = "Boris/Flood/01 - Dronevil.flac"


def _index(harness: SyncHarness, content: bytes = b"track", **overrides: object) -> Indexed:
    outcome = harness.sync.process_inbox_file(harness.drop(f"{content.decode()}.flac", make_tags(**overrides), content))
    assert isinstance(outcome, Indexed)
    return outcome


def test_refresh_without_changes_is_a_no_op(harness: SyncHarness) -> None:
    indexed = _index(harness)

    first = harness.sync.refresh(indexed.identity)
    second = harness.sync.refresh(indexed.identity)

    assert first == Unchanged(indexed.identity, CANONICAL)
    assert second == first
    assert (harness.library / CANONICAL).is_file()


def test_retitled_track_moves(harness: SyncHarness) -> None:
    indexed = _index(harness)
    harness.reader.register(b"track", make_tags(title="Flood I", track_number=1))

    outcome = harness.sync.refresh(indexed.identity)

    assert isinstance(outcome, Indexed)
    assert outcome.refreshed
    assert outcome.moved
    assert outcome.path == "Boris/Flood/01 - Flood I.flac"
    assert outcome.source_path == harness.library / CANONICAL
    assert not (harness.library / CANONICAL).exists()
    assert (harness.library / outcome.path).is_file()
    track = harness.index.get(indexed.identity)
    assert track is not None
    assert track.path == outcome.path
    assert track.metadata.title == "Flood I"


def test_new_artist_prunes_old_directories(harness: SyncHarness) -> None:
    indexed = _index(harness)
    harness.reader.register(b"track", make_tags(artist="Sunn O)))"))

    outcome = harness.sync.refresh(indexed.identity)

    assert isinstance(outcome, Indexed)
    assert outcome.path == "Sunn O)))/Flood/01 - Dronevil.flac"
    assert not (harness.library / "Boris").exists()


def test_tag_change_without_path_change_updates_record(harness: SyncHarness) -> None:
    indexed = _index(harness)
    harness.reader.register(b"track", make_tags(bitrate=320, has_cover=True, cover_width=600, cover_height=600))

    outcome = harness.sync.refresh(indexed.identity)

    assert outcome == Indexed(indexed.identity, CANONICAL, harness.library / CANONICAL, refreshed=True, moved=False)
    track = harness.index.get(indexed.identity)
    assert track is not None
    assert track.metadata.bitrate == 320
    assert track.metadata.cover_width == 600


def test_case_only_change_keeps_the_path(harness: SyncHarness) -> None:
    indexed = _index(harness)
    harness.reader.register(b"track", make_tags(title="DRONEVIL"))

    outcome = harness.sync.refresh(indexed.identity)

    assert isinstance(outcome, Indexed)
    assert not outcome.moved
    assert outcome.path == CANONICAL


def test_disambiguated_track_keeps_its_suffix(harness: SyncHarness) -> None:
    first = _index(harness, b"first")
    second = _index(harness, b"second")
    assert second.path == "Boris/Flood/01 - Dronevil (2).flac"
    (harness.library / first.path).unlink()
    _ = harness.sync.refresh(first.identity)

    outcome = harness.sync.refresh(second.identity)

    assert outcome == Unchanged(second.identity, second.path)


def test_track_that_stops_validating_is_quarantined(harness: SyncHarness) -> None:
    indexed = _index(harness)
    harness.reader.register(b"track", make_tags(artist=None))

    outcome = harness.sync.refresh(indexed.identity)

    destination = harness.inbox / "!quarantine" / "Boris" / "Flood" / "01 - Dronevil.flac"
    assert isinstance(outcome, Quarantined)
    assert outcome.reason == "missing-artist"
    assert outcome.location == destination
    assert destination.is_file()
    assert indexed.identity not in harness.index
    assert not (harness.library / "Boris").exists()
    status = harness.status.get(destination)
    assert status is not None
    assert status.identity == indexed.identity


def test_missing_file_drops_the_record(harness: SyncHarness) -> None:
    indexed = _index(harness)
    (harness.library / CANONICAL).unlink()

    outcome = harness.sync.refresh(indexed.identity)

    assert outcome == Removed(indexed.identity, CANONICAL)
    assert indexed.identity not in harness.index
    assert harness.store.fetch(indexed.identity) is None


def test_unknown_identity_raises(harness: SyncHarness) -> None:
    with pytest.raises(NotFoundError):
        _ = harness.sync.refresh("0" * 64)


def test_unreadable_track_is_left_in_place(harness: SyncHarness) -> None:
    indexed = _index(harness)
    harness.reader.failures[b"track"] = 100

    outcome = harness.sync.refresh(indexed.identity)

    assert isinstance(outcome, Quarantined)
    assert outcome.reason == "io-failure"
    assert (harness.library / CANONICAL).is_file()
    track = harness.index.get(indexed.identity)
    assert track is not None
    assert track.path == CANONICAL


def test_commit_failure_returns_file_to_old_path(harness: SyncHarness, mocker: MockerFixture) -> None:
    indexed = _index(harness)
    harness.reader.register(b"track", make_tags(title="Flood I"))
    _ = mocker.patch.object(harness.store, "upsert", side_effect=IndexCommitFailure("locked"))

    outcome = harness.sync.refresh(indexed.identity)

    assert isinstance(outcome, Quarantined)
    assert outcome.reason == "index-commit-failure"
    assert not outcome.inconsistent
    assert (harness.library / CANONICAL).is_file()
    assert not (harness.library / "Boris/Flood/01 - Flood I.flac").exists()
    track = harness.index.get(indexed.identity)
    assert track is not None
    assert track.path == CANONICAL
    # Refresh failures are not inbox problems.
    assert harness.status.list_all() == []
