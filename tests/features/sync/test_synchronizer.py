"""Summary: Drive inbox files through the synchronizer against real temp directories.
Why: Pin the import state machine, retry policy, rollback and quarantine behaviour."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from mlsync.features.path.domain.path_resolver import HolderLookup, PathResolver
from mlsync.features.sync.usecases.sync_types import (
    CancelToken,
    Cancelled,
    Indexed,
    Quarantined,
    Rejected,
)
from mlsync.features.sync.usecases.synchronizer import PreparedTrack
from mlsync.shared.errors import CollisionError, IndexCommitFailure, IOFailure
from mlsync.shared.track_metadata import AudioFormat, NormalizedMetadata
from support import SyncHarness, make_tags

CANONICAL = "Boris/Flood/01 - Dronevil.flac"


def _events(caplog: pytest.LogCaptureFixture, event: str) -> list[logging.LogRecord]:
    return [record for record in caplog.records if getattr(record, "sync_event", None) == event]


def test_accepted_file_moves_into_canonical_place(harness: SyncHarness) -> None:
    source = harness.drop("Boris - Flood/01.flac")

    outcome = harness.sync.process_inbox_file(source)

    assert isinstance(outcome, Indexed)
    assert outcome.path == CANONICAL
    assert not source.exists()
    assert (harness.library / CANONICAL).is_file()
    track = harness.index.get(outcome.identity)
    assert track is not None
    assert track.path == CANONICAL
    assert track.provenance == "Boris - Flood"
    assert harness.store.fetch(outcome.identity) == track
    assert harness.sleeps == []


def test_identity_is_content_hash(harness: SyncHarness) -> None:
    source = harness.drop("a.flac", content=b"payload")

    outcome = harness.sync.process_inbox_file(source)

    assert isinstance(outcome, Indexed)
    assert outcome.identity == SyncHarness.identity_of(b"payload")


def test_loose_file_has_no_provenance(harness: SyncHarness) -> None:
    outcome = harness.sync.process_inbox_file(harness.drop("loose.flac"))

    assert isinstance(outcome, Indexed)
    track = harness.index.get(outcome.identity)
    assert track is not None
    assert track.provenance is None


def test_emptied_subfolders_are_pruned_up_to_provenance_folder(harness: SyncHarness) -> None:
    source = harness.drop("Boris - Flood/CD1/01.flac")

    _ = harness.sync.process_inbox_file(source)

    assert not (harness.inbox / "Boris - Flood" / "CD1").exists()
    assert (harness.inbox / "Boris - Flood").is_dir()


def test_wav_is_rejected_and_stays_in_inbox(harness: SyncHarness, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="mlsync")
    source = harness.drop("track.wav", make_tags(format=AudioFormat.WAV))

    outcome = harness.sync.process_inbox_file(source)

    assert isinstance(outcome, Rejected)
    assert outcome.reason == "forbidden-format"
    assert source.is_file()
    assert len(harness.index) == 0
    assert list(harness.library.iterdir()) == []

    status = harness.status.get(source)
    assert status is not None
    assert status.state == "rejected"
    assert status.reason == "forbidden-format"

    rejected = _events(caplog, "sync.track.rejected")
    assert len(rejected) == 1
    assert rejected[0].levelno == logging.WARNING
    assert getattr(rejected[0], "reason") == "forbidden-format"
    assert getattr(rejected[0], "source_path") == str(source)


@pytest.mark.parametrize(
    ("overrides", "reason"),
    [
        ({"artist": "  "}, "missing-artist"),
        ({"album": None}, "missing-album"),
        ({"title": ""}, "missing-title"),
        ({"has_cue_sheet": True}, "forbidden-cue-single-file"),
    ],
)
def test_invalid_tags_are_rejected(harness: SyncHarness, overrides: dict[str, object], reason: str) -> None:
    source = harness.drop("bad.flac", make_tags(**overrides))

    outcome = harness.sync.process_inbox_file(source)

    assert isinstance(outcome, Rejected)
    assert outcome.reason == reason
    assert source.is_file()


def test_colliding_paths_get_disambiguated(harness: SyncHarness) -> None:
    first = harness.drop("one.flac", content=b"first")
    second = harness.drop("two.flac", content=b"second")

    a = harness.sync.process_inbox_file(first)
    b = harness.sync.process_inbox_file(second)

    assert isinstance(a, Indexed)
    assert isinstance(b, Indexed)
    assert a.path == CANONICAL
    assert b.path == "Boris/Flood/01 - Dronevil (2).flac"
    assert (harness.library / b.path).is_file()


def test_case_variants_collide(harness: SyncHarness) -> None:
    _ = harness.sync.process_inbox_file(harness.drop("one.flac", content=b"first"))
    shouted = harness.drop("two.flac", make_tags(artist="BORIS", album="FLOOD", title="DRONEVIL"), content=b"second")

    outcome = harness.sync.process_inbox_file(shouted)

    assert isinstance(outcome, Indexed)
    assert outcome.path == "BORIS/FLOOD/01 - DRONEVIL (2).flac"


def test_same_content_twice_is_rejected_as_duplicate(harness: SyncHarness) -> None:
    first = harness.drop("a/01.flac", content=b"same")
    _ = harness.sync.process_inbox_file(first)
    second = harness.drop("b/01.flac", content=b"same")

    outcome = harness.sync.process_inbox_file(second)

    assert isinstance(outcome, Rejected)
    assert outcome.reason == "duplicate"
    assert second.is_file()
    assert len(harness.index) == 1


def test_stale_record_is_replaced(harness: SyncHarness) -> None:
    first = harness.sync.process_inbox_file(harness.drop("a.flac", content=b"same"))
    assert isinstance(first, Indexed)
    (harness.library / first.path).unlink()

    again = harness.sync.process_inbox_file(harness.drop("b.flac", content=b"same"))

    assert isinstance(again, Indexed)
    assert again.identity == first.identity
    assert (harness.library / again.path).is_file()


def test_cancelled_task_leaves_file_alone(harness: SyncHarness) -> None:
    source = harness.drop("a.flac")
    token = CancelToken()
    token.cancel()

    outcome = harness.sync.process_inbox_file(source, token)

    assert outcome == Cancelled(source)
    assert source.is_file()
    assert len(harness.index) == 0


def test_cancel_between_prepare_and_commit(harness: SyncHarness) -> None:
    source = harness.drop("a.flac")
    token = CancelToken()
    prepared = harness.sync.prepare(source, token)
    token.cancel()

    outcome = harness.sync.commit(prepared, token)  # pyright: ignore[reportArgumentType]

    assert isinstance(outcome, Cancelled)
    assert source.is_file()


def test_vanished_source_is_skipped_at_commit(harness: SyncHarness) -> None:
    source = harness.drop("a.flac")
    prepared = harness.sync.prepare(source)
    source.unlink()

    outcome = harness.sync.commit(prepared)  # pyright: ignore[reportArgumentType]

    assert isinstance(outcome, Cancelled)
    assert len(harness.index) == 0


def test_move_failure_is_retried_then_quarantined(
    harness: SyncHarness, mocker: MockerFixture, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.DEBUG, logger="mlsync")
    source = harness.drop("a.flac")
    move = mocker.patch.object(harness.files, "move", side_effect=IOFailure("device busy"))

    outcome = harness.sync.process_inbox_file(source)

    assert isinstance(outcome, Quarantined)
    assert outcome.reason == "io-failure"
    assert outcome.location == source
    assert move.call_count == 4
    assert harness.sleeps == [0.5, 1.0, 2.0]
    assert len(harness.index) == 0
    assert source.is_file()

    status = harness.status.get(source)
    assert status is not None
    assert status.state == "quarantined"
    assert status.identity == outcome.identity
    assert len(_events(caplog, "sync.track.retry")) == 3
    assert [getattr(r, "attempt") for r in _events(caplog, "sync.track.move")] == [1, 2, 3, 4]


def test_move_succeeds_on_later_attempt(harness: SyncHarness, mocker: MockerFixture) -> None:
    source = harness.drop("a.flac")
    real_move = harness.files.move
    failures = iter([IOFailure("busy"), None])

    def flaky(src: Path, dst: Path) -> None:
        error = next(failures, None)
        if error is not None:
            raise error
        real_move(src, dst)

    _ = mocker.patch.object(harness.files, "move", side_effect=flaky)

    outcome = harness.sync.process_inbox_file(source)

    assert isinstance(outcome, Indexed)
    assert harness.sleeps == [0.5]


def test_occupied_destination_is_not_retried(harness: SyncHarness) -> None:
    squatter = harness.library / CANONICAL
    squatter.parent.mkdir(parents=True)
    _ = squatter.write_bytes(b"untracked")
    source = harness.drop("a.flac")

    outcome = harness.sync.process_inbox_file(source)

    assert isinstance(outcome, Quarantined)
    assert outcome.reason == "io-failure"
    assert harness.sleeps == []
    assert squatter.read_bytes() == b"untracked"
    assert source.is_file()


def test_tag_read_is_retried(harness: SyncHarness) -> None:
    source = harness.drop("a.flac", content=b"flaky")
    harness.reader.failures[b"flaky"] = 2

    outcome = harness.sync.process_inbox_file(source)

    assert isinstance(outcome, Indexed)
    assert harness.sleeps == [0.5, 1.0]


def test_quarantined_file_is_skipped_until_released(harness: SyncHarness) -> None:
    source = harness.drop("a.flac", content=b"broken")
    harness.reader.failures[b"broken"] = 100

    first = harness.sync.process_inbox_file(source)
    assert isinstance(first, Quarantined)
    reads = harness.reader.reads

    second = harness.sync.process_inbox_file(source)

    assert isinstance(second, Quarantined)
    assert second.previously_recorded
    assert harness.reader.reads == reads

    harness.reader.failures[b"broken"] = 0
    assert harness.status.clear(source)
    third = harness.sync.process_inbox_file(source)
    assert isinstance(third, Indexed)
    assert harness.status.get(source) is None


def test_changed_content_at_quarantined_path_is_retried(harness: SyncHarness) -> None:
    source = harness.drop("a.flac", content=b"broken")
    harness.reader.failures[b"broken"] = 100
    _ = harness.sync.process_inbox_file(source)

    replacement = harness.drop("a.flac", content=b"fixed")
    outcome = harness.sync.process_inbox_file(replacement)

    assert isinstance(outcome, Indexed)


def test_index_failure_rolls_the_move_back(
    harness: SyncHarness, mocker: MockerFixture, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.DEBUG, logger="mlsync")
    source = harness.drop("Boris - Flood/01.flac")
    _ = mocker.patch.object(harness.store, "upsert", side_effect=IndexCommitFailure("disk full"))

    outcome = harness.sync.process_inbox_file(source)

    assert isinstance(outcome, Quarantined)
    assert outcome.reason == "index-commit-failure"
    assert not outcome.inconsistent
    assert outcome.location == source
    assert source.is_file()
    assert not (harness.library / "Boris").exists()
    assert len(harness.index) == 0

    status = harness.status.get(source)
    assert status is not None
    assert status.reason == "index-commit-failure"
    assert not status.inconsistent
    assert len(_events(caplog, "sync.track.rollback")) == 1


def test_failed_rollback_marks_inconsistent_state(
    harness: SyncHarness, mocker: MockerFixture, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.DEBUG, logger="mlsync")
    source = harness.drop("a.flac")
    _ = mocker.patch.object(harness.store, "upsert", side_effect=IndexCommitFailure("disk full"))
    real_move = harness.files.move
    calls: list[tuple[Path, Path]] = []

    def first_only(src: Path, dst: Path) -> None:
        calls.append((src, dst))
        if len(calls) > 1:
            raise IOFailure("read-only filesystem")
        real_move(src, dst)

    _ = mocker.patch.object(harness.files, "move", side_effect=first_only)

    outcome = harness.sync.process_inbox_file(source)

    destination = harness.library / CANONICAL
    assert isinstance(outcome, Quarantined)
    assert outcome.inconsistent
    assert outcome.location == destination
    assert destination.is_file()
    assert len(harness.index) == 0
    # One forward move plus move_retries + 1 compensating attempts.
    assert len(calls) == 5

    status = harness.status.get(destination)
    assert status is not None
    assert status.inconsistent

    inconsistent = _events(caplog, "sync.track.inconsistent")
    assert len(inconsistent) == 1
    assert inconsistent[0].levelno == logging.ERROR


def test_collision_exhaustion_quarantines_in_place(harness: SyncHarness, mocker: MockerFixture) -> None:
    source = harness.drop("a.flac")
    _ = mocker.patch.object(harness.sync.resolver, "resolve", side_effect=CollisionError("no free slot"))

    outcome = harness.sync.process_inbox_file(source)

    assert isinstance(outcome, Quarantined)
    assert outcome.reason == "collision-exhausted"
    assert source.is_file()


def test_unsupported_file_is_set_aside(harness: SyncHarness) -> None:
    notes = harness.inbox / "Boris - Flood" / "notes.txt"
    notes.parent.mkdir()
    _ = notes.write_text("liner notes")

    destination = harness.sync.set_aside_unsupported(notes)

    assert destination == harness.inbox / "!unsupported" / "Boris - Flood" / "notes.txt"
    assert destination.read_text() == "liner notes"
    assert harness.sync.is_reserved(destination)


def test_unsupported_name_clash_gets_suffix(harness: SyncHarness) -> None:
    for _ in range(2):
        notes = harness.inbox / "notes.txt"
        _ = notes.write_text("x")
        _ = harness.sync.set_aside_unsupported(notes)

    assert (harness.inbox / "!unsupported" / "notes (2).txt").is_file()


def test_reserved_folders(harness: SyncHarness) -> None:
    assert harness.sync.is_reserved(harness.inbox / "!quarantine" / "a.flac")
    assert harness.sync.is_reserved(harness.inbox / "!unsupported" / "x" / "a.txt")
    assert not harness.sync.is_reserved(harness.inbox / "quarantine" / "a.flac")
    assert not harness.sync.is_reserved(harness.library / "a.flac")


def test_locks_are_released_after_processing(harness: SyncHarness) -> None:
    _ = harness.sync.process_inbox_file(harness.drop("a.flac"))

    assert len(harness.sync.identity_locks) == 0
    assert len(harness.sync.stem_locks) == 0


def test_variant_claimed_by_a_literal_title_is_re_resolved(harness: SyncHarness, mocker: MockerFixture) -> None:
    base = "Boris/Flood/01 - Foo.flac"
    placed = harness.sync.process_inbox_file(harness.drop("foo.flac", make_tags(title="Foo"), b"first foo"))
    second = harness.sync.prepare(harness.drop("foo-again.flac", make_tags(title="Foo"), b"second foo"))
    literal = harness.sync.prepare(harness.drop("foo-2.flac", make_tags(title="Foo (2)"), b"literal"))
    assert isinstance(placed, Indexed) and placed.path == base
    assert isinstance(second, PreparedTrack)
    assert isinstance(literal, PreparedTrack)
    assert second.stem_key != literal.stem_key

    real_resolve = harness.sync.resolver.resolve
    interleaved: list[object] = []

    def resolve_then_interleave(
        metadata: NormalizedMetadata, *, identity: str, holder_of: HolderLookup, current: str | None = None
    ) -> str:
        target = real_resolve(metadata, identity=identity, holder_of=holder_of, current=current)
        if identity == second.identity and not interleaved:
            # The literal "(2)" title is committed while the second "Foo" sits between resolve and move.
            interleaved.append(harness.sync.commit(literal))
        return target

    _ = mocker.patch.object(harness.sync.resolver, "resolve", side_effect=resolve_then_interleave)

    outcome = harness.sync.commit(second)

    assert interleaved == [Indexed(literal.identity, PathResolver.candidate(base, 2), literal.source_path)]
    assert isinstance(outcome, Indexed)
    assert outcome.path == PathResolver.candidate(base, 3)
    assert (harness.library / outcome.path).read_bytes() == b"second foo"
    assert (harness.library / PathResolver.candidate(base, 2)).read_bytes() == b"literal"


def test_unexpected_failure_is_recorded_in_place(harness: SyncHarness) -> None:
    source = harness.drop("a.flac")

    outcome = harness.sync.record_failure(source, RuntimeError("boom"))

    assert outcome == Quarantined(source, "unexpected-error", None, location=source)
    record = harness.status.get(source)
    assert record is not None and record.reason == "unexpected-error"
    assert source.is_file()
