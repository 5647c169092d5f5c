"""Summary: Acceptance rules applied to raw tag sets.
Why: Validation is pure; the same tags must always yield the same decision."""

from __future__ import annotations

import pytest

from mlsync.features.validation.domain.validator import Accepted, Rejected, RejectionReason, TagValidator
from mlsync.shared.errors import ValidationError
from mlsync.shared.track_metadata import AudioFormat
from support import make_tags


def test_complete_tags_are_accepted() -> None:
    result = TagValidator.validate(make_tags(album_artist="Boris", disc_number=1, musicbrainz_id="abc"))

    assert isinstance(result, Accepted)
    metadata = result.metadata
    assert (metadata.title, metadata.artist, metadata.album) == ("Dronevil", "Boris", "Flood")
    assert metadata.format is AudioFormat.FLAC
    assert metadata.has_musicbrainz_id


def test_values_are_trimmed() -> None:
    result = TagValidator.validate(make_tags(artist="  Boris\x00 ", album_artist="   "))

    assert isinstance(result, Accepted)
    assert result.metadata.artist == "Boris"
    assert result.metadata.album_artist is None


@pytest.mark.parametrize(
    ("overrides", "reason"),
    [
        ({"format": AudioFormat.WAV}, RejectionReason.FORBIDDEN_FORMAT),
        ({"format": None}, RejectionReason.FORBIDDEN_FORMAT),
        ({"has_cue_sheet": True}, RejectionReason.FORBIDDEN_CUE_SINGLE_FILE),
        ({"artist": None}, RejectionReason.MISSING_ARTIST),
        ({"artist": " \t"}, RejectionReason.MISSING_ARTIST),
        ({"album": ""}, RejectionReason.MISSING_ALBUM),
        ({"title": None}, RejectionReason.MISSING_TITLE),
    ],
)
def test_rejections(overrides: dict[str, object], reason: RejectionReason) -> None:
    assert TagValidator.validate(make_tags(**overrides)) == Rejected(reason)


def test_format_is_checked_before_tags() -> None:
    result = TagValidator.validate(make_tags(format=AudioFormat.WAV, artist=None, title=None))

    assert result == Rejected(RejectionReason.FORBIDDEN_FORMAT)


def test_non_positive_numbers_are_dropped() -> None:
    result = TagValidator.validate(make_tags(track_number=0, disc_number=-1, bitrate=-5, bit_depth=0))

    assert isinstance(result, Accepted)
    assert result.metadata.track_number is None
    assert result.metadata.disc_number is None
    assert result.metadata.bitrate == 0
    assert result.metadata.bit_depth is None


def test_cover_size_requires_cover() -> None:
    without = TagValidator.validate(make_tags(has_cover=False, cover_width=500, cover_height=500))
    with_cover = TagValidator.validate(make_tags(has_cover=True, cover_width=500, cover_height=400))

    assert isinstance(without, Accepted)
    assert without.metadata.cover_width is None
    assert isinstance(with_cover, Accepted)
    assert (with_cover.metadata.cover_width, with_cover.metadata.cover_height) == (500, 400)


def test_require_raises_validation_error() -> None:
    with pytest.raises(ValidationError) as excinfo:
        _ = TagValidator.require(make_tags(album=None))

    assert excinfo.value.reason == "missing-album"


def test_validation_is_deterministic() -> None:
    tags = make_tags(title="  Dronevil ")

    assert TagValidator.validate(tags) == TagValidator.validate(tags)
