"""Where: features/validation/domain/validator.py
What: Decide whether a raw tag set may enter the library.
Why: Keep acceptance rules pure so they can be applied identically on import and refresh.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import final

from mlsync.shared.errors import ValidationError
from mlsync.shared.track_metadata import AudioFormat, NormalizedMetadata, RawTags


class RejectionReason(StrEnum):
    """Why a file was kept out of the library."""

    MISSING_ARTIST = "missing-artist"
    MISSING_ALBUM = "missing-album"
    MISSING_TITLE = "missing-title"
    FORBIDDEN_FORMAT = "forbidden-format"
    FORBIDDEN_CUE_SINGLE_FILE = "forbidden-cue-single-file"
    # Raised by the synchronizer, not by TagValidator.
    DUPLICATE = "duplicate"


@dataclass(frozen=True, slots=True)
class Accepted:
    metadata: NormalizedMetadata


@dataclass(frozen=True, slots=True)
class Rejected:
    reason: RejectionReason

    def to_error(self, path: object | None = None) -> ValidationError:
        return ValidationError(self.reason.value, path)


ValidationResult = Accepted | Rejected


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.replace("\x00", "").strip()
    return cleaned or None


def _positive(value: int | None) -> int | None:
    return value if value is not None and value > 0 else None


@final
class TagValidator:
    """Stateless acceptance rules.

    Checks run in a fixed order: format, cue sheet, artist, album, title. The
    first failing check decides the reason.
    """

    @staticmethod
    def validate(raw: RawTags) -> ValidationResult:
        if raw.format is None or raw.format is AudioFormat.WAV:
            return Rejected(RejectionReason.FORBIDDEN_FORMAT)
        if raw.has_cue_sheet:
            return Rejected(RejectionReason.FORBIDDEN_CUE_SINGLE_FILE)

        artist = _clean(raw.artist)
        if artist is None:
            return Rejected(RejectionReason.MISSING_ARTIST)
        album = _clean(raw.album)
        if album is None:
            return Rejected(RejectionReason.MISSING_ALBUM)
        title = _clean(raw.title)
        if title is None:
            return Rejected(RejectionReason.MISSING_TITLE)

        return Accepted(
            NormalizedMetadata(
                title=title,
                artist=artist,
                album=album,
                format=raw.format,
                album_artist=_clean(raw.album_artist),
                track_number=_positive(raw.track_number),
                disc_number=_positive(raw.disc_number),
                bitrate=raw.bitrate if raw.bitrate and raw.bitrate > 0 else 0,
                bit_depth=_positive(raw.bit_depth),
                has_cover=raw.has_cover,
                cover_width=_positive(raw.cover_width) if raw.has_cover else None,
                cover_height=_positive(raw.cover_height) if raw.has_cover else None,
                has_musicbrainz_id=bool(_clean(raw.musicbrainz_id)),
            )
        )

    @classmethod
    def require(cls, raw: RawTags) -> NormalizedMetadata:
        """Return normalized metadata or raise ``ValidationError``."""

        result = cls.validate(raw)
        if isinstance(result, Rejected):
            raise result.to_error()
        return result.metadata


__all__ = ["Accepted", "Rejected", "RejectionReason", "TagValidator", "ValidationResult"]
