# Where: mlsync.shared.track_metadata
# What: Raw and validated metadata dataclasses shared across features.
# Why: Centralize metadata representation so extraction, validation and indexing agree.

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class AudioFormat(StrEnum):
    """Container/codec families the library distinguishes."""

    FLAC = "flac"
    MP3_CBR = "mp3-cbr"
    MP3_VBR = "mp3-vbr"
    ALAC = "alac"
    AAC = "aac"
    VORBIS = "vorbis"
    OPUS = "opus"
    WAVPACK = "wavpack"
    # Recognized only so it can be rejected.
    WAV = "wav"

    @property
    def extension(self) -> str:
        """File extension (with dot) used for canonical file names."""

        return _EXTENSIONS[self]


_EXTENSIONS: dict[AudioFormat, str] = {
    AudioFormat.FLAC: ".flac",
    AudioFormat.MP3_CBR: ".mp3",
    AudioFormat.MP3_VBR: ".mp3",
    AudioFormat.ALAC: ".m4a",
    AudioFormat.AAC: ".m4a",
    AudioFormat.VORBIS: ".ogg",
    AudioFormat.OPUS: ".opus",
    AudioFormat.WAVPACK: ".wv",
    AudioFormat.WAV: ".wav",
}


@dataclass
class RawTags:
    """Tag set and stream properties as read from a file, before validation."""

    title: str | None = None
    artist: str | None = None
    album: str | None = None
    album_artist: str | None = None
    track_number: int | None = None
    disc_number: int | None = None
    format: AudioFormat | None = None
    bitrate: int | None = None
    bit_depth: int | None = None
    has_cover: bool = False
    cover_width: int | None = None
    cover_height: int | None = None
    musicbrainz_id: str | None = None
    has_cue_sheet: bool = False
    file_extension: str | None = None


@dataclass(frozen=True, slots=True)
class NormalizedMetadata:
    """Metadata accepted by the validator; required fields are non-empty and trimmed."""

    title: str
    artist: str
    album: str
    format: AudioFormat
    album_artist: str | None = None
    track_number: int | None = None
    disc_number: int | None = None
    bitrate: int = 0
    bit_depth: int | None = None
    has_cover: bool = False
    cover_width: int | None = None
    cover_height: int | None = None
    has_musicbrainz_id: bool = False

    @property
    def primary_artist(self) -> str:
        """Album artist when present, else the track artist."""

        return self.album_artist or self.artist


__all__ = ["AudioFormat", "NormalizedMetadata", "RawTags"]
