"""Shared base classes for metadata extractors.

Where: src/mlsync/features/metadata/usecases/extraction/_base_extractors.py
What: Template for turning a mutagen file object into ``RawTags``.
Why: Formats differ only in tag keys and stream properties; the assembly is shared.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, cast, override

from mutagen import FileType, MutagenError

from mlsync.platform.logging import logger
from mlsync.shared.track_metadata import AudioFormat, RawTags

from ._tag_utils import parse_slash_separated, safe_get_first

__all__ = [
    "AudioFormatExtractor",
    "BaseAudioExtractor",
    "BaseTagExtractor",
    "CoverInfo",
    "StreamInfo",
]


@dataclass(frozen=True, slots=True)
class StreamInfo:
    """Codec-level properties of an audio stream."""

    format: AudioFormat
    bitrate: int | None = None
    bit_depth: int | None = None


@dataclass(frozen=True, slots=True)
class CoverInfo:
    """Embedded front cover presence and size."""

    width: int | None = None
    height: int | None = None


class AudioFormatExtractor(abc.ABC):
    """Abstract base class for audio metadata extractors."""

    @abc.abstractmethod
    def extract_metadata(self, file_path: Path) -> RawTags:
        """Extract raw tags from an audio file."""
        raise NotImplementedError


class BaseTagExtractor:
    """Provides common helper methods for tag extraction."""

    @staticmethod
    def get_str_tag(tags: Any, key: str, default: str | None = None) -> str | None:
        """Extract the first string value for a key from tag collection."""
        if not key:
            return default
        value: object = tags.get(key)
        if isinstance(value, list):
            first = safe_get_first(data=[str(item) for item in cast(list[object], value)], default=default or "")
            return first or default
        if isinstance(value, str):
            return value
        if value is not None and hasattr(value, "text"):
            text = getattr(value, "text")
            if isinstance(text, (list, tuple)):
                return str(text[0]) if text else default
            return str(text)
        return default


class BaseAudioExtractor(AudioFormatExtractor, abc.ABC):
    """Base class for audio metadata extractors."""

    FILE_CLASS: ClassVar[type[FileType] | None] = None
    FILE_INIT_PARAMS: ClassVar[dict[str, Any]] = {}

    TAG_MAPPING: ClassVar[dict[str, str]] = {
        "title": "",
        "artist": "",
        "album_artist": "",
        "album": "",
        "track": "",
        "disc": "",
    }

    def _open_file(self, file_path: Path) -> FileType:
        """Open the audio file with the format's mutagen class."""
        if self.FILE_CLASS is None:
            raise NotImplementedError("FILE_CLASS must be defined in subclass")
        try:
            return self.FILE_CLASS(file_path, **self.FILE_INIT_PARAMS)
        except MutagenError as exc:
            logger.error(
                "Failed to read %s metadata from %s: %s",
                self.__class__.__name__.replace("Extractor", ""),
                file_path,
                exc,
            )
            if "No such file" in str(exc):
                raise FileNotFoundError(str(exc)) from exc
            raise

    def _get_tag_value(self, audio: FileType, key: str) -> str | None:
        """Get a tag value from the audio file."""
        return BaseTagExtractor.get_str_tag(audio, key)

    @abc.abstractmethod
    def _stream_info(self, audio: FileType, file_path: Path) -> StreamInfo:
        """Classify the codec and read bitrate/bit depth."""
        raise NotImplementedError

    def _cover(self, audio: FileType) -> CoverInfo | None:
        """Return embedded cover details, or None when there is no cover."""
        return None

    def _musicbrainz_id(self, audio: FileType) -> str | None:
        return self._get_tag_value(audio, "musicbrainz_trackid") or None

    def _has_embedded_cue(self, audio: FileType) -> bool:
        return bool(self._get_tag_value(audio, "cuesheet"))

    def _track_and_disc(self, audio: FileType) -> tuple[int | None, int | None]:
        track_str: str = self._get_tag_value(audio, self.TAG_MAPPING["track"]) or ""
        disc_str: str = self._get_tag_value(audio, self.TAG_MAPPING["disc"]) or ""
        track_number, _track_total = parse_slash_separated(value=track_str)
        disc_number, _disc_total = parse_slash_separated(value=disc_str)
        return track_number, disc_number

    @override
    def extract_metadata(self, file_path: Path) -> RawTags:
        """Extract raw tags from an audio file."""
        audio = self._open_file(file_path)
        logger.debug("Opened %s as %s", file_path, type(audio).__name__)

        track_number, disc_number = self._track_and_disc(audio)
        stream = self._stream_info(audio, file_path)
        cover = self._cover(audio)

        metadata = RawTags(
            title=self._get_tag_value(audio, self.TAG_MAPPING["title"]),
            artist=self._get_tag_value(audio, self.TAG_MAPPING["artist"]),
            album=self._get_tag_value(audio, self.TAG_MAPPING["album"]),
            album_artist=self._get_tag_value(audio, self.TAG_MAPPING["album_artist"]),
            track_number=track_number,
            disc_number=disc_number,
            format=stream.format,
            bitrate=stream.bitrate,
            bit_depth=stream.bit_depth,
            has_cover=cover is not None,
            cover_width=cover.width if cover else None,
            cover_height=cover.height if cover else None,
            musicbrainz_id=self._musicbrainz_id(audio),
            has_cue_sheet=self._has_embedded_cue(audio),
            file_extension=file_path.suffix.lower(),
        )
        logger.debug("Extracted metadata: %s", metadata)
        return metadata
