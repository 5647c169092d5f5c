"""Format-specific metadata extractors.

Where: src/mlsync/features/metadata/usecases/extraction/format_extractors.py
What: Define concrete metadata extractors for supported audio formats.
Why: Separate format logic from the facade to simplify future maintenance and extensions.
"""

from __future__ import annotations

import base64
import binascii
from pathlib import Path
from typing import Any, ClassVar, cast, override

from mutagen import FileType
from mutagen.flac import FLAC, Picture
from mutagen.mp3 import MP3, BitrateMode
from mutagen.mp4 import MP4
from mutagen.oggopus import OggOpus
from mutagen.oggvorbis import OggVorbis
from mutagen.wave import WAVE
from mutagen.wavpack import WavPack

from mlsync.platform.logging import logger
from mlsync.shared.track_metadata import AudioFormat

from ._base_extractors import BaseAudioExtractor, BaseTagExtractor, CoverInfo, StreamInfo
from ._tag_utils import bitrate_kbps, image_dimensions, parse_tuple_numbers

__all__ = [
    "FlacExtractor",
    "M4aExtractor",
    "Mp3Extractor",
    "OpusExtractor",
    "VorbisExtractor",
    "WavExtractor",
    "WavPackExtractor",
]

_VORBIS_MAPPING: dict[str, str] = {
    "title": "title",
    "artist": "artist",
    "album_artist": "albumartist",
    "album": "album",
    "track": "tracknumber",
    "disc": "discnumber",
}

_ID3_MAPPING: dict[str, str] = {
    "title": "TIT2",
    "artist": "TPE1",
    "album_artist": "TPE2",
    "album": "TALB",
    "track": "TRCK",
    "disc": "TPOS",
}

_FRONT_COVER = 3


def _average_bitrate(audio: FileType, file_path: Path) -> int | None:
    """Estimate kbps from file size and duration for formats without a header bitrate."""
    length = float(getattr(audio.info, "length", 0) or 0)
    if length <= 0:
        return None
    try:
        size = file_path.stat().st_size
    except OSError:
        return None
    return bitrate_kbps(size * 8 / length)


def _picture_cover(picture: Picture) -> CoverInfo:
    width = int(picture.width) or None
    height = int(picture.height) or None
    if width is None or height is None:
        width, height = image_dimensions(picture.data)
    return CoverInfo(width=width, height=height)


def _pick_front(pictures: list[Picture]) -> Picture | None:
    for picture in pictures:
        if picture.type == _FRONT_COVER:
            return picture
    return pictures[0] if pictures else None


class _VorbisCommentExtractor(BaseAudioExtractor):
    """Shared cover lookup for Ogg containers that embed pictures as comments."""

    TAG_MAPPING: ClassVar[dict[str, str]] = _VORBIS_MAPPING

    @override
    def _cover(self, audio: FileType) -> CoverInfo | None:
        pictures: list[Picture] = []
        for encoded in cast(list[str], audio.get("metadata_block_picture") or []):
            try:
                pictures.append(Picture(base64.b64decode(encoded)))
            except (binascii.Error, ValueError) as exc:
                logger.debug("Skipping undecodable embedded picture: %s", exc)
        picture = _pick_front(pictures)
        if picture is not None:
            return _picture_cover(picture)

        legacy = cast(list[str], audio.get("coverart") or [])
        if legacy:
            try:
                width, height = image_dimensions(base64.b64decode(legacy[0]))
            except (binascii.Error, ValueError):
                width, height = None, None
            return CoverInfo(width=width, height=height)
        return None


class FlacExtractor(BaseAudioExtractor):
    """Extractor for FLAC files."""

    FILE_CLASS: ClassVar[type[FileType] | None] = FLAC
    TAG_MAPPING: ClassVar[dict[str, str]] = _VORBIS_MAPPING

    @override
    def _stream_info(self, audio: FileType, file_path: Path) -> StreamInfo:
        info = audio.info
        return StreamInfo(
            format=AudioFormat.FLAC,
            bitrate=bitrate_kbps(getattr(info, "bitrate", None)) or _average_bitrate(audio, file_path),
            bit_depth=getattr(info, "bits_per_sample", None),
        )

    @override
    def _cover(self, audio: FileType) -> CoverInfo | None:
        picture = _pick_front(list(cast(FLAC, audio).pictures))
        return _picture_cover(picture) if picture is not None else None

    @override
    def _has_embedded_cue(self, audio: FileType) -> bool:
        return cast(FLAC, audio).cuesheet is not None or super()._has_embedded_cue(audio)


class Mp3Extractor(BaseAudioExtractor):
    """Extractor for MP3 files using full ID3 frames."""

    FILE_CLASS: ClassVar[type[FileType] | None] = MP3
    TAG_MAPPING: ClassVar[dict[str, str]] = _ID3_MAPPING

    @override
    def _stream_info(self, audio: FileType, file_path: Path) -> StreamInfo:
        info = audio.info
        mode = getattr(info, "bitrate_mode", BitrateMode.UNKNOWN)
        is_variable = mode in (BitrateMode.VBR, BitrateMode.ABR)
        return StreamInfo(
            format=AudioFormat.MP3_VBR if is_variable else AudioFormat.MP3_CBR,
            bitrate=bitrate_kbps(getattr(info, "bitrate", None)),
        )

    @override
    def _cover(self, audio: FileType) -> CoverInfo | None:
        if audio.tags is None:
            return None
        frames = list(audio.tags.getall("APIC"))
        if not frames:
            return None
        front = next((frame for frame in frames if frame.type == _FRONT_COVER), frames[0])
        width, height = image_dimensions(front.data)
        return CoverInfo(width=width, height=height)

    @override
    def _musicbrainz_id(self, audio: FileType) -> str | None:
        if audio.tags is None:
            return None
        for frame in audio.tags.getall("UFID"):
            if getattr(frame, "owner", "") == "http://musicbrainz.org" and frame.data:
                return frame.data.decode("ascii", errors="replace")
        return self._get_tag_value(audio, "TXXX:MusicBrainz Release Track Id") or None

    @override
    def _has_embedded_cue(self, audio: FileType) -> bool:
        return bool(self._get_tag_value(audio, "TXXX:CUESHEET"))


class M4aExtractor(BaseAudioExtractor):
    """Extractor for MP4 files carrying AAC or ALAC streams."""

    FILE_CLASS: ClassVar[type[FileType] | None] = MP4
    TAG_MAPPING: ClassVar[dict[str, str]] = {
        "title": "\xa9nam",
        "artist": "\xa9ART",
        "album_artist": "aART",
        "album": "\xa9alb",
        "track": "trkn",
        "disc": "disk",
    }
    _FREEFORM_PREFIX: ClassVar[str] = "----:com.apple.iTunes:"

    @override
    def _get_tag_value(self, audio: FileType, key: str) -> str | None:
        if key in ["trkn", "disk"]:
            value = cast(list[tuple[int, int]] | None, audio.get(key))
            if not value:
                return None
            num, total = parse_tuple_numbers(data=value)
            return f"{num or ''}/{total or ''}"
        if key.startswith(self._FREEFORM_PREFIX):
            raw = cast(list[bytes] | None, audio.get(key))
            return bytes(raw[0]).decode("utf-8", errors="replace") if raw else None
        return BaseTagExtractor.get_str_tag(audio, key)

    @override
    def _stream_info(self, audio: FileType, file_path: Path) -> StreamInfo:
        info = audio.info
        codec = str(getattr(info, "codec", "") or "").lower()
        if codec == "alac":
            return StreamInfo(
                format=AudioFormat.ALAC,
                bitrate=bitrate_kbps(getattr(info, "bitrate", None)) or _average_bitrate(audio, file_path),
                bit_depth=getattr(info, "bits_per_sample", None),
            )
        return StreamInfo(format=AudioFormat.AAC, bitrate=bitrate_kbps(getattr(info, "bitrate", None)))

    @override
    def _cover(self, audio: FileType) -> CoverInfo | None:
        covers = cast(list[bytes] | None, audio.get("covr"))
        if not covers:
            return None
        width, height = image_dimensions(bytes(covers[0]))
        return CoverInfo(width=width, height=height)

    @override
    def _musicbrainz_id(self, audio: FileType) -> str | None:
        return self._get_tag_value(audio, self._FREEFORM_PREFIX + "MusicBrainz Track Id")

    @override
    def _has_embedded_cue(self, audio: FileType) -> bool:
        return bool(self._get_tag_value(audio, self._FREEFORM_PREFIX + "cuesheet"))


class VorbisExtractor(_VorbisCommentExtractor):
    """Extractor for Ogg Vorbis files."""

    FILE_CLASS: ClassVar[type[FileType] | None] = OggVorbis

    @override
    def _stream_info(self, audio: FileType, file_path: Path) -> StreamInfo:
        nominal = bitrate_kbps(getattr(audio.info, "bitrate", None))
        return StreamInfo(format=AudioFormat.VORBIS, bitrate=nominal or _average_bitrate(audio, file_path))


class OpusExtractor(_VorbisCommentExtractor):
    """Extractor for Opus (.opus) files using Vorbis comments."""

    FILE_CLASS: ClassVar[type[FileType] | None] = OggOpus

    @override
    def _stream_info(self, audio: FileType, file_path: Path) -> StreamInfo:
        return StreamInfo(format=AudioFormat.OPUS, bitrate=_average_bitrate(audio, file_path))


class WavPackExtractor(BaseAudioExtractor):
    """Extractor for WavPack files carrying APEv2 tags."""

    FILE_CLASS: ClassVar[type[FileType] | None] = WavPack
    TAG_MAPPING: ClassVar[dict[str, str]] = {
        "title": "Title",
        "artist": "Artist",
        "album_artist": "Album Artist",
        "album": "Album",
        "track": "Track",
        "disc": "Disc",
    }

    @override
    def _get_tag_value(self, audio: FileType, key: str) -> str | None:
        if audio.tags is None or not key:
            return None
        value: Any = audio.tags.get(key)
        if value is None:
            return None
        # APEv2 separates multiple values with NUL.
        return str(value).split("\x00")[0] or None

    @override
    def _stream_info(self, audio: FileType, file_path: Path) -> StreamInfo:
        return StreamInfo(
            format=AudioFormat.WAVPACK,
            bitrate=_average_bitrate(audio, file_path),
            bit_depth=getattr(audio.info, "bits_per_sample", None),
        )

    @override
    def _cover(self, audio: FileType) -> CoverInfo | None:
        if audio.tags is None:
            return None
        value: Any = audio.tags.get("Cover Art (Front)")
        if value is None:
            return None
        # Binary item layout: "<file name>\0<image bytes>".
        _name, _sep, data = bytes(value.value).partition(b"\x00")
        width, height = image_dimensions(data)
        return CoverInfo(width=width, height=height)

    @override
    def _musicbrainz_id(self, audio: FileType) -> str | None:
        return self._get_tag_value(audio, "MUSICBRAINZ_TRACKID")

    @override
    def _has_embedded_cue(self, audio: FileType) -> bool:
        return bool(self._get_tag_value(audio, "Cuesheet"))


class WavExtractor(BaseAudioExtractor):
    """Extractor for WAV files; read only so that they can be rejected with a reason."""

    FILE_CLASS: ClassVar[type[FileType] | None] = WAVE
    TAG_MAPPING: ClassVar[dict[str, str]] = _ID3_MAPPING

    @override
    def _stream_info(self, audio: FileType, file_path: Path) -> StreamInfo:
        info = audio.info
        return StreamInfo(
            format=AudioFormat.WAV,
            bitrate=bitrate_kbps(getattr(info, "bitrate", None)),
            bit_depth=getattr(info, "bits_per_sample", None),
        )
