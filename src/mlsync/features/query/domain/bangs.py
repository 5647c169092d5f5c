"""Where: features/query/domain/bangs.py
What: The fixed vocabulary of bang names and what each one filters on.
Why: Parser and compiler share one table, so a bang cannot be known to one and not the other.

Lowercase text bangs match substrings; their uppercase twins match the whole
value. Both ignore case.
``!dup`` is the one bang whose answer depends on the other indexed tracks.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final, Literal

from mlsync.shared.track_metadata import AudioFormat


class ValueKind(StrEnum):
    TEXT = "text"
    FORMAT = "format"
    INTEGER = "integer"
    BOOLEAN = "boolean"


TextField = Literal["title", "artist", "album", "album_artist", "full_text"]
NumericField = Literal["bitrate", "cover_width", "cover_height"]
BooleanField = Literal["has_cover", "has_musicbrainz_id", "duplicate"]


@dataclass(frozen=True, slots=True)
class BangSpec:
    """Meaning of one bang name."""

    name: str
    kind: ValueKind
    field: str
    exact: bool = False
    comparator: Literal["lt", "gt"] | None = None
    description: str = ""


def _text(name: str, field: TextField, description: str) -> tuple[BangSpec, BangSpec]:
    return (
        BangSpec(name, ValueKind.TEXT, field, exact=False, description=f"{description} contains"),
        BangSpec(name.upper(), ValueKind.TEXT, field, exact=True, description=f"{description} equals"),
    )


def _numeric(prefix: str, field: NumericField, description: str) -> tuple[BangSpec, BangSpec]:
    return (
        BangSpec(f"{prefix}lt", ValueKind.INTEGER, field, comparator="lt", description=f"{description} <"),
        BangSpec(f"{prefix}gt", ValueKind.INTEGER, field, comparator="gt", description=f"{description} >"),
    )


BANGS: Final[dict[str, BangSpec]] = {
    spec.name: spec
    for spec in (
        *_text("q", "full_text", "title, artist, album or album artist"),
        *_text("t", "title", "title"),
        *_text("ar", "artist", "track artist"),
        *_text("al", "album", "album title"),
        *_text("alar", "album_artist", "album artist"),
        BangSpec("f", ValueKind.FORMAT, "format", description="format is"),
        *_numeric("br", "bitrate", "bitrate (kbps)"),
        *_numeric("cw", "cover_width", "cover width (px)"),
        *_numeric("ch", "cover_height", "cover height (px)"),
        BangSpec("c", ValueKind.BOOLEAN, "has_cover", description="has cover art"),
        BangSpec("mb", ValueKind.BOOLEAN, "has_musicbrainz_id", description="has MusicBrainz id"),
        BangSpec(
            "dup",
            ValueKind.BOOLEAN,
            "duplicate",
            description="shares title, artist and album with another indexed track",
        ),
    )
}

# Numeric bangs that need an lt/gt suffix.
NUMERIC_PREFIXES: Final[frozenset[str]] = frozenset({"br", "cw", "ch"})


@dataclass(frozen=True, slots=True)
class FormatSelector:
    """Formats (and optionally a bit depth) matched by one ``!f`` value."""

    formats: frozenset[AudioFormat]
    bit_depth: int | None = None


_MP3: Final = frozenset({AudioFormat.MP3_CBR, AudioFormat.MP3_VBR})

FORMAT_SELECTORS: Final[dict[str, FormatSelector]] = {
    "flac": FormatSelector(frozenset({AudioFormat.FLAC})),
    "flac16": FormatSelector(frozenset({AudioFormat.FLAC}), bit_depth=16),
    "flac24": FormatSelector(frozenset({AudioFormat.FLAC}), bit_depth=24),
    "mp3": FormatSelector(_MP3),
    "cbr": FormatSelector(frozenset({AudioFormat.MP3_CBR})),
    "vbr": FormatSelector(frozenset({AudioFormat.MP3_VBR})),
    "mp3-cbr": FormatSelector(frozenset({AudioFormat.MP3_CBR})),
    "mp3-vbr": FormatSelector(frozenset({AudioFormat.MP3_VBR})),
    "alac": FormatSelector(frozenset({AudioFormat.ALAC})),
    "aac": FormatSelector(frozenset({AudioFormat.AAC})),
    "vorbis": FormatSelector(frozenset({AudioFormat.VORBIS})),
    "opus": FormatSelector(frozenset({AudioFormat.OPUS})),
    "wavpack": FormatSelector(frozenset({AudioFormat.WAVPACK})),
}

__all__ = [
    "BANGS",
    "BangSpec",
    "BooleanField",
    "FORMAT_SELECTORS",
    "FormatSelector",
    "NUMERIC_PREFIXES",
    "NumericField",
    "TextField",
    "ValueKind",
]
