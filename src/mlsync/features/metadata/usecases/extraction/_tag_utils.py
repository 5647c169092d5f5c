"""Tag utility helpers.

Where: src/mlsync/features/metadata/usecases/extraction/_tag_utils.py
What: Pure helpers for parsing tag values and sizing embedded artwork.
Why: Share parsing rules between format extractors.
"""

from __future__ import annotations

from io import BytesIO

from PIL import Image, UnidentifiedImageError

__all__ = [
    "bitrate_kbps",
    "image_dimensions",
    "parse_slash_separated",
    "parse_tuple_numbers",
    "safe_get_first",
]


def safe_get_first(data: list[str] | None, default: str = "") -> str:
    """Safely get the first element from a list or return the default."""
    return data[0] if data else default


def parse_slash_separated(value: str) -> tuple[int | None, int | None]:
    """Parse a string in 'number/total' format.

    Returns a tuple (number, total); a part that is not a plain decimal
    number, such as "①" or "3a", becomes None.
    """
    parts: list[str] = [part.strip() for part in value.split(sep="/")] if value else []
    num: int | None = int(parts[0]) if parts and parts[0].isdecimal() else None
    total: int | None = int(parts[1]) if len(parts) > 1 and parts[1].isdecimal() else None
    return num, total


def parse_tuple_numbers(data: list[tuple[int, int]] | None) -> tuple[int | None, int | None]:
    """Parse a list of numeric tuples and return the first tuple with zeros converted to None."""
    if data:
        first: tuple[int, int] = data[0]
        num: int | None = first[0] if first[0] != 0 else None
        total: int | None = first[1] if first[1] != 0 else None
        return num, total
    return None, None


def bitrate_kbps(bits_per_second: int | float | None) -> int | None:
    """Convert a mutagen bitrate (bit/s) into whole kbps."""
    if not bits_per_second or bits_per_second < 0:
        return None
    return int(round(bits_per_second / 1000))


def image_dimensions(data: bytes | None) -> tuple[int | None, int | None]:
    """Return ``(width, height)`` of encoded image bytes, or ``(None, None)`` if undecodable."""
    if not data:
        return None, None
    try:
        with Image.open(BytesIO(data)) as image:
            width, height = image.size
    except (UnidentifiedImageError, OSError, ValueError):
        return None, None
    return int(width), int(height)
