"""File and path name sanitization functionality."""

import re
import unicodedata
from typing import ClassVar, final


@final
class Sanitizer:
    """Sanitize single path components for the canonical library tree."""

    # Characters no supported filesystem accepts in a name, plus control characters
    FORBIDDEN: ClassVar[re.Pattern[str]] = re.compile(r'[/\\:*?"<>|\x00-\x1f\x7f]')

    LEADING_DOTS: ClassVar[re.Pattern[str]] = re.compile(r"^\.+")

    REPLACEMENT: ClassVar[str] = "_"

    # Maximum lengths (in bytes)
    MAX_ARTIST_LENGTH: ClassVar[int] = 80
    MAX_ALBUM_LENGTH: ClassVar[int] = 120
    MAX_STEM_LENGTH: ClassVar[int] = 150

    @classmethod
    def _clean_string(cls, text: str) -> str:
        """Normalize (NFKC), replace forbidden characters, and trim edges."""
        text = unicodedata.normalize("NFKC", text)
        text = cls.FORBIDDEN.sub(cls.REPLACEMENT, text)
        text = text.strip().rstrip(". ")
        # Never produce hidden entries
        return cls.LEADING_DOTS.sub(lambda m: cls.REPLACEMENT * len(m.group(0)), text)

    @staticmethod
    def truncate_bytes(text: str, max_length: int) -> str:
        """Drop trailing characters until ``text`` fits in ``max_length`` UTF-8 bytes."""
        if len(text.encode("utf-8")) <= max_length:
            return text
        encoded = text.encode("utf-8")[:max_length]
        return encoded.decode("utf-8", errors="ignore")

    @classmethod
    def sanitize_component(cls, text: str | int | None, max_length: int | None = None) -> str:
        """Sanitize one path component.

        Args:
            text: Raw value. ``None`` and blank strings become ``"_"``.
            max_length: Maximum length in bytes, if None no limit is applied.

        Returns:
            str: A non-empty name without separators, control characters,
            leading dots, trailing dots or surrounding whitespace.
        """
        cleaned = cls._clean_string(str(text)) if text is not None else ""
        if max_length is not None:
            cleaned = cls.truncate_bytes(cleaned, max_length).rstrip(". ")
        return cleaned or cls.REPLACEMENT

    @classmethod
    def sanitize_artist_name(cls, artist_name: str | None) -> str:
        return cls.sanitize_component(artist_name, cls.MAX_ARTIST_LENGTH)

    @classmethod
    def sanitize_album_name(cls, album_name: str | None) -> str:
        return cls.sanitize_component(album_name, cls.MAX_ALBUM_LENGTH)

    @classmethod
    def sanitize_stem(cls, stem: str) -> str:
        return cls.sanitize_component(stem, cls.MAX_STEM_LENGTH)
