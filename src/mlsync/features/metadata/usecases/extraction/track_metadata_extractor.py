"""Audio file metadata extraction functionality.

Where: src/mlsync/features/metadata/usecases/extraction/track_metadata_extractor.py
What: Provide the MetadataExtractor facade routing to format extractors.
Why: Offer a slim orchestration layer that the synchronizer reads tags through.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import ClassVar

from mlsync.config.settings import CUE_SHEET_SUFFIX
from mlsync.platform.logging import logger
from mlsync.shared.track_metadata import RawTags

from ._base_extractors import AudioFormatExtractor
from .format_extractors import (
    FlacExtractor,
    M4aExtractor,
    Mp3Extractor,
    OpusExtractor,
    VorbisExtractor,
    WavExtractor,
    WavPackExtractor,
)

__all__ = ["MetadataExtractor"]


class MetadataExtractor:
    """Facade class for extracting metadata from audio files.

    This class selects the appropriate extractor based on file extension and
    adds the sibling cue-sheet check that no single extractor can see.
    """

    SUPPORTED_FORMATS: ClassVar[frozenset[str]] = frozenset(
        {".flac", ".mp3", ".m4a", ".ogg", ".opus", ".wv", ".wav"}
    )

    # Mapping from file extension to corresponding extractor instance.
    _format_map: ClassVar[dict[str, AudioFormatExtractor]] = {
        ".flac": FlacExtractor(),
        ".mp3": Mp3Extractor(),
        ".m4a": M4aExtractor(),
        ".ogg": VorbisExtractor(),
        ".opus": OpusExtractor(),
        ".wv": WavPackExtractor(),
        ".wav": WavExtractor(),
    }

    @classmethod
    def is_supported(cls, file_path: Path) -> bool:
        """Return True when ``file_path`` has a recognized audio extension."""

        return file_path.suffix.lower() in cls.SUPPORTED_FORMATS

    @classmethod
    def extract(cls, file_path: Path) -> RawTags:
        """Extract metadata from an audio file.

        Args:
            file_path: Path to the audio file.

        Returns:
            RawTags: Extracted tags and stream properties.

        Raises:
            ValueError: If the file format is unsupported.
            OSError | MutagenError: If the file cannot be read.
        """
        ext: str = file_path.suffix.lower()
        extractor = cls._format_map.get(ext)
        if extractor is None:
            raise ValueError(f"Unsupported file format: {ext}")

        metadata = extractor.extract_metadata(file_path)
        if not metadata.has_cue_sheet and cls.has_sibling_cue_sheet(file_path):
            metadata = replace(metadata, has_cue_sheet=True)
        return metadata

    @staticmethod
    def has_sibling_cue_sheet(file_path: Path) -> bool:
        """Return True when a ``.cue`` file next to ``file_path`` splits it into tracks.

        A cue sheet marks a single-file rip when it references exactly one audio
        file (by ``FILE`` line, or by sharing the audio file's stem) and lists
        more than one ``TRACK``. Per-track rips whose cue names many files are
        not affected.
        """
        try:
            candidates = [
                p for p in file_path.parent.iterdir() if p.suffix.lower() == CUE_SHEET_SUFFIX and p.is_file()
            ]
        except OSError as exc:
            logger.debug("Could not list %s for cue sheets: %s", file_path.parent, exc)
            return False

        target_name = file_path.name.casefold()
        for cue in candidates:
            try:
                text = cue.read_text(encoding="utf-8", errors="replace")
            except OSError:
                continue
            referenced: list[str] = []
            track_count = 0
            for line in text.splitlines():
                keyword, _sep, rest = line.strip().partition(" ")
                keyword = keyword.upper()
                if keyword == "FILE":
                    name = rest.rsplit(" ", 1)[0].strip().strip('"')
                    referenced.append(Path(name.replace("\\", "/")).name.casefold())
                elif keyword == "TRACK":
                    track_count += 1
            if track_count < 2 or len(referenced) > 1:
                continue
            if target_name in referenced or cue.stem.casefold() == file_path.stem.casefold():
                return True
        return False
