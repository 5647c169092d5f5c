"""
Summary: Public surface for metadata extraction modules.
Why: Provide a stable import path for orchestrators and tests.
"""

from .format_extractors import (
    FlacExtractor,
    M4aExtractor,
    Mp3Extractor,
    OpusExtractor,
    VorbisExtractor,
    WavExtractor,
    WavPackExtractor,
)
from .track_metadata_extractor import MetadataExtractor

__all__ = [
    "FlacExtractor",
    "M4aExtractor",
    "MetadataExtractor",
    "Mp3Extractor",
    "OpusExtractor",
    "VorbisExtractor",
    "WavExtractor",
    "WavPackExtractor",
]
