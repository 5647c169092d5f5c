"""
Summary: Use cases for reading tags and identifying files.
Why: Keep mutagen access behind one import path.
"""

from .extraction import MetadataExtractor
from .identity import calculate_file_hash
from .ports import TagReaderPort

__all__ = ["MetadataExtractor", "TagReaderPort", "calculate_file_hash"]
