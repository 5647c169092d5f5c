"""
Summary: Ports for tag reading.
Why: Let the synchronizer run against stub readers in tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from mlsync.shared.track_metadata import RawTags


@runtime_checkable
class TagReaderPort(Protocol):
    """Port for reading raw tags from an audio file."""

    def is_supported(self, file_path: Path) -> bool:
        """Return True when the file extension is a recognized audio format."""
        ...

    def extract(self, file_path: Path) -> RawTags:
        """Read tags and stream properties; raise ``OSError`` or ``MutagenError`` on failure."""
        ...


__all__ = ["TagReaderPort"]
