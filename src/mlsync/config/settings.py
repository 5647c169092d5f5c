"""Where: src/mlsync/config/settings.py
What: Fixed runtime constants shared by feature layers.
Why: Keep naming conventions and limits in one place without file I/O.
"""

from __future__ import annotations

from typing import Final

# Directory names reserved inside the inbox root. Scans and the watcher skip them.
QUARANTINE_DIR_NAME: Final[str] = "!quarantine"
UNSUPPORTED_DIR_NAME: Final[str] = "!unsupported"
RESERVED_INBOX_DIRS: Final[frozenset[str]] = frozenset({QUARANTINE_DIR_NAME, UNSUPPORTED_DIR_NAME})

# Cue sheets are companions of the audio beside them and are never swept as unsupported.
CUE_SHEET_SUFFIX: Final[str] = ".cue"

# Chunk size used when hashing file contents into a track identity.
FILE_HASH_CHUNK_SIZE: Final[int] = 1024 * 1024

# Upper bound on "(n)" disambiguators tried for a single path stem.
MAX_DISAMBIGUATION: Final[int] = 10_000

INDEX_FILE_NAME: Final[str] = "mlsync.db"

# Seconds between polls while waiting for library/inbox roots to appear.
ROOT_POLL_INTERVAL_SECONDS: Final[float] = 5.0

__all__ = [
    "CUE_SHEET_SUFFIX",
    "FILE_HASH_CHUNK_SIZE",
    "INDEX_FILE_NAME",
    "MAX_DISAMBIGUATION",
    "QUARANTINE_DIR_NAME",
    "RESERVED_INBOX_DIRS",
    "ROOT_POLL_INTERVAL_SECONDS",
    "UNSUPPORTED_DIR_NAME",
]
