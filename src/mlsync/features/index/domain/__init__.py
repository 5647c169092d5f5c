"""Domain models for indexed tracks."""

from .track import Track, path_key

__all__ = ["Track", "path_key"]
