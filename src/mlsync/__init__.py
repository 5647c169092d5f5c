"""mlsync: keep a canonical music library and its metadata index in sync."""

__version__ = "0.1.0"
