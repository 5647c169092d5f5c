"""Metadata index feature: track records and the snapshot-consistent index."""
