"""Index use cases."""

from .metadata_index import MetadataIndex, SnapshotFilter, TrackPredicate, TrackStorePort

__all__ = ["MetadataIndex", "SnapshotFilter", "TrackPredicate", "TrackStorePort"]
