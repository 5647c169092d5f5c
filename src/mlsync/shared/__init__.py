# Where: mlsync.shared.__init__
# What: Provide a concise import surface for shared dataclasses and errors.
# Why: Encourage consistent reuse of cross-feature types.

"""Shared cross-cutting types exposed at the package level."""

from .errors import (
    CollisionError,
    ConflictError,
    IndexCommitFailure,
    IOFailure,
    MlsyncError,
    NotFoundError,
    QuerySyntaxError,
    ServiceStateError,
    ValidationError,
)
from .track_metadata import AudioFormat, NormalizedMetadata, RawTags

__all__ = [
    "AudioFormat",
    "CollisionError",
    "ConflictError",
    "IOFailure",
    "IndexCommitFailure",
    "MlsyncError",
    "NormalizedMetadata",
    "NotFoundError",
    "QuerySyntaxError",
    "RawTags",
    "ServiceStateError",
    "ValidationError",
]
