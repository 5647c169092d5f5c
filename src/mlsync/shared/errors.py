"""
Summary: Error taxonomy shared by validation, indexing, synchronization and queries.
Why: Let each layer raise precise failures while callers catch one base class.
"""

from __future__ import annotations


class MlsyncError(Exception):
    """Base class for every error raised by mlsync."""


class ValidationError(MlsyncError):
    """Tags were missing or the file format is forbidden."""

    def __init__(self, reason: str, path: object | None = None) -> None:
        detail = f" ({path})" if path is not None else ""
        super().__init__(f"validation failed: {reason}{detail}")
        self.reason: str = reason
        self.path: object | None = path


class CollisionError(MlsyncError):
    """Disambiguation could not find a free canonical path."""


class IOFailure(MlsyncError):
    """A filesystem read or move failed (including timeouts)."""

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable: bool = retryable


class IndexCommitFailure(MlsyncError):
    """Writing to the metadata index failed."""


class ConflictError(IndexCommitFailure):
    """A different identity already holds the canonical path."""

    def __init__(self, path: str, holder: str, claimant: str) -> None:
        super().__init__(f"path {path!r} is held by {holder}, cannot assign it to {claimant}")
        self.path: str = path
        self.holder: str = holder
        self.claimant: str = claimant


class QuerySyntaxError(MlsyncError):
    """A query expression could not be compiled."""

    def __init__(self, message: str, position: int, token: str = "") -> None:
        shown = f" near {token!r}" if token else ""
        super().__init__(f"{message} at position {position}{shown}")
        self.message: str = message
        self.position: int = position
        self.token: str = token


class NotFoundError(MlsyncError, LookupError):
    """No indexed track has the requested identity."""


class ServiceStateError(MlsyncError, RuntimeError):
    """The service was used before ``open()`` or after ``close()``."""


__all__ = [
    "CollisionError",
    "ConflictError",
    "IOFailure",
    "IndexCommitFailure",
    "MlsyncError",
    "NotFoundError",
    "QuerySyntaxError",
    "ServiceStateError",
    "ValidationError",
]
