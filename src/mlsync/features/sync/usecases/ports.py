"""
Summary: Ports the synchronizer depends on besides the index.
Why: Let tests swap the inbox status store for an in-memory fake.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from mlsync.platform.db.daos.inbox_status_dao import InboxState, InboxStatusRecord


@runtime_checkable
class InboxStatusPort(Protocol):
    """Port for persisting why inbox files were not imported."""

    def record(
        self,
        source_path: Path,
        *,
        state: InboxState,
        reason: str,
        identity: str | None = None,
        inconsistent: bool = False,
    ) -> bool:
        """Upsert the status for ``source_path``."""
        ...

    def get(self, source_path: Path) -> InboxStatusRecord | None:
        """Fetch the status for ``source_path``."""
        ...

    def list_all(self) -> list[InboxStatusRecord]:
        """Return every recorded status."""
        ...

    def clear(self, source_path: Path) -> bool:
        """Forget the status for ``source_path``."""
        ...


__all__ = ["InboxStatusPort"]
