"""Where: src/mlsync/platform/filesystem.py
What: Directory helpers shared by the synchronizer and persistence layers.
Why: Keep raw os/pathlib calls for directory management in one module.
"""

from __future__ import annotations

import os
from pathlib import Path

from mlsync.platform.logging import logger


def ensure_directory(path: Path) -> Path:
    """Create ``path`` (and parents) when missing and return it."""

    path.mkdir(parents=True, exist_ok=True)
    return path


def ensure_parent_directory(path: Path) -> Path:
    """Ensure the parent directory for ``path`` exists and return it."""

    return ensure_directory(path.parent)


def remove_empty_directories(directory: Path, *, stop_at: Path | None = None) -> None:
    """Recursively remove empty directories below ``directory``.

    Args:
        directory: Tree to prune bottom-up.
        stop_at: Directory that is never removed itself. Defaults to ``directory``.
    """
    keep = (stop_at or directory).resolve()
    if not directory.is_dir():
        return

    for root, _dirs, _files in os.walk(directory, topdown=False):
        current = Path(root)
        if current.resolve() == keep:
            continue
        try:
            next(current.iterdir())
        except StopIteration:
            try:
                current.rmdir()
                logger.debug("Removed empty directory %s", current)
            except OSError as exc:
                logger.debug("Could not remove directory %s: %s", current, exc)


def prune_empty_parents(path: Path, *, stop_at: Path) -> None:
    """Remove empty ancestors of ``path`` up to, but excluding, ``stop_at``."""

    boundary = stop_at.resolve()
    current = path.parent
    while True:
        resolved = current.resolve()
        if resolved == boundary or not resolved.is_relative_to(boundary):
            return
        try:
            current.rmdir()
        except OSError:
            return
        current = current.parent


def is_within(path: Path, root: Path) -> bool:
    """Return whether ``path`` lies inside ``root`` (after resolving both)."""

    try:
        return path.resolve().is_relative_to(root.resolve())
    except OSError:
        return False


__all__ = [
    "ensure_directory",
    "ensure_parent_directory",
    "is_within",
    "prune_empty_parents",
    "remove_empty_directories",
]
