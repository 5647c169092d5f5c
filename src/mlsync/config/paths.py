"""Shared path utilities for configuration and data locations.

This module centralizes how the application discovers locations for
config, data, and log files.

Policy (portable by default):
- Config: repository-root ``<repo_root>/config/config.toml`` unless
  overridden by ``MLSYNC_CONFIG``.
- Data: repository-root ``<repo_root>/.data`` unless overridden by
  ``MLSYNC_DATA_DIR``.
- Logs: repository-root ``<repo_root>/logs/mlsync.log``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Callable, Final


ENV_CONFIG_PATH: Final[str] = "MLSYNC_CONFIG"
ENV_DATA_DIR: Final[str] = "MLSYNC_DATA_DIR"
ENV_LIBRARY_ROOT: Final[str] = "MLSYNC_LIBRARY_ROOT"
ENV_INBOX_ROOT: Final[str] = "MLSYNC_INBOX_ROOT"


def resolve_overridable_path(
    *,
    explicit_path: Path | str | None,
    env: Mapping[str, str] | None,
    env_var: str | None,
    default_factory: Callable[[], Path],
) -> Path:
    """Resolve a configuration path honoring explicit and environment overrides."""

    if explicit_path is not None:
        return Path(explicit_path).expanduser().resolve()

    mapping = env if env is not None else os.environ
    if env_var:
        candidate = mapping.get(env_var) or ""
        candidate = candidate.strip()
        if candidate:
            return Path(candidate).expanduser().resolve()

    default_path = default_factory()
    return default_path.expanduser().resolve()


def _detect_repo_root(start: Path | None = None) -> Path:
    """Detect the repository root by walking up parents.

    Looks for markers like ``pyproject.toml`` or ``.git``.

    Args:
        start: Starting path. Defaults to this file's directory.

    Returns:
        Path: Detected repository root, or the current working directory
        if no marker is found.
    """
    here = (start or Path(__file__).resolve()).parent
    for p in [here, *here.parents]:
        if (p / "pyproject.toml").exists() or (p / ".git").exists():
            return p
    return Path.cwd()


def default_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Get the path to the main TOML config file."""

    return resolve_overridable_path(
        explicit_path=None,
        env=env,
        env_var=ENV_CONFIG_PATH,
        default_factory=lambda: _detect_repo_root() / "config" / "config.toml",
    )


def default_data_dir(env: Mapping[str, str] | None = None) -> Path:
    """Get the default directory for app data (the SQLite index)."""

    return resolve_overridable_path(
        explicit_path=None,
        env=env,
        env_var=ENV_DATA_DIR,
        default_factory=lambda: _detect_repo_root() / ".data",
    )


def default_log_dir() -> Path:
    """Get the default directory for log files."""

    return (_detect_repo_root() / "logs").resolve()


def default_log_file() -> Path:
    """Get the default log file path."""

    return (default_log_dir() / "mlsync.log").resolve()


__all__ = [
    "ENV_CONFIG_PATH",
    "ENV_DATA_DIR",
    "ENV_INBOX_ROOT",
    "ENV_LIBRARY_ROOT",
    "default_config_path",
    "default_data_dir",
    "default_log_dir",
    "default_log_file",
    "resolve_overridable_path",
]
