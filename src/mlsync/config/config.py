"""Configuration management for mlsync."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from mlsync.config.file_ops import write_text_file
from mlsync.config.paths import (
    ENV_INBOX_ROOT,
    ENV_LIBRARY_ROOT,
    default_config_path,
    default_data_dir,
    resolve_overridable_path,
)
from mlsync.config.settings import INDEX_FILE_NAME
from mlsync.platform.logging import logger


class ConfigError(ValueError):
    """Raised when the configuration file holds unusable values."""


def _path_field(default: Path | None = None) -> Any:
    """Create a field for Path objects with proper conversion."""
    return field(default=default, metadata={"path": True})


@dataclass
class Config:
    """Application configuration."""

    # Canonical library tree and the inbox it is fed from
    library_root: Path | None = _path_field()
    inbox_root: Path | None = _path_field()

    # Log file path
    log_file: Path | None = _path_field()

    # SQLite index location; defaults to the data directory
    db_path: Path | None = _path_field()

    # Worker pool and I/O policy
    workers: int = 4
    move_retries: int = 3
    retry_backoff_seconds: float = 0.5
    io_timeout_seconds: float = 30.0
    settle_seconds: float = 2.0

    # Move non-audio inbox files aside
    sweep_unsupported: bool = True

    def __post_init__(self) -> None:
        """Convert string paths to ``Path`` objects using field metadata."""
        for f in fields(self):
            if not f.metadata.get("path", False):
                continue
            value = getattr(self, f.name)
            if isinstance(value, str):
                setattr(self, f.name, Path(value).expanduser() if value.strip() else None)

    def validate(self) -> None:
        """Check numeric boundaries.

        Raises:
            ConfigError: If any value is out of range.
        """
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1 (got {self.workers})")
        if self.move_retries < 0:
            raise ConfigError(f"move_retries must not be negative (got {self.move_retries})")
        if self.retry_backoff_seconds < 0:
            raise ConfigError("retry_backoff_seconds must not be negative")
        if self.io_timeout_seconds <= 0:
            raise ConfigError("io_timeout_seconds must be positive")
        if self.settle_seconds < 0:
            raise ConfigError("settle_seconds must not be negative")

    def require_roots(self) -> tuple[Path, Path]:
        """Return ``(library_root, inbox_root)`` or fail when either is unset."""

        if self.library_root is None:
            raise ConfigError(f"library_root is not configured (set it or {ENV_LIBRARY_ROOT})")
        if self.inbox_root is None:
            raise ConfigError(f"inbox_root is not configured (set it or {ENV_INBOX_ROOT})")
        library_root = self.library_root.expanduser().resolve()
        inbox_root = self.inbox_root.expanduser().resolve()
        if library_root == inbox_root or inbox_root.is_relative_to(library_root):
            raise ConfigError("inbox_root must live outside library_root")
        if library_root.is_relative_to(inbox_root):
            raise ConfigError("library_root must live outside inbox_root")
        return library_root, inbox_root

    def resolved_db_path(self, env: Mapping[str, str] | None = None) -> Path:
        """Return the SQLite file path, falling back to the data directory."""

        if self.db_path is not None:
            return self.db_path.expanduser().resolve()
        return default_data_dir(env) / INDEX_FILE_NAME

    def save(self, target: Path | None = None) -> Path:
        """Save configuration to file."""
        config_dict = asdict(self)
        for key, value in config_dict.items():
            if isinstance(value, Path):
                config_dict[key] = str(value)

        destination = target or default_config_path()
        try:
            write_text_file(destination, self._render_toml(config_dict))
            logger.info("Configuration saved to %s", destination)
        except OSError as e:
            logger.error("Failed to save configuration: %s", e)
            raise
        return destination

    def _render_toml(self, config: dict[str, Any]) -> str:
        """Render configuration as TOML with inline guidance."""

        lines: list[str] = ["# mlsync configuration file", ""]

        lines.append("# Canonical library tree. Only mlsync writes here.")
        lines.append(f"# Overridden by {ENV_LIBRARY_ROOT}.")
        if config["library_root"] is not None:
            lines.append(f"library_root = {self._format_toml_value(config['library_root'])}")
        lines.append("")

        lines.append("# Drop folder for newly tagged files. Top-level subfolders become provenance tags.")
        lines.append(f"# Overridden by {ENV_INBOX_ROOT}.")
        if config["inbox_root"] is not None:
            lines.append(f"inbox_root = {self._format_toml_value(config['inbox_root'])}")
        lines.append("")

        lines.append("# Log file path (optional)")
        if config["log_file"] is not None:
            lines.append(f"log_file = {self._format_toml_value(config['log_file'])}")
        lines.append("")

        lines.append("# Index database path (optional, defaults to the data directory)")
        if config["db_path"] is not None:
            lines.append(f"db_path = {self._format_toml_value(config['db_path'])}")
        lines.append("")

        lines.append("# Synchronizer tuning")
        for key in (
            "workers",
            "move_retries",
            "retry_backoff_seconds",
            "io_timeout_seconds",
            "settle_seconds",
            "sweep_unsupported",
        ):
            lines.append(f"{key} = {self._format_toml_value(config[key])}")
        lines.append("")

        return "\n".join(lines)

    def _format_toml_value(self, value: Any) -> str:
        """Format a value for TOML serialization."""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (str, Path)):
            escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
            return f'"{escaped}"'
        return str(value)

    @classmethod
    def load(
        cls,
        config_file: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
        create_missing: bool = True,
    ) -> "Config":
        """Load configuration from file and apply environment overrides.

        Args:
            config_file: Explicit TOML path. Defaults to ``default_config_path()``.
            env: Environment mapping used for overrides. Defaults to ``os.environ``.
            create_missing: Write a commented default file when none exists.

        Returns:
            Config: Loaded configuration object.

        Raises:
            ConfigError: If the file cannot be parsed or holds unknown keys.
        """
        target = config_file or default_config_path(env)

        if target.exists():
            try:
                with open(target, "rb") as f:
                    raw = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Invalid TOML in {target}: {e}") from e

            known = {f.name for f in fields(cls)}
            unknown = sorted(set(raw) - known)
            if unknown:
                raise ConfigError(f"Unknown configuration keys in {target}: {', '.join(unknown)}")
            instance = cls(**raw)
            logger.info("Configuration loaded from %s", target)
        else:
            instance = cls()
            if create_missing:
                _ = instance.save(target)
                logger.info("Created default configuration at %s", target)

        instance.library_root = cls._override(instance.library_root, env, ENV_LIBRARY_ROOT)
        instance.inbox_root = cls._override(instance.inbox_root, env, ENV_INBOX_ROOT)
        instance.validate()
        return instance

    @staticmethod
    def _override(current: Path | None, env: Mapping[str, str] | None, env_var: str) -> Path | None:
        """Let a non-empty environment variable win over the file value."""

        mapping = env if env is not None else os.environ
        if current is None and not (mapping.get(env_var) or "").strip():
            return None
        return resolve_overridable_path(
            explicit_path=None,
            env=mapping,
            env_var=env_var,
            default_factory=lambda: current or Path.cwd(),
        )


__all__ = ["Config", "ConfigError"]
