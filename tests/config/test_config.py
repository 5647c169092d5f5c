"""Test configuration management."""

from __future__ import annotations

from pathlib import Path

import pytest

from mlsync.config.config import Config, ConfigError
from mlsync.config.paths import ENV_DATA_DIR, ENV_INBOX_ROOT, ENV_LIBRARY_ROOT


def test_missing_file_is_created_with_defaults(tmp_path: Path) -> None:
    target = tmp_path / "config" / "config.toml"

    config = Config.load(target, env={})

    assert target.is_file()
    assert config.library_root is None
    assert config.inbox_root is None
    assert config.workers == 4
    assert config.move_retries == 3
    assert config.sweep_unsupported is True
    assert "# mlsync configuration file" in target.read_text()


def test_missing_file_is_not_created_on_request(tmp_path: Path) -> None:
    target = tmp_path / "config.toml"

    _ = Config.load(target, env={}, create_missing=False)

    assert not target.exists()


def test_save_load_toml(tmp_path: Path) -> None:
    """Saved values come back unchanged, including None paths."""
    target = tmp_path / "config.toml"
    original = Config(
        library_root=tmp_path / "library",
        inbox_root=tmp_path / "inbox",
        log_file=None,
        db_path=tmp_path / "index.db",
        workers=2,
        move_retries=5,
        retry_backoff_seconds=0.25,
        sweep_unsupported=False,
    )

    assert original.save(target) == target
    loaded = Config.load(target, env={})

    assert loaded.library_root == tmp_path / "library"
    assert loaded.inbox_root == tmp_path / "inbox"
    assert loaded.log_file is None
    assert loaded.db_path == tmp_path / "index.db"
    assert loaded.workers == 2
    assert loaded.move_retries == 5
    assert loaded.retry_backoff_seconds == 0.25
    assert loaded.sweep_unsupported is False


def test_string_paths_are_converted() -> None:
    config = Config(library_root="~/music", inbox_root="  ")  # pyright: ignore[reportArgumentType]

    assert config.library_root == Path("~/music").expanduser()
    assert config.inbox_root is None


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    target = tmp_path / "config.toml"
    _ = target.write_text('base_path = "/music"\nworkers = 2\n')

    with pytest.raises(ConfigError, match="base_path"):
        _ = Config.load(target, env={})


def test_invalid_toml_is_rejected(tmp_path: Path) -> None:
    target = tmp_path / "config.toml"
    _ = target.write_text("workers = [\n")

    with pytest.raises(ConfigError, match="Invalid TOML"):
        _ = Config.load(target, env={})


def test_environment_overrides_roots(tmp_path: Path) -> None:
    target = tmp_path / "config.toml"
    Config(library_root=tmp_path / "file-library", inbox_root=tmp_path / "file-inbox").save(target)
    env = {ENV_LIBRARY_ROOT: str(tmp_path / "env-library"), ENV_INBOX_ROOT: ""}

    config = Config.load(target, env=env)

    assert config.library_root == tmp_path / "env-library"
    assert config.inbox_root == (tmp_path / "file-inbox").resolve()


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("workers", 0),
        ("move_retries", -1),
        ("retry_backoff_seconds", -0.5),
        ("io_timeout_seconds", 0),
        ("settle_seconds", -1),
    ],
)
def test_out_of_range_values_are_rejected(tmp_path: Path, key: str, value: float) -> None:
    target = tmp_path / "config.toml"
    _ = target.write_text(f"{key} = {value}\n")

    with pytest.raises(ConfigError, match=key):
        _ = Config.load(target, env={})


def test_require_roots_returns_resolved_pair(tmp_path: Path) -> None:
    config = Config(library_root=tmp_path / "library", inbox_root=tmp_path / "inbox")

    assert config.require_roots() == ((tmp_path / "library").resolve(), (tmp_path / "inbox").resolve())


@pytest.mark.parametrize(
    ("library", "inbox", "message"),
    [
        (None, "inbox", "library_root is not configured"),
        ("library", None, "inbox_root is not configured"),
        ("music", "music", "inbox_root must live outside"),
        ("music", "music/inbox", "inbox_root must live outside"),
        ("inbox/music", "inbox", "library_root must live outside"),
    ],
)
def test_require_roots_rejects_unusable_layouts(
    tmp_path: Path, library: str | None, inbox: str | None, message: str
) -> None:
    config = Config(
        library_root=tmp_path / library if library else None,
        inbox_root=tmp_path / inbox if inbox else None,
    )

    with pytest.raises(ConfigError, match=message):
        _ = config.require_roots()


def test_db_path_defaults_to_data_directory(tmp_path: Path) -> None:
    assert Config().resolved_db_path({ENV_DATA_DIR: str(tmp_path)}) == tmp_path / "mlsync.db"
    assert Config(db_path=tmp_path / "x.db").resolved_db_path({}) == (tmp_path / "x.db").resolve()
