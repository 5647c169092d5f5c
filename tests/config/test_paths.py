"""Tests for configuration path resolution helpers."""

from pathlib import Path

from mlsync.config.paths import (
    ENV_CONFIG_PATH,
    ENV_DATA_DIR,
    default_config_path,
    default_data_dir,
    default_log_dir,
    default_log_file,
    resolve_overridable_path,
)


def test_default_log_paths(portable_repo_root: Path) -> None:
    """Default log locations should live under the repository logs/ folder."""

    expected_dir = portable_repo_root / "logs"
    assert default_log_dir() == expected_dir
    assert default_log_file() == expected_dir / "mlsync.log"


def test_default_config_and_data_paths(portable_repo_root: Path) -> None:
    assert default_config_path({}) == portable_repo_root / "config" / "config.toml"
    assert default_data_dir({}) == portable_repo_root / ".data"


def test_environment_overrides_defaults(portable_repo_root: Path, tmp_path: Path) -> None:
    env = {
        ENV_CONFIG_PATH: str(tmp_path / "elsewhere.toml"),
        ENV_DATA_DIR: f"  {tmp_path / 'state'}  ",
    }

    assert default_config_path(env) == tmp_path / "elsewhere.toml"
    assert default_data_dir(env) == tmp_path / "state"
    assert portable_repo_root.exists()


def test_explicit_path_wins_over_environment(tmp_path: Path) -> None:
    resolved = resolve_overridable_path(
        explicit_path=str(tmp_path / "explicit"),
        env={"SOME_VAR": str(tmp_path / "env")},
        env_var="SOME_VAR",
        default_factory=lambda: tmp_path / "default",
    )

    assert resolved == tmp_path / "explicit"


def test_blank_environment_value_falls_back_to_default(tmp_path: Path) -> None:
    resolved = resolve_overridable_path(
        explicit_path=None,
        env={"SOME_VAR": "   "},
        env_var="SOME_VAR",
        default_factory=lambda: tmp_path / "default",
    )

    assert resolved == tmp_path / "default"
