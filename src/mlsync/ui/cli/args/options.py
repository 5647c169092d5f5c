"""Command line argument options."""

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, final


@dataclass(slots=True)
class CommonArgs:
    """Options shared by every subcommand."""

    config_path: Path | None
    verbose: bool
    quiet: bool


@final
@dataclass(slots=True)
class ServeArgs(CommonArgs):
    """Arguments for ``serve``: scan once, then watch the inbox."""

    command: Literal["serve"] = "serve"
    wait_for_roots: float = 0.0


@final
@dataclass(slots=True)
class ScanArgs(CommonArgs):
    """Arguments for ``scan``: one synchronization pass over the inbox."""

    command: Literal["scan"] = "scan"


@final
@dataclass(slots=True)
class RefreshArgs(CommonArgs):
    """Arguments for ``refresh``; exactly one selector is set."""

    command: Literal["refresh"] = "refresh"
    identity: str | None = None
    path_selector: str | None = None
    all_tracks: bool = False


@final
@dataclass(slots=True)
class QueryArgs(CommonArgs):
    """Arguments for ``query``."""

    command: Literal["query"] = "query"
    expression: str = "*"
    limit: int | None = None


@final
@dataclass(slots=True)
class ShowArgs(CommonArgs):
    """Arguments for ``show``."""

    command: Literal["show"] = "show"
    identity: str = ""


@final
@dataclass(slots=True)
class StatusArgs(CommonArgs):
    """Arguments for ``status``."""

    command: Literal["status"] = "status"
    release: Path | None = None


CLIArgs = ServeArgs | ScanArgs | RefreshArgs | QueryArgs | ShowArgs | StatusArgs

__all__ = ["CLIArgs", "CommonArgs", "QueryArgs", "RefreshArgs", "ScanArgs", "ServeArgs", "ShowArgs", "StatusArgs"]
