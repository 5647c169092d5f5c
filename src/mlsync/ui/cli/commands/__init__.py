"""Command execution package for CLI."""

from mlsync.ui.cli.commands.executor import CommandExecutor
from mlsync.ui.cli.commands.library import (
    QueryCommand,
    RefreshCommand,
    ScanCommand,
    ServeCommand,
    ShowCommand,
    StatusCommand,
)

__all__ = [
    "CommandExecutor",
    "QueryCommand",
    "RefreshCommand",
    "ScanCommand",
    "ServeCommand",
    "ShowCommand",
    "StatusCommand",
]
