"""Command line interface."""

from mlsync.ui.cli.cli import CommandProcessor, main

__all__ = ["CommandProcessor", "main"]
