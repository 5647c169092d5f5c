"""Command line argument parsing package."""

from mlsync.ui.cli.args.parser import ArgumentParser

__all__ = ["ArgumentParser"]
