"""Display helpers for the CLI."""

from mlsync.ui.cli.display.tables import render_inbox_status, render_outcomes, render_track, render_tracks

__all__ = ["render_inbox_status", "render_outcomes", "render_track", "render_tracks"]
