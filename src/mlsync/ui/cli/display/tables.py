"""src/mlsync/ui/cli/display/tables.py
What: Rich tables for sync outcomes, query results and inbox status.
Why: Keep console formatting out of the command classes.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from typing import Final

from rich import box
from rich.console import Console
from rich.table import Table

from mlsync.features.index.domain.track import Track
from mlsync.features.sync.usecases.sync_types import (
    Cancelled,
    Indexed,
    Quarantined,
    Rejected,
    Removed,
    SyncOutcome,
    Unchanged,
    outcome_label,
)
from mlsync.platform.db.daos.inbox_status_dao import InboxStatusRecord

_OUTCOME_STYLES: Final[dict[str, str]] = {
    "indexed": "green",
    "unchanged": "dim",
    "rejected": "yellow",
    "quarantined": "red",
    "removed": "magenta",
    "cancelled": "dim",
}


def _describe(outcome: SyncOutcome) -> tuple[str, str]:
    """Return ``(location, detail)`` for one outcome row."""

    if isinstance(outcome, Indexed):
        detail = f"from {outcome.source_path}" if outcome.moved else "tags refreshed"
        return outcome.path, detail
    if isinstance(outcome, Rejected):
        return str(outcome.source_path), outcome.reason
    if isinstance(outcome, Quarantined):
        detail = outcome.reason
        if outcome.inconsistent:
            detail += " (inconsistent)"
        elif outcome.previously_recorded:
            detail += " (awaiting release)"
        location = outcome.location or outcome.source_path
        return str(location), detail
    if isinstance(outcome, (Unchanged, Removed)):
        return outcome.path, ""
    assert isinstance(outcome, Cancelled)
    return str(outcome.source_path), ""


def render_outcomes(console: Console, outcomes: Sequence[SyncOutcome], *, title: str) -> None:
    """Print one row per outcome followed by per-label counts."""

    if not outcomes:
        console.print(f"[dim]{title}: nothing to do[/dim]")
        return

    table = Table(title=title, box=box.SIMPLE_HEAVY, show_lines=False)
    table.add_column("Outcome", no_wrap=True)
    table.add_column("Path", overflow="fold")
    table.add_column("Detail", overflow="fold")
    for outcome in outcomes:
        label = outcome_label(outcome)
        location, detail = _describe(outcome)
        style = _OUTCOME_STYLES.get(label, "")
        table.add_row(f"[{style}]{label}[/{style}]" if style else label, location, detail)
    console.print(table)

    counts = Counter(outcome_label(outcome) for outcome in outcomes)
    summary = ", ".join(f"{label}: {count}" for label, count in sorted(counts.items()))
    console.print(f"[bold]Total {len(outcomes)}[/bold] ({summary})")


def render_tracks(console: Console, tracks: Sequence[Track], *, total: int | None = None) -> None:
    """Print query results as a table."""

    if not tracks:
        console.print("[yellow]No matching tracks.[/yellow]")
        return

    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("Identity", no_wrap=True, style="dim")
    table.add_column("Path", overflow="fold")
    table.add_column("Format", no_wrap=True)
    table.add_column("kbps", justify="right")
    table.add_column("Cover", justify="right")
    for track in tracks:
        metadata = track.metadata
        cover = ""
        if metadata.has_cover:
            cover = (
                f"{metadata.cover_width}x{metadata.cover_height}"
                if metadata.cover_width and metadata.cover_height
                else "yes"
            )
        table.add_row(track.identity[:12], track.path, str(metadata.format), str(metadata.bitrate), cover)
    console.print(table)

    shown = len(tracks)
    if total is not None and total > shown:
        console.print(f"{shown} of {total} matching tracks shown")
    else:
        console.print(f"{shown} matching tracks")


def render_track(console: Console, track: Track) -> None:
    """Print every stored field of one track."""

    metadata = track.metadata
    table = Table(show_header=False, box=box.SIMPLE)
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    rows: list[tuple[str, object]] = [
        ("identity", track.identity),
        ("path", track.path),
        ("title", metadata.title),
        ("artist", metadata.artist),
        ("album artist", metadata.album_artist or ""),
        ("album", metadata.album),
        ("track", metadata.track_number if metadata.track_number is not None else ""),
        ("disc", metadata.disc_number if metadata.disc_number is not None else ""),
        ("format", metadata.format),
        ("bitrate", f"{metadata.bitrate} kbps"),
        ("bit depth", metadata.bit_depth if metadata.bit_depth is not None else ""),
        ("cover", _cover_text(track)),
        ("musicbrainz id", "yes" if metadata.has_musicbrainz_id else "no"),
        ("provenance", track.provenance or ""),
    ]
    for name, value in rows:
        table.add_row(name, str(value))
    console.print(table)


def _cover_text(track: Track) -> str:
    metadata = track.metadata
    if not metadata.has_cover:
        return "none"
    if metadata.cover_width is None or metadata.cover_height is None:
        return "embedded (size unknown)"
    return f"{metadata.cover_width}x{metadata.cover_height}"


def render_inbox_status(console: Console, records: Sequence[InboxStatusRecord], *, indexed: int) -> None:
    """Print the index size and any recorded inbox problems."""

    console.print(f"[bold]Indexed tracks:[/bold] {indexed}")
    if not records:
        console.print("[green]No rejected or quarantined inbox files.[/green]")
        return

    table = Table(title="Inbox status", box=box.SIMPLE_HEAVY)
    table.add_column("State", no_wrap=True)
    table.add_column("Path", overflow="fold")
    table.add_column("Reason")
    table.add_column("Updated", no_wrap=True, style="dim")
    for record in records:
        state: str = record.state
        if record.inconsistent:
            state += " (inconsistent)"
        style = "red" if record.state == "quarantined" else "yellow"
        table.add_row(f"[{style}]{state}[/{style}]", str(record.source_path), record.reason, record.updated_at or "")
    console.print(table)


__all__ = ["render_inbox_status", "render_outcomes", "render_track", "render_tracks"]
