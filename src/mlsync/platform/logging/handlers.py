"""Rich console handler for synchronizer events.

Where: platform/logging/handlers.py
What: Render structured ``sync_event`` log records with icons, colors, and compact paths.
Why: Keep per-track lifecycle logs scannable on a terminal during long watch sessions.
"""

from __future__ import annotations

import logging
from pathlib import PurePath, PurePosixPath, PureWindowsPath
from typing import Any, ClassVar, override

from rich.console import ConsoleRenderable
from rich.logging import RichHandler
from rich.style import Style
from rich.text import Text


class SyncRichHandler(RichHandler):
    """Rich handler that renders synchronizer events on a single styled line."""

    _EVENT_STYLES: ClassVar[dict[str, tuple[str, str]]] = {
        "sync.scan.start": ("🚀", "cyan"),
        "sync.scan.complete": ("✅", "green"),
        "sync.scan.empty": ("ℹ️", "yellow"),
        "sync.track.detected": ("🎧", "blue"),
        "sync.track.rejected": ("🚫", "yellow"),
        "sync.track.move": ("📦", "magenta"),
        "sync.track.retry": ("🔁", "yellow"),
        "sync.track.indexed": ("🎉", "green"),
        "sync.track.refreshed": ("♻️", "green"),
        "sync.track.unchanged": ("↪️", "white"),
        "sync.track.cancelled": ("✋", "yellow"),
        "sync.track.rollback": ("⏪", "yellow"),
        "sync.track.quarantined": ("⛔", "red"),
        "sync.track.inconsistent": ("🧨", "red"),
        "sync.track.removed": ("🗑️", "yellow"),
        "sync.file.unsupported": ("📎", "yellow"),
    }
    _PREFIXES: ClassVar[dict[str, str]] = {
        "sync.track.detected": "Detected ",
        "sync.track.rejected": "Rejected ",
        "sync.track.move": "Moving ",
        "sync.track.retry": "Retrying ",
        "sync.track.indexed": "Indexed ",
        "sync.track.refreshed": "Refreshed ",
        "sync.track.unchanged": "Unchanged ",
        "sync.track.cancelled": "Cancelled ",
        "sync.track.rollback": "Rolled back ",
        "sync.track.quarantined": "Quarantined ",
        "sync.track.inconsistent": "INCONSISTENT ",
        "sync.track.removed": "Dropped stale record ",
        "sync.file.unsupported": "Set aside ",
    }
    _ARROW_EVENTS: ClassVar[frozenset[str]] = frozenset(
        {"sync.track.move", "sync.track.indexed", "sync.track.refreshed", "sync.track.rollback"}
    )
    _PATH_SEGMENT_LIMIT: ClassVar[int] = 4

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("show_time", False)
        kwargs.setdefault("show_path", False)
        kwargs["rich_tracebacks"] = True
        kwargs["markup"] = False
        super().__init__(*args, **kwargs)

    def _format_path(self, path: str, base: str | None = None) -> Text:
        """Format a path relative to ``base`` when possible, truncated to the last segments."""

        pure_path = self._to_pure_path(path)
        base_path = self._to_pure_path(base) if base else None

        display_path: PurePath = pure_path
        if base_path is not None and pure_path.is_relative_to(base_path):
            relative_path = pure_path.relative_to(base_path)
            if str(relative_path) not in {"", "."}:
                display_path = relative_path

        separator = "\\" if isinstance(display_path, PureWindowsPath) else "/"
        anchor = display_path.anchor
        body_parts = [part for part in display_path.parts if part and part != anchor]

        truncated = len(body_parts) > self._PATH_SEGMENT_LIMIT
        if truncated:
            body_parts = body_parts[-self._PATH_SEGMENT_LIMIT :]
            display_string = "…" + separator + separator.join(body_parts)
        elif anchor:
            display_string = anchor.rstrip("\\/") + separator + separator.join(body_parts)
        else:
            display_string = separator.join(body_parts) or "."

        text = Text()
        for char in display_string:
            if char in {separator, "/", "…"}:
                _ = text.append(char, style=Style(color="magenta"))
            else:
                _ = text.append(char, style=Style(color="white"))
        return text

    @staticmethod
    def _to_pure_path(raw_path: str) -> PurePath:
        if "\\" in raw_path and "/" not in raw_path:
            return PureWindowsPath(raw_path)
        return PurePosixPath(raw_path)

    def _render_sync_message(self, record: logging.LogRecord, message: str) -> Text | None:
        """Render structured synchronizer events with dedicated styling."""

        event = getattr(record, "sync_event", None)
        if not isinstance(event, str):
            return None

        icon, color = self._EVENT_STYLES.get(event, ("ℹ️", "blue"))
        text = Text()
        _ = text.append(f"{icon} ", style=Style(color=color, bold=True))
        body = Text(style=Style(color=color))

        if event.startswith("sync.scan"):
            _ = body.append(message)
            _ = text.append_text(body)
            return text

        prefix = self._PREFIXES.get(event)
        if prefix:
            _ = body.append(prefix)

        source_path = getattr(record, "source_path", None)
        target_path = getattr(record, "target_path", None)
        if source_path:
            _ = body.append_text(
                self._format_path(str(source_path), base=getattr(record, "source_base_path", None))
            )
        if event in self._ARROW_EVENTS and target_path:
            _ = body.append(" → ")
            _ = body.append_text(
                self._format_path(str(target_path), base=getattr(record, "target_base_path", None))
            )

        details: list[str] = []
        reason = getattr(record, "reason", None)
        if reason:
            details.append(str(reason))
        attempt = getattr(record, "attempt", None)
        if isinstance(attempt, int):
            details.append(f"attempt {attempt}")
        duration_ms = getattr(record, "duration_ms", None)
        if isinstance(duration_ms, (int, float)):
            details.append(f"{duration_ms:.2f} ms")
        if details:
            _ = body.append(" (" + ", ".join(details) + ")")

        _ = text.append_text(body)
        return text

    @override
    def render_message(self, record: logging.LogRecord, message: str) -> ConsoleRenderable:
        rendered = self._render_sync_message(record, message)
        if rendered is not None:
            return rendered
        return super().render_message(record, message)


__all__ = ["SyncRichHandler"]
