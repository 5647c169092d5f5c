"""src/mlsync/ui/cli/commands/library.py
What: CLI commands backed by ``LibraryService``.
Why: Each subcommand opens the service, runs one boundary operation and renders it.
"""

from __future__ import annotations

import threading
from itertools import islice
from typing import final, override

from rich.console import Console

from mlsync.config.config import Config
from mlsync.features.sync.usecases.sync_types import Quarantined, SyncOutcome
from mlsync.platform.logging import logger
from mlsync.shared.errors import NotFoundError, QuerySyntaxError
from mlsync.ui.cli.args.options import QueryArgs, RefreshArgs, ScanArgs, ServeArgs, ShowArgs, StatusArgs
from mlsync.ui.cli.commands.executor import CommandExecutor, ServiceFactory
from mlsync.ui.cli.display.tables import render_inbox_status, render_outcomes, render_track, render_tracks


def _exit_code(outcomes: list[SyncOutcome]) -> int:
    """Non-zero when anything needs operator attention."""

    return 1 if any(isinstance(outcome, Quarantined) for outcome in outcomes) else 0


@final
class ScanCommand(CommandExecutor[ScanArgs]):
    """Run one synchronization pass over the inbox."""

    @override
    def execute(self) -> int:
        with self.build_service() as service:
            outcomes = service.enqueue_inbox_scan()
        if not self.args.quiet:
            render_outcomes(self.console, outcomes, title="Inbox scan")
        return _exit_code(outcomes)


@final
class ServeCommand(CommandExecutor[ServeArgs]):
    """Scan the inbox once, then watch it until interrupted."""

    def __init__(
        self,
        args: ServeArgs,
        config: Config,
        *,
        service_factory: ServiceFactory | None = None,
        console: Console | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        super().__init__(args, config, service_factory=service_factory, console=console)
        self.stop_event: threading.Event = stop_event or threading.Event()

    @override
    def execute(self) -> int:
        with self.build_service(root_wait_seconds=self.args.wait_for_roots) as service:
            outcomes = service.enqueue_inbox_scan()
            if not self.args.quiet:
                render_outcomes(self.console, outcomes, title="Initial inbox scan")
            service.start_watching()
            logger.info("Serving; press Ctrl+C to stop")
            try:
                while not self.stop_event.wait(1.0):
                    pass
            except KeyboardInterrupt:
                logger.info("Stopping")
        return 0


@final
class RefreshCommand(CommandExecutor[RefreshArgs]):
    """Re-resolve indexed tracks."""

    @override
    def execute(self) -> int:
        with self.build_service() as service:
            try:
                outcomes = service.refresh(
                    self.args.identity,
                    path_selector=self.args.path_selector,
                    all_tracks=self.args.all_tracks,
                )
            except NotFoundError as exc:
                logger.error("%s", exc)
                return 1
        if not self.args.quiet:
            render_outcomes(self.console, outcomes, title="Refresh")
        return _exit_code(outcomes)


@final
class QueryCommand(CommandExecutor[QueryArgs]):
    """Print tracks matching a bang expression."""

    @override
    def execute(self) -> int:
        with self.build_service(reconcile_on_open=False) as service:
            try:
                tracks = service.query(self.args.expression)
            except QuerySyntaxError as exc:
                logger.error("Invalid query: %s", exc)
                self.console.print(self.args.expression)
                self.console.print(" " * exc.position + "^")
                return 2
        shown = list(islice(tracks, self.args.limit)) if self.args.limit else tracks
        render_tracks(self.console, shown, total=len(tracks))
        return 0


@final
class ShowCommand(CommandExecutor[ShowArgs]):
    """Print one indexed track."""

    @override
    def execute(self) -> int:
        with self.build_service(reconcile_on_open=False) as service:
            try:
                track = service.get_track(self.args.identity)
            except NotFoundError as exc:
                logger.error("%s", exc)
                return 1
        render_track(self.console, track)
        return 0


@final
class StatusCommand(CommandExecutor[StatusArgs]):
    """Show the index size and recorded inbox problems, optionally releasing one."""

    @override
    def execute(self) -> int:
        with self.build_service(reconcile_on_open=False) as service:
            if self.args.release is not None:
                try:
                    location = service.release_quarantine(self.args.release)
                except NotFoundError as exc:
                    logger.error("%s", exc)
                    return 1
                self.console.print(f"[green]Released[/green] {location}")
            records = service.inbox_status()
            indexed = len(service.index)
        render_inbox_status(self.console, records, indexed=indexed)
        return 0


__all__ = ["QueryCommand", "RefreshCommand", "ScanCommand", "ServeCommand", "ShowCommand", "StatusCommand"]
