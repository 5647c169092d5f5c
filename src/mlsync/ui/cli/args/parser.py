"""Command line argument parser."""

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import final

from mlsync.config.config import Config
from mlsync.platform.logging import DEFAULT_LOG_FILE, logger, setup_logger
from mlsync.ui.cli.args.options import (
    CLIArgs,
    QueryArgs,
    RefreshArgs,
    ScanArgs,
    ServeArgs,
    ShowArgs,
    StatusArgs,
)


@final
class ArgumentParser:
    """Command line argument parser."""

    @staticmethod
    def create_parser() -> argparse.ArgumentParser:
        """Create argument parser.

        Returns:
            argparse.ArgumentParser: Configured argument parser.
        """
        parser = argparse.ArgumentParser(
            prog="mlsync",
            description="Keep a canonical music library and its metadata index in sync with an inbox.",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        common = argparse.ArgumentParser(add_help=False)
        _ = common.add_argument(
            "--config",
            type=str,
            metavar="CONFIG_PATH",
            help="Configuration file (defaults to config/config.toml or MLSYNC_CONFIG)",
        )
        _ = common.add_argument(
            "--verbose",
            action="store_true",
            help="Show detailed processing information",
        )
        _ = common.add_argument(
            "--quiet",
            action="store_true",
            help="Suppress all output except errors",
        )

        subparsers = parser.add_subparsers(dest="command", required=True)

        serve_parser = subparsers.add_parser(
            "serve",
            parents=[common],
            help="Scan the inbox, then keep watching it until interrupted",
        )
        _ = serve_parser.add_argument(
            "--wait-for-roots",
            type=float,
            default=0.0,
            metavar="SECONDS",
            help="Wait up to SECONDS for the library and inbox roots to appear",
        )

        _ = subparsers.add_parser(
            "scan",
            parents=[common],
            help="Run one synchronization pass over the inbox",
        )

        refresh_parser = subparsers.add_parser(
            "refresh",
            parents=[common],
            help="Re-read tags of indexed tracks and move them if their path changed",
        )
        selector = refresh_parser.add_mutually_exclusive_group(required=True)
        _ = selector.add_argument("--id", dest="identity", metavar="IDENTITY", help="Track identity")
        _ = selector.add_argument(
            "--path",
            dest="path_selector",
            metavar="GLOB",
            help="Glob matched case-insensitively against library-relative paths",
        )
        _ = selector.add_argument("--all", dest="all_tracks", action="store_true", help="Refresh every track")

        query_parser = subparsers.add_parser(
            "query",
            parents=[common],
            help="List indexed tracks matching a bang expression",
        )
        _ = query_parser.add_argument("expression", metavar="EXPR", help='Bang expression, e.g. "!ar Foo && !f flac"')
        _ = query_parser.add_argument("--limit", type=int, help="Show at most N tracks")

        show_parser = subparsers.add_parser(
            "show",
            parents=[common],
            help="Show one indexed track",
        )
        _ = show_parser.add_argument("identity", metavar="IDENTITY")

        status_parser = subparsers.add_parser(
            "status",
            parents=[common],
            help="Show index size and recorded inbox rejections and quarantines",
        )
        _ = status_parser.add_argument(
            "--release",
            type=str,
            metavar="PATH",
            help="Clear the quarantine marker for PATH so the next scan retries it",
        )

        return parser

    @staticmethod
    def process_args(args_list: Sequence[str] | None = None) -> CLIArgs:
        """Process command line arguments.

        Args:
            args_list: List of command line arguments (for testing).

        Returns:
            CLIArgs: Processed command line arguments.

        Raises:
            SystemExit: If argument validation fails.
        """
        parser = ArgumentParser.create_parser()
        parsed_args = parser.parse_args(args_list)

        config_path = Path(parsed_args.config).expanduser() if parsed_args.config else None
        common = {
            "config_path": config_path,
            "verbose": bool(parsed_args.verbose),
            "quiet": bool(parsed_args.quiet),
        }
        command: str = parsed_args.command

        if command == "serve":
            return ServeArgs(**common, wait_for_roots=max(0.0, parsed_args.wait_for_roots))
        if command == "scan":
            return ScanArgs(**common)
        if command == "refresh":
            return RefreshArgs(
                **common,
                identity=parsed_args.identity,
                path_selector=parsed_args.path_selector,
                all_tracks=bool(parsed_args.all_tracks),
            )
        if command == "query":
            limit = parsed_args.limit
            if limit is not None and limit <= 0:
                logger.error("Limit must be a positive integer; received %s", limit)
                sys.exit(2)
            return QueryArgs(**common, expression=parsed_args.expression, limit=limit)
        if command == "show":
            return ShowArgs(**common, identity=parsed_args.identity)
        if command == "status":
            release = Path(parsed_args.release).expanduser().resolve() if parsed_args.release else None
            return StatusArgs(**common, release=release)

        logger.error("Unsupported command: %s", command)
        sys.exit(2)

    @staticmethod
    def configure_logging(args: CLIArgs, config: Config) -> None:
        """Install console and file handlers according to verbosity flags."""

        if args.quiet:
            log_level = logging.ERROR
        elif args.verbose:
            log_level = logging.DEBUG
        else:
            log_level = logging.INFO

        log_file_path = config.log_file or DEFAULT_LOG_FILE
        _ = setup_logger(log_file=log_file_path, console_level=log_level)
