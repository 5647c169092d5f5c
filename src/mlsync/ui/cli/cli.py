"""Command line interface for mlsync."""

import sys
from collections.abc import Sequence
from typing import Any, final

from mlsync.config.config import Config, ConfigError
from mlsync.platform.logging import logger
from mlsync.shared.errors import MlsyncError
from mlsync.ui.cli.args import ArgumentParser
from mlsync.ui.cli.args.options import (
    CLIArgs,
    QueryArgs,
    RefreshArgs,
    ScanArgs,
    ServeArgs,
    ShowArgs,
    StatusArgs,
)
from mlsync.ui.cli.commands import (
    CommandExecutor,
    QueryCommand,
    RefreshCommand,
    ScanCommand,
    ServeCommand,
    ShowCommand,
    StatusCommand,
)
from mlsync.ui.cli.commands.executor import ServiceFactory


@final
class CommandProcessor:
    """Command line interface processor."""

    @staticmethod
    def process_command(
        args_list: Sequence[str] | None = None,
        *,
        service_factory: ServiceFactory | None = None,
    ) -> int:
        """Process command line arguments.

        Args:
            args_list: List of command line arguments (for testing).
            service_factory: Optional service builder (for testing).

        Returns:
            int: Process exit code.
        """
        try:
            args = ArgumentParser.process_args(args_list)
            config = Config.load(args.config_path)
            ArgumentParser.configure_logging(args, config)
            command = CommandProcessor.build_command(args, config, service_factory)
            return command.execute()
        except KeyboardInterrupt:
            logger.info("\nOperation cancelled by user")
            return 130
        except (ConfigError, MlsyncError) as e:
            logger.error("%s", e)
            return 1
        except Exception as e:
            logger.error("An unexpected error occurred: %s", str(e))
            return 1

    @staticmethod
    def build_command(
        args: CLIArgs,
        config: Config,
        service_factory: ServiceFactory | None = None,
    ) -> CommandExecutor[Any]:
        """Map parsed arguments to their command."""

        if isinstance(args, ServeArgs):
            return ServeCommand(args, config, service_factory=service_factory)
        if isinstance(args, ScanArgs):
            return ScanCommand(args, config, service_factory=service_factory)
        if isinstance(args, RefreshArgs):
            return RefreshCommand(args, config, service_factory=service_factory)
        if isinstance(args, QueryArgs):
            return QueryCommand(args, config, service_factory=service_factory)
        if isinstance(args, ShowArgs):
            return ShowCommand(args, config, service_factory=service_factory)
        assert isinstance(args, StatusArgs)
        return StatusCommand(args, config, service_factory=service_factory)


def main() -> int:
    """Main entry point.

    Returns:
        int: Process exit code (0 on success).
    """
    return CommandProcessor.process_command()


if __name__ == "__main__":
    sys.exit(main())
