"""src/mlsync/ui/cli/commands/executor.py
What: Shared wiring for CLI commands that need an open library service.
Why: Every command builds the service the same way and maps failures to exit codes.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Generic, TypeVar

from rich.console import Console

from mlsync.application.services.library_service import LibraryService
from mlsync.config.config import Config
from mlsync.ui.cli.args.options import CommonArgs

ArgsT = TypeVar("ArgsT", bound=CommonArgs)

ServiceFactory = Callable[..., LibraryService]


class CommandExecutor(ABC, Generic[ArgsT]):
    """Base class for command execution."""

    args: ArgsT
    config: Config
    console: Console

    def __init__(
        self,
        args: ArgsT,
        config: Config,
        *,
        service_factory: ServiceFactory | None = None,
        console: Console | None = None,
    ) -> None:
        """Initialize command executor.

        Args:
            args: Parsed command line arguments.
            config: Loaded configuration.
            service_factory: Builds the (unopened) service; tests inject doubles.
            console: Output console.
        """
        self.args = args
        self.config = config
        self._service_factory: ServiceFactory = service_factory or LibraryService
        self.console = console or Console()

    def build_service(self, **options: object) -> LibraryService:
        return self._service_factory(self.config, **options)

    @abstractmethod
    def execute(self) -> int:
        """Execute the command.

        Returns:
            Process exit code.
        """
        pass
