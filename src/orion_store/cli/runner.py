"""CLI runner for orion-store.

Builds the shared dependencies once and routes parsed arguments to the
matching command handler.
"""

from argparse import Namespace
from collections.abc import Sequence

from orion_store import __version__
from orion_store.config import Settings, SettingsManager
from orion_store.core.auth import TokenStore
from orion_store.core.store import JsonFileStore
from orion_store.logger import get_logger, get_state
from orion_store.logger.config import apply_levels

from .commands import (
    BaseCommandHandler,
    CacheHandler,
    PrefsHandler,
    RefreshHandler,
    RegistryHandler,
    TokenHandler,
    UpdatesHandler,
)
from .parser import CLIParser

logger = get_logger(__name__)


class CLIRunner:
    """CLI command runner and orchestrator."""

    def __init__(
        self,
        settings: Settings | None = None,
        store: JsonFileStore | None = None,
        token_store: TokenStore | None = None,
    ) -> None:
        """Initialize CLI runner with shared dependencies.

        Args:
            settings: Loaded settings (read from settings.conf when None)
            store: Persistent store (default store directory when None)
            token_store: Keyring token store

        """
        self.settings = settings or SettingsManager().load()
        self.store = store or JsonFileStore()
        self.token_store = token_store or TokenStore()
        self.command_handlers: dict[str, BaseCommandHandler] = {
            name: handler_cls(self.settings, self.store, self.token_store)
            for name, handler_cls in (
                ("refresh", RefreshHandler),
                ("updates", UpdatesHandler),
                ("registry", RegistryHandler),
                ("prefs", PrefsHandler),
                ("cache", CacheHandler),
                ("token", TokenHandler),
            )
        }

    async def run(self, argv: Sequence[str] | None = None) -> int:
        """Parse arguments and run the selected command.

        Args:
            argv: Arguments to parse (defaults to ``sys.argv[1:]``)

        Returns:
            Process exit code

        """
        args = CLIParser(self.settings).parse_args(argv)

        if args.version:
            print(__version__)
            return 0
        if not args.command:
            print("❌ No command specified. Use --help.")
            return 1
        return await self._execute_command(args)

    async def _execute_command(self, args: Namespace) -> int:
        handler = self.command_handlers.get(args.command)
        if handler is None:
            print(f"❌ Unknown command: {args.command}")
            return 1

        verbose = getattr(args, "verbose", False)
        if verbose:
            apply_levels(get_state(), "DEBUG", self.settings["log_level"])
        try:
            return await handler.execute(args)
        finally:
            if verbose:
                apply_levels(
                    get_state(),
                    self.settings["console_log_level"],
                    self.settings["log_level"],
                )
