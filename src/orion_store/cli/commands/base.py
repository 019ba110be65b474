"""Base command handler for orion-store CLI commands.

Every handler receives the same dependencies from ``CLIRunner``, which
acts as the composition root.
"""

from abc import ABC, abstractmethod
from argparse import Namespace

from orion_store.config.settings import Settings
from orion_store.core.auth import TokenStore
from orion_store.core.store import JsonFileStore
from orion_store.logger import get_logger

logger = get_logger(__name__)


class BaseCommandHandler(ABC):
    """Abstract base class for all command handlers."""

    def __init__(
        self,
        settings: Settings,
        store: JsonFileStore,
        token_store: TokenStore,
    ) -> None:
        """Initialize the command handler with shared dependencies.

        Args:
            settings: Loaded settings
            store: Persistent key-value store
            token_store: Keyring-backed GitHub token store

        """
        self.settings = settings
        self.store = store
        self.token_store = token_store

    @abstractmethod
    async def execute(self, args: Namespace) -> int:
        """Execute the command and return its exit code.

        Args:
            args: Parsed command-line arguments

        """
