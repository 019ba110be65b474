"""Command handlers for orion-store CLI.

Each handler implements one subcommand on top of the core engine.
"""

from .base import BaseCommandHandler
from .cache import CacheHandler
from .prefs import PrefsHandler
from .refresh import RefreshHandler
from .registry import RegistryHandler
from .token import TokenHandler
from .updates import UpdatesHandler

__all__ = [
    "BaseCommandHandler",
    "CacheHandler",
    "PrefsHandler",
    "RefreshHandler",
    "RegistryHandler",
    "TokenHandler",
    "UpdatesHandler",
]
