"""Logging for orion-store.

Application -> QueueHandler -> Queue -> QueueListener thread -> console and
rotating file handlers. Handlers are attached only to the root
``orion_store`` logger; module loggers propagate into it.

Rules:
    1. ``logger = get_logger(__name__)`` in every module
    2. %-style arguments, never f-strings, in log calls
    3. No ``logging.basicConfig()`` and no handlers on child loggers

Environment Variables:
    ORION_STORE_LOG_DIR: Redirects the log file (used by the test suite)
"""

from typing import TYPE_CHECKING

from orion_store.logger.config import (
    update_logger_from_config as _update_config,
)
from orion_store.logger.formatters import (
    ColoredConsoleFormatter,
    HybridConsoleFormatter,
    SimpleConsoleFormatter,
)
from orion_store.logger.logger import (
    clear_logger_state,
    flush_all_handlers,
    get_logger,
    setup_logging,
)
from orion_store.logger.state import _state, get_state

if TYPE_CHECKING:
    from orion_store.config.settings import Settings

__all__ = [
    "ColoredConsoleFormatter",
    "HybridConsoleFormatter",
    "SimpleConsoleFormatter",
    "_state",  # For testing only
    "clear_logger_state",
    "flush_all_handlers",
    "get_logger",
    "get_state",
    "setup_logging",
    "update_logger_from_config",
]


def update_logger_from_config(settings: "Settings | None" = None) -> None:
    """Apply settings.conf log levels to the running handlers.

    Args:
        settings: Loaded settings; read from disk when omitted

    """
    _update_config(get_state(), settings)
