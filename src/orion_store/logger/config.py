"""Bootstrap defaults and settings.conf overrides for logging."""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from orion_store.constants import (
    CONFIG_DIR_NAME,
    DEFAULT_CONFIG_SUBDIR,
    DEFAULT_CONSOLE_LOG_LEVEL,
    DEFAULT_LOG_LEVEL,
    LOG_DIR_ENV,
    LOG_FILE_NAME,
)

if TYPE_CHECKING:
    from orion_store.config.settings import Settings
    from orion_store.logger.state import _LoggerState


def load_log_settings() -> tuple[str, str, Path]:
    """Return bootstrap console level, file level and log path.

    ``ORION_STORE_LOG_DIR`` redirects the log file, which keeps test runs
    out of ``~/.config/orion-store/logs``.

    Returns:
        Tuple of (console_level, file_level, log_path)

    """
    env_log_dir = os.getenv(LOG_DIR_ENV)
    if env_log_dir:
        log_path = Path(env_log_dir).expanduser() / LOG_FILE_NAME
    else:
        log_path = (
            Path.home()
            / DEFAULT_CONFIG_SUBDIR
            / CONFIG_DIR_NAME
            / "logs"
            / LOG_FILE_NAME
        )
    return DEFAULT_CONSOLE_LOG_LEVEL, DEFAULT_LOG_LEVEL, log_path


def apply_levels(
    state: "_LoggerState", console_level_str: str, file_level_str: str
) -> None:
    """Set handler levels on the running QueueListener.

    Args:
        state: Logger state singleton
        console_level_str: Level name for the console handler
        file_level_str: Level name for the file handler

    """
    console_level = getattr(logging, console_level_str, logging.WARNING)
    file_level = getattr(logging, file_level_str, logging.INFO)

    if state.queue_listener is not None:
        for handler in state.queue_listener.handlers:
            if isinstance(handler, RotatingFileHandler):
                handler.setLevel(file_level)
            elif isinstance(handler, logging.StreamHandler):
                handler.setLevel(console_level)
    state.config_applied = True


def update_logger_from_config(
    state: "_LoggerState", settings: "Settings | None" = None
) -> None:
    """Apply log levels from settings.conf to the running handlers.

    When ``settings`` is omitted a SettingsManager is created and the file
    is read. A broken settings file keeps the bootstrap levels.

    Args:
        state: Logger state singleton
        settings: Already loaded settings, if the caller has them

    """
    if settings is None:
        # Late import: config modules log through this package
        from orion_store.config.settings import SettingsManager  # noqa: PLC0415
        from orion_store.exceptions import ConfigurationError  # noqa: PLC0415

        try:
            settings = SettingsManager().load()
        except ConfigurationError:
            return

    apply_levels(
        state,
        settings.get("console_log_level", DEFAULT_CONSOLE_LOG_LEVEL),
        settings.get("log_level", DEFAULT_LOG_LEVEL),
    )
