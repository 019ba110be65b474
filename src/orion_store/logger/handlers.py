"""Handler construction for the orion-store root logger.

Handlers live behind a QueueListener thread; loggers only ever see a
QueueHandler, so coroutines never block on console or file I/O.
"""

import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path

from orion_store.constants import (
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_DATE_FORMAT,
    LOG_CONSOLE_FORMAT,
    LOG_DIR_MODE,
    LOG_FILE_DATE_FORMAT,
    LOG_FILE_FORMAT,
    LOG_ROTATION_THRESHOLD_BYTES,
)
from orion_store.exceptions import ConfigurationError
from orion_store.logger.formatters import HybridConsoleFormatter

ROOT_LOGGER_NAME = "orion_store"


def _create_console_handler(console_level: str) -> logging.StreamHandler:
    """Create the stdout handler using the hybrid formatter.

    Args:
        console_level: Level name such as "INFO" or "WARNING"

    Returns:
        Configured StreamHandler

    """
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        HybridConsoleFormatter(
            LOG_CONSOLE_FORMAT, datefmt=LOG_CONSOLE_DATE_FORMAT
        )
    )
    console_handler.setLevel(getattr(logging, console_level, logging.WARNING))
    return console_handler


def _roll_over_oversized(handler: RotatingFileHandler, log_file: Path) -> None:
    # A log left over from a long session is rotated before the first write
    if log_file.stat().st_size >= LOG_ROTATION_THRESHOLD_BYTES:
        handler.doRollover()


def _create_file_handler(log_file: Path, file_level: str) -> RotatingFileHandler:
    """Open ``orion-store.log`` in an owner-only directory.

    The directory is created with ``LOG_DIR_MODE`` and tightened if it
    already exists. An existing log at or over the rotation threshold is
    rolled over first so a new session starts a fresh file.

    Raises:
        ConfigurationError: If the log directory or file cannot be opened

    """
    log_dir = log_file.parent
    try:
        log_dir.mkdir(mode=LOG_DIR_MODE, parents=True, exist_ok=True)
        log_dir.chmod(LOG_DIR_MODE)
        file_handler = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=LOG_ROTATION_THRESHOLD_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        _roll_over_oversized(file_handler, log_file)
    except OSError as e:
        msg = f"Cannot open log file: {e}"
        raise ConfigurationError(msg, str(log_file)) from e

    file_handler.setFormatter(
        logging.Formatter(LOG_FILE_FORMAT, datefmt=LOG_FILE_DATE_FORMAT)
    )
    file_handler.setLevel(getattr(logging, file_level, logging.INFO))
    return file_handler


def setup_root_logger(
    state,
    console_level: str,
    file_level: str,
    log_file: Path,
    enable_file_logging: bool,  # noqa: FBT001
) -> None:
    """Attach the QueueHandler to the root logger and start the listener.

    Args:
        state: Logger state singleton
        console_level: Console level name
        file_level: File level name
        log_file: Path to the log file
        enable_file_logging: Whether to add the rotating file handler

    Raises:
        ConfigurationError: If the file handler cannot be created

    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)
    root_logger.propagate = False

    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    handlers: list[logging.Handler] = [_create_console_handler(console_level)]
    if enable_file_logging:
        handlers.append(_create_file_handler(log_file, file_level))

    state.log_queue = queue.Queue(-1)
    state.queue_listener = QueueListener(
        state.log_queue, *handlers, respect_handler_level=True
    )
    state.queue_listener.start()

    root_logger.addHandler(QueueHandler(state.log_queue))
    state.root_initialized = True
