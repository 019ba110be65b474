"""Public logging entry points for orion-store.

- setup_logging(): wire the root logger once and return a named logger
- get_logger(): the call every module makes at import time
- flush_all_handlers(): block until queued records hit their handlers
- clear_logger_state(): tear everything down between tests
"""

import atexit
import contextlib
import logging
import time
from pathlib import Path

from orion_store.logger.config import load_log_settings
from orion_store.logger.handlers import ROOT_LOGGER_NAME, setup_root_logger
from orion_store.logger.state import get_state

_FLUSH_TIMEOUT_SECONDS = 5.0


def flush_all_handlers() -> None:
    """Drain the log queue and flush every listener handler.

    The QueueListener does not call task_done(), so the queue is polled
    until empty before the handlers are flushed.
    """
    state = get_state()
    if state.queue_listener is None or state.log_queue is None:
        return

    deadline = time.monotonic() + _FLUSH_TIMEOUT_SECONDS
    while not state.log_queue.empty() and time.monotonic() < deadline:
        time.sleep(0.01)
    time.sleep(0.1)

    for handler in state.queue_listener.handlers:
        with contextlib.suppress(OSError, ValueError):
            handler.flush()


def _cleanup_logging() -> None:
    state = get_state()
    if state.queue_listener is not None:
        flush_all_handlers()
        state.queue_listener.stop()
        state.queue_listener = None


atexit.register(_cleanup_logging)


def setup_logging(
    name: str = ROOT_LOGGER_NAME,
    console_level: str | None = None,
    file_level: str | None = None,
    log_file: Path | None = None,
    enable_file_logging: bool = True,  # noqa: FBT001, FBT002
) -> logging.Logger:
    """Initialize the root logger on first use and return ``name``.

    Child loggers such as ``orion_store.core.catalog`` carry no handlers of
    their own; they propagate into the root QueueHandler.

    Args:
        name: Logger name, normally ``__name__``
        console_level: Console level name (bootstrap default if None)
        file_level: File level name (bootstrap default if None)
        log_file: Log file path (bootstrap default if None)
        enable_file_logging: Whether to attach the rotating file handler

    Returns:
        The requested logger

    Raises:
        ConfigurationError: If file logging cannot be set up

    """
    state = get_state()
    with state.lock:
        if not state.root_initialized:
            cfg_console, cfg_file, cfg_path = load_log_settings()
            setup_root_logger(
                state,
                console_level or cfg_console,
                file_level or cfg_file,
                log_file or cfg_path,
                enable_file_logging,
            )
    return logging.getLogger(name)


def get_logger(
    name: str = ROOT_LOGGER_NAME,
    enable_file_logging: bool = True,  # noqa: FBT001, FBT002
) -> logging.Logger:
    """Return a logger under the ``orion_store`` hierarchy.

    Usage:
        >>> logger = get_logger(__name__)
        >>> logger.info("Resolved %s apps", len(apps))

    Args:
        name: Logger name, normally ``__name__``
        enable_file_logging: Whether the root gets a file handler when
            this call is the one that initializes it

    Returns:
        Logger instance

    """
    return setup_logging(name=name, enable_file_logging=enable_file_logging)


def clear_logger_state() -> None:
    """Stop the listener, drop handlers and forget orion_store loggers.

    Intended for test isolation only.
    """
    state = get_state()
    with state.lock:
        if state.queue_listener is not None:
            flush_all_handlers()
            state.queue_listener.stop()
            state.queue_listener = None

        state.log_queue = None
        state.root_initialized = False
        state.config_applied = False

        for logger_name in list(logging.Logger.manager.loggerDict):
            if not logger_name.startswith(ROOT_LOGGER_NAME):
                continue
            log_instance = logging.getLogger(logger_name)
            for handler in log_instance.handlers[:]:
                handler.close()
                log_instance.removeHandler(handler)
            logging.Logger.manager.loggerDict.pop(logger_name, None)
