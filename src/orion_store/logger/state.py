"""Process-wide logger state.

The CLI, the catalog reconciler and the download poller all log through
the one ``orion_store`` root, so the queue and its listener thread are
created on the first ``get_logger`` call and reused afterwards.
"""

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import queue
    from logging.handlers import QueueListener


class _LoggerState:
    """What ``setup_root_logger`` wired up, and whether settings landed.

    Attributes:
        lock: Held while the root is being wired up
        root_initialized: Set once the QueueHandler is on the root logger
        config_applied: Set once settings.conf levels reached the handlers
        queue_listener: Thread feeding console and orion-store.log
        log_queue: Queue the root QueueHandler writes into

    """

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.root_initialized = False
        self.config_applied = False
        self.queue_listener: QueueListener | None = None
        self.log_queue: queue.Queue | None = None


_state = _LoggerState()


def get_state() -> _LoggerState:
    return _state
