"""Notification sink.

Lifecycle and scheduler code report user-visible outcomes through a
``Notifier``; the host app decides how to show them.
"""

from typing import Any, Protocol

from orion_store.constants import CHANNEL_UPDATES
from orion_store.logger import get_logger

logger = get_logger(__name__)


class Notifier(Protocol):
    def notify(
        self,
        title: str,
        body: str,
        *,
        channel: str = CHANNEL_UPDATES,
        extra: dict[str, Any] | None = None,
    ) -> None: ...


class LoggingNotifier:
    """Notifier that writes every notification to the log."""

    def notify(
        self,
        title: str,
        body: str,
        *,
        channel: str = CHANNEL_UPDATES,
        extra: dict[str, Any] | None = None,
    ) -> None:
        logger.info("[%s] %s: %s", channel, title, body)
        if extra:
            logger.debug("Notification extra: %s", extra)

