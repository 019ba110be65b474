"""Console formatters for orion-store logging.

INFO records are user-facing progress lines and print bare; every other
level is printed with timestamp, logger name and a colored level name.
"""

import logging

from orion_store.constants import LOG_COLORS


class ColoredConsoleFormatter(logging.Formatter):
    """Formatter that wraps the level name in ANSI color codes."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the record with a colored level name.

        The record's levelname is restored afterwards because the same
        record is handed to the file handler too.

        Args:
            record: The log record to format

        Returns:
            Formatted line with the level name colorized

        """
        color = LOG_COLORS.get(record.levelname)
        if color is None:
            return super().format(record)

        original_levelname = record.levelname
        record.levelname = f"{color}{original_levelname}{LOG_COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


class SimpleConsoleFormatter(logging.Formatter):
    """Formatter that emits only the rendered message."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


class HybridConsoleFormatter(logging.Formatter):
    """Bare messages for INFO, colored structured lines for other levels.

    Example Output:
        INFO:     "Resolved 42 apps (mirror: Remote (GitHub))"
        WARNING:  "12:30:45 - orion_store.core.http - WARNING - Attempt 1/2 failed"
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
    ) -> None:
        """Initialize with the structured format used for non-INFO levels.

        Args:
            fmt: Format string for structured messages
            datefmt: Date format string for timestamps

        """
        super().__init__(fmt, datefmt)
        self._simple_formatter = SimpleConsoleFormatter()
        self._colored_formatter = ColoredConsoleFormatter(fmt, datefmt)

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return self._simple_formatter.format(record)
        return self._colored_formatter.format(record)
