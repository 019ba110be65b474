"""INI settings manager for orion-store.

``settings.conf`` is layered over built-in defaults; any key the user
leaves out keeps its default value.
"""

import configparser
from pathlib import Path
from typing import TypedDict

from orion_store.config.paths import Paths
from orion_store.constants import (
    APPS_URL_FALLBACK,
    APPS_URL_PRIMARY,
    CONFIG_URL_FALLBACK,
    CONFIG_URL_PRIMARY,
    CONFIG_VERSION,
    DEFAULT_BACKOFF_MS,
    DEFAULT_CONSOLE_LOG_LEVEL,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MIRROR_JSON,
    DEFAULT_RETRIES,
    MAX_CONCURRENT_UPDATES,
    NETWORK_TIMEOUT_MS,
    POLL_INTERVAL_SECONDS,
    SECTION_DEFAULT,
    SECTION_ENDPOINTS,
    SECTION_NETWORK,
    SECTION_UPDATES,
)
from orion_store.exceptions import ConfigurationError
from orion_store.logger import get_logger

logger = get_logger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

RawConfigDict = dict[str, str | dict[str, str]]


class NetworkSettings(TypedDict):
    timeout_seconds: float
    retry_attempts: int
    backoff_ms: int


class EndpointSettings(TypedDict):
    config_primary: str
    config_fallback: str
    apps_primary: str
    apps_fallback: str
    mirror: str


class UpdateSettings(TypedDict):
    max_concurrent_updates: int
    poll_interval_ms: int


class Settings(TypedDict):
    config_version: str
    log_level: str
    console_log_level: str
    network: NetworkSettings
    endpoints: EndpointSettings
    updates: UpdateSettings


def _default_settings() -> RawConfigDict:
    return {
        "config_version": CONFIG_VERSION,
        "log_level": DEFAULT_LOG_LEVEL,
        "console_log_level": DEFAULT_CONSOLE_LOG_LEVEL,
        SECTION_NETWORK: {
            "timeout_seconds": str(NETWORK_TIMEOUT_MS / 1000),
            "retry_attempts": str(DEFAULT_RETRIES),
            "backoff_ms": str(DEFAULT_BACKOFF_MS),
        },
        SECTION_ENDPOINTS: {
            "config_primary": CONFIG_URL_PRIMARY,
            "config_fallback": CONFIG_URL_FALLBACK,
            "apps_primary": APPS_URL_PRIMARY,
            "apps_fallback": APPS_URL_FALLBACK,
            "mirror": DEFAULT_MIRROR_JSON,
        },
        SECTION_UPDATES: {
            "max_concurrent_updates": str(MAX_CONCURRENT_UPDATES),
            "poll_interval_ms": str(int(POLL_INTERVAL_SECONDS * 1000)),
        },
    }


def _new_parser() -> configparser.ConfigParser:
    return configparser.ConfigParser(
        inline_comment_prefixes=("#", ";"),
        interpolation=None,
    )


class SettingsManager:
    """Loads and saves ``settings.conf``."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize settings manager.

        Args:
            config_dir: Configuration directory (defaults to Paths.CONFIG_DIR)

        """
        self.config_dir = config_dir or Paths.CONFIG_DIR
        self.settings_file = self.config_dir / "settings.conf"

    def _parser_from_defaults(self) -> configparser.ConfigParser:
        defaults = _default_settings()
        config = _new_parser()
        config.read_dict(
            {
                SECTION_DEFAULT: {
                    key: value
                    for key, value in defaults.items()
                    if not isinstance(value, dict)
                }
            }
        )
        for section, values in defaults.items():
            if isinstance(values, dict):
                config.add_section(section)
                for key, value in values.items():
                    config.set(section, key, value)
        return config

    def load(self) -> Settings:
        """Load settings, writing a default file on first run.

        Returns:
            Typed settings

        Raises:
            ConfigurationError: If the file cannot be parsed or holds
                values of the wrong type

        """
        config = self._parser_from_defaults()
        if self.settings_file.exists():
            try:
                config.read(self.settings_file, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(str(e), str(self.settings_file)) from e
        else:
            self.save(config)
        return self._convert(config)

    def save(self, config: configparser.ConfigParser) -> None:
        """Write settings to disk.

        Args:
            config: Parser holding the values to persist

        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with self.settings_file.open("w", encoding="utf-8") as f:
                f.write("# orion-store settings\n")
                config.write(f)
        except OSError as e:
            logger.warning(
                "Could not write settings file %s: %s", self.settings_file, e
            )
            return
        logger.debug("Wrote settings to %s", self.settings_file)

    def _convert(self, config: configparser.ConfigParser) -> Settings:
        def level(key: str, default: str) -> str:
            value = config.get(SECTION_DEFAULT, key, fallback=default).upper()
            if value not in VALID_LOG_LEVELS:
                logger.warning(
                    "Invalid %s '%s' in settings, using %s", key, value, default
                )
                return default
            return value

        try:
            network = NetworkSettings(
                timeout_seconds=config.getfloat(
                    SECTION_NETWORK, "timeout_seconds"
                ),
                retry_attempts=config.getint(SECTION_NETWORK, "retry_attempts"),
                backoff_ms=config.getint(SECTION_NETWORK, "backoff_ms"),
            )
            updates = UpdateSettings(
                max_concurrent_updates=config.getint(
                    SECTION_UPDATES, "max_concurrent_updates"
                ),
                poll_interval_ms=config.getint(
                    SECTION_UPDATES, "poll_interval_ms"
                ),
            )
        except ValueError as e:
            raise ConfigurationError(str(e), str(self.settings_file)) from e

        if network["retry_attempts"] < 1 or updates["max_concurrent_updates"] < 1:
            msg = "retry_attempts and max_concurrent_updates must be >= 1"
            raise ConfigurationError(msg, str(self.settings_file))

        return Settings(
            config_version=config.get(SECTION_DEFAULT, "config_version"),
            log_level=level("log_level", DEFAULT_LOG_LEVEL),
            console_log_level=level(
                "console_log_level", DEFAULT_CONSOLE_LOG_LEVEL
            ),
            network=network,
            endpoints=EndpointSettings(
                config_primary=config.get(SECTION_ENDPOINTS, "config_primary"),
                config_fallback=config.get(
                    SECTION_ENDPOINTS, "config_fallback"
                ),
                apps_primary=config.get(SECTION_ENDPOINTS, "apps_primary"),
                apps_fallback=config.get(SECTION_ENDPOINTS, "apps_fallback"),
                mirror=config.get(SECTION_ENDPOINTS, "mirror"),
            ),
            updates=updates,
        )


def default_settings() -> Settings:
    """Return the built-in settings without touching the filesystem."""
    manager = SettingsManager()
    return manager._convert(manager._parser_from_defaults())  # noqa: SLF001
