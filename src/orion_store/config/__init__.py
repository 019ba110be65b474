"""Configuration: paths, INI settings and payload schemas."""

from orion_store.config.paths import Paths
from orion_store.config.settings import (
    Settings,
    SettingsManager,
    default_settings,
)

__all__ = ["Paths", "Settings", "SettingsManager", "default_settings"]
