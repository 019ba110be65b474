"""Centralized constants module for orion-store.

Single source of truth for endpoints, timings, persisted store keys and
logging formats. Constants use typing.Final annotations.

Usage:
    from orion_store.constants import NETWORK_TIMEOUT_MS
"""

from typing import Final

# =============================================================================
# Store identity
# =============================================================================

CURRENT_STORE_VERSION: Final[str] = "1.0.8"

# Bumping this invalidates every persisted catalog cache wholesale
CACHE_VERSION: Final[str] = "2"

# =============================================================================
# Remote endpoints
# =============================================================================

CONFIG_URL_PRIMARY: Final[str] = (
    "https://raw.githubusercontent.com/RookieEnough/Orion-Data/main/config.json"
)
CONFIG_URL_FALLBACK: Final[str] = (
    "https://cdn.jsdelivr.net/gh/RookieEnough/Orion-Data@main/config.json"
)
APPS_URL_PRIMARY: Final[str] = (
    "https://raw.githubusercontent.com/RookieEnough/Orion-Data/main/apps.json"
)
APPS_URL_FALLBACK: Final[str] = (
    "https://cdn.jsdelivr.net/gh/RookieEnough/Orion-Data@main/apps.json"
)
DEFAULT_MIRROR_JSON: Final[str] = (
    "https://raw.githubusercontent.com/RookieEnough/Orion-Data/main/mirror.json"
)

GITHUB_HOSTS: Final[tuple[str, ...]] = (
    "github.com",
    "api.github.com",
    "raw.githubusercontent.com",
)

# =============================================================================
# Network
# =============================================================================

NETWORK_TIMEOUT_MS: Final[int] = 10_000
DEFAULT_RETRIES: Final[int] = 3
DEFAULT_BACKOFF_MS: Final[int] = 1000

CONFIG_PRIMARY_RETRIES: Final[int] = 2
CONFIG_FALLBACK_RETRIES: Final[int] = 1
APPS_PRIMARY_RETRIES: Final[int] = 2
APPS_FALLBACK_RETRIES: Final[int] = 2
MIRROR_RETRIES: Final[int] = 1

# =============================================================================
# Release resolution
# =============================================================================

PACKAGE_EXTENSION: Final[str] = ".apk"
NON_VERSION_TAGS: Final[frozenset[str]] = frozenset(
    {"latest", "all", "nightly", "pre-release"}
)
BYTES_PER_MB: Final[int] = 1_048_576

ARCH_UNIVERSAL: Final[str] = "Universal"
ARCH_ARM64: Final[str] = "ARM64"
ARCH_ARMV7: Final[str] = "ARMv7"
ARCH_X64: Final[str] = "x64"
ARCH_X86: Final[str] = "x86"

# =============================================================================
# Catalog defaults
# =============================================================================

VERSION_PLACEHOLDER: Final[str] = "Latest"
VERSION_INSTALLED_UNKNOWN: Final[str] = "Installed"
UNSAFE_URL_PLACEHOLDER: Final[str] = "#"
DEFAULT_APP_NAME: Final[str] = "Unknown App"
DEFAULT_AUTHOR: Final[str] = "Unknown"
DEFAULT_CATEGORY: Final[str] = "Utility"

MIRROR_SOURCE_REMOTE: Final[str] = "Remote (GitHub)"
MIRROR_SOURCE_LOCAL: Final[str] = "Local File"
MIRROR_SOURCE_DISABLED: Final[str] = "Disabled"
MIRROR_SOURCE_UNAVAILABLE: Final[str] = "Unavailable"

# =============================================================================
# Download lifecycle and auto-update
# =============================================================================

POLL_INTERVAL_SECONDS: Final[float] = 0.8
INSTALL_RETRY_SETTLE_SECONDS: Final[float] = 0.5
REDOWNLOAD_SETTLE_SECONDS: Final[float] = 1.0
MAX_CONCURRENT_UPDATES: Final[int] = 2
UPDATE_SETTLE_SECONDS: Final[float] = 1.5
AUTO_UPDATE_DELAY_SECONDS: Final[float] = 5.0
COMPOSITE_SEPARATOR: Final[str] = "|"

CHANNEL_UPDATES: Final[str] = "orion_updates"
CHANNEL_CLEANUP: Final[str] = "orion_cleanup"

# =============================================================================
# Submission cooldown
# =============================================================================

SUBMISSION_BASE_COOLDOWN_MINUTES: Final[int] = 180
SUBMISSION_REDUCTION_PER_SUBMISSION: Final[int] = 15
SUBMISSION_MAX_REDUCTION_MINUTES: Final[int] = 150

# =============================================================================
# Persisted key-value store keys
# =============================================================================


class StoreKeys:
    """Keys of the persisted key-value store."""

    CACHED_APPS: Final[str] = "orion_cached_apps_v2"
    CACHE_VERSION: Final[str] = "orion_cache_ver"
    IMPORTED_APPS: Final[str] = "imported_apps"
    INSTALLED_APPS: Final[str] = "installed_apps"
    ACTIVE_DOWNLOADS: Final[str] = "active_native_downloads"
    READY_TO_INSTALL: Final[str] = "ready_to_install"
    PENDING_CLEANUP: Final[str] = "pending_cleanup_files"
    AUTO_UPDATE: Final[str] = "auto_update_enabled"
    WIFI_ONLY: Final[str] = "wifi_only"
    DELETE_APK: Final[str] = "delete_apk"
    DISABLE_ANIMATIONS: Final[str] = "disable_anim"
    COMPACT_MODE: Final[str] = "compact_mode"
    HIGH_REFRESH_RATE: Final[str] = "high_refresh_rate"
    USE_REMOTE_JSON: Final[str] = "use_remote_json"
    THEME: Final[str] = "theme_preference"
    SUBMISSION_COUNT: Final[str] = "submission_count"
    LAST_SUBMISSION_TS: Final[str] = "last_submission_ts"
    DISMISSED_ANNOUNCEMENT: Final[str] = "dismissed_announcement_hash"
    DEV_UNLOCKED: Final[str] = "isDevUnlocked"


# =============================================================================
# Configuration
# =============================================================================

CONFIG_VERSION: Final[str] = "1.0.0"
CONFIG_FILE_NAME: Final[str] = "settings.conf"
CONFIG_DIR_NAME: Final[str] = "orion-store"
DEFAULT_CONFIG_SUBDIR: Final[str] = ".config"

DEFAULT_LOG_LEVEL: Final[str] = "INFO"
DEFAULT_CONSOLE_LOG_LEVEL: Final[str] = "WARNING"

SECTION_DEFAULT: Final[str] = "DEFAULT"
SECTION_NETWORK: Final[str] = "network"
SECTION_ENDPOINTS: Final[str] = "endpoints"
SECTION_UPDATES: Final[str] = "updates"

# =============================================================================
# Logging
# =============================================================================

LOG_FILE_NAME: Final[str] = "orion-store.log"
LOG_DIR_ENV: Final[str] = "ORION_STORE_LOG_DIR"
LOG_ROTATION_THRESHOLD_BYTES: Final[int] = 1024 * 1024
LOG_BACKUP_COUNT: Final[int] = 3
# Owner-only: logs record request URLs and installed packages
LOG_DIR_MODE: Final[int] = 0o700

LOG_CONSOLE_FORMAT: Final[str] = (
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
LOG_CONSOLE_DATE_FORMAT: Final[str] = "%H:%M:%S"
LOG_FILE_FORMAT: Final[str] = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "%(funcName)s:%(lineno)d - %(message)s"
)
LOG_FILE_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

LOG_COLORS: Final[dict[str, str]] = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
    "RESET": "\033[0m",
}
