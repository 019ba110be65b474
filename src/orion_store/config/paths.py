"""Path layout for orion-store configuration and persisted state."""

from pathlib import Path

from orion_store.constants import (
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_CONFIG_SUBDIR,
)


class Paths:
    """Application paths and directory structure."""

    HOME_DIR = Path.home()
    CONFIG_BASE_DIR = HOME_DIR / DEFAULT_CONFIG_SUBDIR
    CONFIG_DIR = CONFIG_BASE_DIR / CONFIG_DIR_NAME

    # Bundled with the package
    PACKAGE_DIR = Path(__file__).parent.parent
    DATA_DIR = PACKAGE_DIR / "data"
    SCHEMA_DIR = Path(__file__).parent / "schemas"
    BUNDLED_APPS_FILE = DATA_DIR / "apps.json"
    BUNDLED_MIRROR_FILE = DATA_DIR / "mirror.json"

    # User directories
    STORE_DIR = CONFIG_DIR / "store"
    LOGS_DIR = CONFIG_DIR / "logs"

    SETTINGS_FILE = CONFIG_DIR / CONFIG_FILE_NAME

    @classmethod
    def get_store_path(cls, key: str, store_dir: Path | None = None) -> Path:
        """Get the file backing one key of the persisted store.

        Args:
            key: Store key (e.g. "installed_apps")
            store_dir: Override for the store directory

        Returns:
            Path to the key's JSON file

        """
        return (store_dir or cls.STORE_DIR) / f"{key}.json"

    @classmethod
    def ensure_directories(cls) -> None:
        """Create the user config, store and log directories."""
        for directory in (cls.CONFIG_DIR, cls.STORE_DIR, cls.LOGS_DIR):
            directory.mkdir(parents=True, exist_ok=True)
