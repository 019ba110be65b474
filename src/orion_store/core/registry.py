"""Installed-version registry: app id -> installed version."""

from orion_store.constants import VERSION_INSTALLED_UNKNOWN, StoreKeys
from orion_store.core.store import KeyValueStore, get_mapping
from orion_store.logger import get_logger

logger = get_logger(__name__)


class InstalledVersionRegistry:
    """Persisted map of installed app versions.

    The sentinel ``"Installed"`` marks an app known to be present whose
    version could not be read.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def all(self) -> dict[str, str]:
        return get_mapping(self.store, StoreKeys.INSTALLED_APPS)

    def get(self, app_id: str) -> str | None:
        return self.all().get(app_id)

    def has_known_version(self, app_id: str) -> bool:
        version = self.get(app_id)
        return bool(version) and version != VERSION_INSTALLED_UNKNOWN

    def set(self, app_id: str, version: str | None) -> None:
        """Record an installed version (sentinel when unknown)."""
        versions = self.all()
        versions[app_id] = version or VERSION_INSTALLED_UNKNOWN
        self.store.set(StoreKeys.INSTALLED_APPS, versions)
        logger.debug("Registered %s as %s", app_id, versions[app_id])

    def remove(self, app_id: str) -> bool:
        """Forget an app. Returns False when it was not registered."""
        versions = self.all()
        if versions.pop(app_id, None) is None:
            return False
        self.store.set(StoreKeys.INSTALLED_APPS, versions)
        logger.debug("Removed %s from installed registry", app_id)
        return True

    def replace_all(self, versions: dict[str, str]) -> None:
        self.store.set(StoreKeys.INSTALLED_APPS, dict(versions))
