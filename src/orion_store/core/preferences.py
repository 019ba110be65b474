"""User preferences persisted in the key-value store."""

from orion_store.constants import StoreKeys
from orion_store.core.store import KeyValueStore, get_flag

THEMES = ("light", "dusk", "dark")


class Preferences:
    """Typed view over preference keys.

    Flags are stored as "true"/"false" strings to stay compatible with
    values written by the client app.
    """

    _DEFAULTS = {
        StoreKeys.AUTO_UPDATE: False,
        StoreKeys.WIFI_ONLY: False,
        StoreKeys.DELETE_APK: False,
        StoreKeys.DISABLE_ANIMATIONS: False,
        StoreKeys.COMPACT_MODE: False,
        StoreKeys.HIGH_REFRESH_RATE: False,
        StoreKeys.USE_REMOTE_JSON: True,
    }

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def _flag(self, key: str) -> bool:
        return get_flag(self.store, key, default=self._DEFAULTS[key])

    def _set_flag(self, key: str, value: bool) -> None:  # noqa: FBT001
        self.store.set(key, "true" if value else "false")

    @property
    def auto_update_enabled(self) -> bool:
        return self._flag(StoreKeys.AUTO_UPDATE)

    @auto_update_enabled.setter
    def auto_update_enabled(self, value: bool) -> None:
        self._set_flag(StoreKeys.AUTO_UPDATE, value)

    @property
    def wifi_only(self) -> bool:
        return self._flag(StoreKeys.WIFI_ONLY)

    @wifi_only.setter
    def wifi_only(self, value: bool) -> None:
        self._set_flag(StoreKeys.WIFI_ONLY, value)

    @property
    def delete_apk(self) -> bool:
        """Whether installed package files are queued for cleanup."""
        return self._flag(StoreKeys.DELETE_APK)

    @delete_apk.setter
    def delete_apk(self, value: bool) -> None:
        self._set_flag(StoreKeys.DELETE_APK, value)

    @property
    def disable_animations(self) -> bool:
        return self._flag(StoreKeys.DISABLE_ANIMATIONS)

    @property
    def compact_mode(self) -> bool:
        return self._flag(StoreKeys.COMPACT_MODE)

    @property
    def high_refresh_rate(self) -> bool:
        return self._flag(StoreKeys.HIGH_REFRESH_RATE)

    @property
    def use_remote_json(self) -> bool:
        return self._flag(StoreKeys.USE_REMOTE_JSON)

    @use_remote_json.setter
    def use_remote_json(self, value: bool) -> None:
        self._set_flag(StoreKeys.USE_REMOTE_JSON, value)

    @property
    def theme(self) -> str:
        value = self.store.get(StoreKeys.THEME)
        return value if value in THEMES else THEMES[0]

    @theme.setter
    def theme(self, value: str) -> None:
        if value not in THEMES:
            msg = f"Unknown theme '{value}'"
            raise ValueError(msg)
        self.store.set(StoreKeys.THEME, value)
