"""Key-value persistence.

Every key is stored as its own orjson file so that writing one map never
rewrites another. Writes go to a temp file that is then renamed over the
target, so a reader never sees a partially written value.
"""

import contextlib
from pathlib import Path
from typing import Any, Protocol

import orjson

from orion_store.config.paths import Paths
from orion_store.constants import StoreKeys
from orion_store.domain.lifecycle import LifecycleState
from orion_store.logger import get_logger

logger = get_logger(__name__)


class KeyValueStore(Protocol):
    """Minimal get/set/delete persistence contract."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, used when nothing should touch the disk."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """Store that keeps each key in ``<store_dir>/<key>.json``."""

    def __init__(self, store_dir: Path | None = None) -> None:
        """Initialize the store.

        Args:
            store_dir: Directory holding the key files
                (defaults to Paths.STORE_DIR)

        """
        self.store_dir = store_dir or Paths.STORE_DIR
        self.store_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return Paths.get_store_path(key, self.store_dir)

    def get(self, key: str, default: Any = None) -> Any:
        """Read a key; missing or corrupted files read as ``default``.

        A corrupted file is removed so the next write starts clean.
        """
        path = self._path(key)
        if not path.exists():
            return default
        try:
            return orjson.loads(path.read_bytes())
        except orjson.JSONDecodeError as e:
            logger.warning("Store file corrupted for %s: %s", key, e)
            with contextlib.suppress(OSError):
                path.unlink()
            return default
        except OSError as e:
            logger.warning("Failed to read store key %s: %s", key, e)
            return default

    def set(self, key: str, value: Any) -> None:
        """Write a key atomically.

        Raises:
            OSError: If the value cannot be written
            TypeError: If the value is not JSON serializable

        """
        path = self._path(key)
        temp_file = path.with_suffix(".tmp")
        try:
            temp_file.write_bytes(
                orjson.dumps(value, option=orjson.OPT_INDENT_2)
            )
            temp_file.replace(path)
        except (OSError, TypeError):
            logger.error("Failed to save store key %s", key)
            with contextlib.suppress(OSError):
                temp_file.unlink()
            raise
        logger.debug("Saved store key %s", key)

    def delete(self, key: str) -> None:
        with contextlib.suppress(FileNotFoundError):
            self._path(key).unlink()

    def clear(self) -> int:
        """Delete every key file. Returns the number of files removed."""
        removed = 0
        for path in self.store_dir.glob("*.json"):
            with contextlib.suppress(OSError):
                path.unlink()
                removed += 1
        return removed


def get_mapping(store: KeyValueStore, key: str) -> dict[str, str]:
    """Read a string map, treating anything that is not a dict as empty."""
    value = store.get(key)
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items()}


def get_flag(store: KeyValueStore, key: str, *, default: bool) -> bool:
    """Read a boolean flag stored as a bool or a "true"/"false" string."""
    value = store.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


class LifecycleStore:
    """Loads and saves the three persisted lifecycle maps."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def load(self) -> LifecycleState:
        return LifecycleState.from_maps(
            get_mapping(self.store, StoreKeys.ACTIVE_DOWNLOADS),
            get_mapping(self.store, StoreKeys.READY_TO_INSTALL),
            get_mapping(self.store, StoreKeys.PENDING_CLEANUP),
        )

    def save(self, state: LifecycleState) -> None:
        """Persist each map with its own atomic write."""
        active, ready, cleanup = state.to_maps()
        self.store.set(StoreKeys.ACTIVE_DOWNLOADS, active)
        self.store.set(StoreKeys.READY_TO_INSTALL, ready)
        self.store.set(StoreKeys.PENDING_CLEANUP, cleanup)
