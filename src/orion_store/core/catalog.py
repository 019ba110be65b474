"""Catalog reconciliation.

One pass fetches the remote store config, the app catalog and the release
mirror, each through its own fallback chain, then sanitizes every entry
and resolves it against the mirror. The resolved catalog is cached in the
key-value store so the next start has something to show offline.
"""

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import aiohttp
import orjson

from orion_store.config.paths import Paths
from orion_store.config.schemas import PayloadValidator, get_validator
from orion_store.config.settings import Settings, default_settings
from orion_store.constants import (
    APPS_FALLBACK_RETRIES,
    APPS_PRIMARY_RETRIES,
    CACHE_VERSION,
    CONFIG_FALLBACK_RETRIES,
    CONFIG_PRIMARY_RETRIES,
    DEFAULT_APP_NAME,
    DEFAULT_AUTHOR,
    DEFAULT_CATEGORY,
    MIRROR_RETRIES,
    MIRROR_SOURCE_DISABLED,
    MIRROR_SOURCE_LOCAL,
    MIRROR_SOURCE_REMOTE,
    MIRROR_SOURCE_UNAVAILABLE,
    UNSAFE_URL_PLACEHOLDER,
    VERSION_PLACEHOLDER,
    StoreKeys,
)
from orion_store.core.auth import TokenStore
from orion_store.core.extras import StoreUpdate, check_store_update
from orion_store.core.http import (
    Endpoint,
    cache_bust,
    fetch_json_with_fallback,
)
from orion_store.core.preferences import Preferences
from orion_store.core.store import KeyValueStore
from orion_store.domain.release import build_release_index, resolve_app
from orion_store.domain.types import AppEntry, Platform, Variant, wire_keys
from orion_store.exceptions import CatalogError, DataMalformedError, FetchError
from orion_store.logger import get_logger

logger = get_logger(__name__)

BUNDLED_SOURCE = "bundled"
_NON_ID_CHARS = str.maketrans({c: "-" for c in " /\\"})


def sanitize_url(url: Any) -> str:
    """Return the URL, or "#" when it is empty or a ``javascript:`` URL."""
    text = str(url or "")
    if not text or text.strip().lower().startswith("javascript:"):
        return UNSAFE_URL_PLACEHOLDER
    return text


def _optional_str(value: Any) -> str | None:
    return str(value) if value else None


def _sanitize_variants(raw: Any) -> tuple[Variant, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(
        Variant(arch=str(item.get("arch") or ""), url=sanitize_url(item.get("url")))
        for item in raw
        if isinstance(item, dict)
    )


def sanitize_app(raw: Any) -> AppEntry | None:
    """Coerce a raw catalog item into an AppEntry.

    Missing fields get defaults, URLs go through ``sanitize_url`` and
    unknown keys are kept in ``extra``. Entries without an id get one
    derived from their name.

    Args:
        raw: One item of the catalog array

    Returns:
        AppEntry, or None for items that are not JSON objects

    """
    if not isinstance(raw, dict):
        return None

    name = str(raw.get("name") or DEFAULT_APP_NAME)
    app_id = str(raw.get("id") or name.lower().translate(_NON_ID_CHARS))
    screenshots = raw.get("screenshots")
    known = wire_keys()
    return AppEntry(
        id=app_id,
        name=name,
        description=str(raw.get("description") or ""),
        author=str(raw.get("author") or DEFAULT_AUTHOR),
        category=str(raw.get("category") or DEFAULT_CATEGORY),
        platform=Platform.parse(raw.get("platform")),
        icon=sanitize_url(raw.get("icon")),
        version=str(raw.get("version") or VERSION_PLACEHOLDER),
        latest_version=str(raw.get("latestVersion") or VERSION_PLACEHOLDER),
        download_url=sanitize_url(raw.get("downloadUrl")),
        screenshots=tuple(sanitize_url(s) for s in screenshots)
        if isinstance(screenshots, list)
        else (),
        github_repo=_optional_str(raw.get("githubRepo")),
        repo_url=_optional_str(raw.get("repoUrl")),
        release_keyword=_optional_str(raw.get("releaseKeyword")),
        package_name=_optional_str(raw.get("packageName")),
        variants=_sanitize_variants(raw.get("variants")),
        size=_optional_str(raw.get("size")),
        extra={k: v for k, v in raw.items() if k not in known},
    )


def sanitize_catalog(raw_items: Iterable[Any]) -> list[AppEntry]:
    """Sanitize every item, dropping the ones that are not objects."""
    apps = [sanitize_app(item) for item in raw_items]
    return [app for app in apps if app is not None]


def load_bundled_json(path: Path) -> Any:
    """Read a JSON file shipped with the package.

    Raises:
        DataMalformedError: If the file is missing or not valid JSON

    """
    try:
        return orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        raise DataMalformedError(str(e), str(path)) from e


def load_bundled_catalog(path: Path | None = None) -> list[AppEntry]:
    raw = load_bundled_json(path or Paths.BUNDLED_APPS_FILE)
    return sanitize_catalog(raw if isinstance(raw, list) else [])


def load_cached_catalog(
    store: KeyValueStore, bundled_path: Path | None = None
) -> list[AppEntry]:
    """Return the cached resolved catalog, or the bundled one.

    The cache is used only when it was written under the current
    CACHE_VERSION and holds at least one entry.
    """
    if store.get(StoreKeys.CACHE_VERSION) == CACHE_VERSION:
        cached = store.get(StoreKeys.CACHED_APPS)
        if isinstance(cached, list) and cached:
            apps = sanitize_catalog(cached)
            if apps:
                return apps
    logger.debug("No usable catalog cache, using bundled catalog")
    return load_bundled_catalog(bundled_path)


@dataclass(frozen=True)
class CatalogEndpoints:
    config_primary: str
    config_fallback: str
    apps_primary: str
    apps_fallback: str
    mirror: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "CatalogEndpoints":
        endpoints = settings["endpoints"]
        return cls(
            config_primary=endpoints["config_primary"],
            config_fallback=endpoints["config_fallback"],
            apps_primary=endpoints["apps_primary"],
            apps_fallback=endpoints["apps_fallback"],
            mirror=endpoints["mirror"],
        )


@dataclass(frozen=True)
class ReconcileResult:
    apps: list[AppEntry]
    imported: list[AppEntry]
    mirror_source: str
    apps_source: str
    config: dict[str, Any] | None = None
    store_update: StoreUpdate | None = None
    errors: list[str] = field(default_factory=list)


class CatalogReconciler:
    """Produces the resolved catalog from remote or bundled sources."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        store: KeyValueStore,
        *,
        settings: Settings | None = None,
        token_store: TokenStore | None = None,
        validator: PayloadValidator | None = None,
        existing: list[AppEntry] | None = None,
        bundled_apps_path: Path | None = None,
        bundled_mirror_path: Path | None = None,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            session: HTTP session used for every fetch
            store: Key-value store holding caches and imported entries
            settings: Loaded settings (built-in defaults when None)
            token_store: Optional GitHub token source for auth headers
            validator: Payload validator (shared instance when None)
            existing: Catalog already on screen; kept if a pass fails
            bundled_apps_path: Override for the bundled catalog file
            bundled_mirror_path: Override for the bundled mirror file
            clock_ms: Epoch-milliseconds clock for cache busting

        """
        self.session = session
        self.store = store
        self.settings = settings or default_settings()
        self.endpoints = CatalogEndpoints.from_settings(self.settings)
        self.token_store = token_store
        self.validator = validator or get_validator()
        self.preferences = Preferences(store)
        self.apps: list[AppEntry] = list(existing or [])
        self.bundled_apps_path = bundled_apps_path or Paths.BUNDLED_APPS_FILE
        self.bundled_mirror_path = (
            bundled_mirror_path or Paths.BUNDLED_MIRROR_FILE
        )
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))

    def _headers_for(self, url: str) -> dict[str, str]:
        if self.token_store is None:
            return {}
        return self.token_store.apply_auth(url)

    async def _fetch(
        self, endpoints: list[Endpoint], validate: Callable[[Any, str], None]
    ) -> tuple[Any, str]:
        network = self.settings["network"]
        # retry_attempts caps the built-in per-endpoint counts
        cap = network["retry_attempts"]
        return await fetch_json_with_fallback(
            self.session,
            [replace(e, retries=min(e.retries, cap)) for e in endpoints],
            backoff_ms=network["backoff_ms"],
            timeout_ms=int(network["timeout_seconds"] * 1000),
            headers_for=self._headers_for,
            validate=validate,
        )

    async def load_remote_config(self) -> dict[str, Any] | None:
        """Fetch the store config: primary, then CDN, then nothing.

        Both URLs are always cache-busted.
        """
        now_ms = self._clock_ms()
        try:
            config, url = await self._fetch(
                [
                    Endpoint(
                        cache_bust(self.endpoints.config_primary, now_ms),
                        CONFIG_PRIMARY_RETRIES,
                    ),
                    Endpoint(
                        cache_bust(self.endpoints.config_fallback, now_ms),
                        CONFIG_FALLBACK_RETRIES,
                    ),
                ],
                self.validator.validate_config,
            )
        except (FetchError, DataMalformedError) as e:
            logger.warning("Remote config unavailable: %s", e)
            return None
        logger.debug("Loaded remote config from %s", url)
        return config

    async def load_catalog(
        self, apps_url: str, now_ms: int | None
    ) -> tuple[list[Any], str]:
        """Fetch the raw catalog: primary/override, CDN, then bundled."""

        def bust(url: str) -> str:
            return cache_bust(url, now_ms) if now_ms is not None else url

        try:
            raw, url = await self._fetch(
                [
                    Endpoint(bust(apps_url), APPS_PRIMARY_RETRIES),
                    Endpoint(
                        bust(self.endpoints.apps_fallback),
                        APPS_FALLBACK_RETRIES,
                    ),
                ],
                self.validator.validate_catalog,
            )
        except (FetchError, DataMalformedError) as e:
            logger.warning("Remote catalog unavailable, using bundled: %s", e)
            return self._bundled_raw_catalog(), BUNDLED_SOURCE
        return raw, url

    def _bundled_raw_catalog(self) -> list[Any]:
        try:
            raw = load_bundled_json(self.bundled_apps_path)
        except DataMalformedError:
            logger.exception("Bundled catalog unreadable")
            return []
        return raw if isinstance(raw, list) else []

    async def load_mirror(
        self, mirror_url: str, now_ms: int | None
    ) -> tuple[dict[str, Any] | None, str]:
        """Fetch the release mirror: remote, then bundled, then none."""
        url = cache_bust(mirror_url, now_ms) if now_ms is not None else mirror_url
        try:
            mirror, _ = await self._fetch(
                [Endpoint(url, MIRROR_RETRIES)], self.validator.validate_mirror
            )
        except (FetchError, DataMalformedError) as e:
            logger.info("Remote mirror unavailable: %s", e)
        else:
            return mirror, MIRROR_SOURCE_REMOTE

        try:
            mirror = load_bundled_json(self.bundled_mirror_path)
            self.validator.validate_mirror(mirror, str(self.bundled_mirror_path))
        except DataMalformedError as e:
            logger.warning("Bundled mirror unavailable: %s", e)
            return None, MIRROR_SOURCE_UNAVAILABLE
        return mirror, MIRROR_SOURCE_LOCAL

    def _imported_raw(self) -> list[Any]:
        imported = self.store.get(StoreKeys.IMPORTED_APPS)
        return imported if isinstance(imported, list) else []

    async def reconcile(self, *, manual_refresh: bool = False) -> ReconcileResult:
        """Run one reconciliation pass.

        Network problems only move each chain to its next source. An
        unexpected failure while sanitizing or resolving keeps the existing
        catalog when there is one.

        Args:
            manual_refresh: Cache-bust catalog and mirror URLs too

        Returns:
            ReconcileResult with the resolved catalog

        Raises:
            CatalogError: If processing fails and there is no existing
                catalog to keep

        """
        config: dict[str, Any] | None = None
        mirror: dict[str, Any] | None = None
        if self.preferences.use_remote_json:
            config = await self.load_remote_config()
            overrides = config or {}
            apps_url = (
                overrides.get("appsJsonUrl") or self.endpoints.apps_primary
            )
            mirror_url = (
                overrides.get("mirrorJsonUrl") or self.endpoints.mirror
            )
            now_ms = self._clock_ms() if manual_refresh else None
            raw_apps, apps_source = await self.load_catalog(apps_url, now_ms)
            mirror, mirror_source = await self.load_mirror(mirror_url, now_ms)
        else:
            raw_apps, apps_source = self._bundled_raw_catalog(), BUNDLED_SOURCE
            mirror_source = MIRROR_SOURCE_DISABLED

        try:
            index = build_release_index(mirror)
            apps = [
                resolve_app(app, index) for app in sanitize_catalog(raw_apps)
            ]
            imported = [
                resolve_app(app, index)
                for app in sanitize_catalog(self._imported_raw())
            ]
        except Exception as e:  # noqa: BLE001
            if not self.apps:
                raise CatalogError(str(e)) from e
            logger.exception(
                "Catalog processing failed, keeping existing catalog"
            )
            return ReconcileResult(
                apps=list(self.apps),
                imported=sanitize_catalog(self._imported_raw()),
                mirror_source=mirror_source,
                apps_source=apps_source,
                config=config,
                store_update=check_store_update(config),
                errors=[str(e)],
            )

        self.apps = apps
        self.store.set(StoreKeys.CACHED_APPS, [app.to_dict() for app in apps])
        self.store.set(StoreKeys.CACHE_VERSION, CACHE_VERSION)
        self.store.set(
            StoreKeys.IMPORTED_APPS, [app.to_dict() for app in imported]
        )
        logger.info(
            "Resolved %s apps (%s imported, mirror: %s)",
            len(apps),
            len(imported),
            mirror_source,
        )
        return ReconcileResult(
            apps=apps,
            imported=imported,
            mirror_source=mirror_source,
            apps_source=apps_source,
            config=config,
            store_update=check_store_update(config),
        )
