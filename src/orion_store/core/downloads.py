"""Download lifecycle effects: native calls, persistence and polling.

``DownloadManager`` owns the current ``LifecycleState``. Every change goes
through a pure transition from ``orion_store.domain.lifecycle``, is
persisted through ``LifecycleStore`` and then fans out as notifications.
A single background polling task runs while at least one download is
active; each tick polls whatever is active at that moment.
"""

import asyncio
import contextlib
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from orion_store.config.settings import Settings
from orion_store.constants import (
    CHANNEL_CLEANUP,
    CHANNEL_UPDATES,
    INSTALL_RETRY_SETTLE_SECONDS,
    PACKAGE_EXTENSION,
    POLL_INTERVAL_SECONDS,
    REDOWNLOAD_SETTLE_SECONDS,
    UNSAFE_URL_PLACEHOLDER,
    VERSION_INSTALLED_UNKNOWN,
)
from orion_store.core.catalog import sanitize_url
from orion_store.core.extras import announcement_hash
from orion_store.core.native import AppInfo, NativeBridge
from orion_store.core.notify import LoggingNotifier, Notifier
from orion_store.core.preferences import Preferences
from orion_store.core.registry import InstalledVersionRegistry
from orion_store.core.store import KeyValueStore, LifecycleStore
from orion_store.domain import lifecycle
from orion_store.domain.lifecycle import (
    Active,
    DownloadCompleted,
    DownloadFailed,
    LifecycleState,
    Transition,
)
from orion_store.domain.types import AppEntry, DownloadProgress, Platform
from orion_store.domain.version import compare_versions
from orion_store.exceptions import (
    CorruptedFileError,
    InsufficientStorageError,
    PermissionRequiredError,
    classify_native_error,
)
from orion_store.logger import get_logger

logger = get_logger(__name__)

_UNSAFE_FILE_CHARS_RE = re.compile(r"[^a-zA-Z0-9]")
_DIRECT_FILE_SUFFIXES = (PACKAGE_EXTENSION, ".exe", ".zip")
# Installer rejections mentioning this come from the user leaving the
# installer screen; they are not reported.
_SILENT_INSTALL_MARKER = "Activity"


class DownloadOutcome(Enum):
    """Result of a download request."""

    STARTED = "started"
    INSTALLING = "installing"
    ALREADY_ACTIVE = "already_active"
    NO_URL = "no_url"
    WIFI_BLOCKED = "wifi_blocked"
    EXTERNAL = "external"
    FALLBACK = "fallback"
    FAILED = "failed"


class InstallOutcome(Enum):
    """Result of handing a package file to the OS installer."""

    HANDED_OFF = "handed_off"
    NOTHING_READY = "nothing_ready"
    CORRUPTED = "corrupted"
    PERMISSION_REQUIRED = "permission_required"
    SILENT = "silent"
    FAILED = "failed"


@dataclass(frozen=True)
class PendingInstallRetry:
    app: AppEntry
    file_name: str


def package_file_name(app: AppEntry) -> str:
    """File name used for an app's download: ``<Name>_<version>.apk``."""
    safe_name = _UNSAFE_FILE_CHARS_RE.sub("_", app.name)
    return f"{safe_name}_{app.latest_version}{PACKAGE_EXTENSION}"


def _target_url(app: AppEntry, url: str | None) -> str | None:
    target = url or (app.variants[0].url if app.variants else None)
    target = target or app.download_url
    if not target or target == UNSAFE_URL_PLACEHOLDER:
        return None
    return target


class DownloadManager:
    """Drives per-app downloads through the lifecycle state machine."""

    def __init__(
        self,
        store: KeyValueStore,
        native: NativeBridge | None = None,
        *,
        notifier: Notifier | None = None,
        registry: InstalledVersionRegistry | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        auto_poll: bool = True,
    ) -> None:
        """Initialize the manager from persisted lifecycle maps.

        Args:
            store: Key-value store for lifecycle maps and preferences
            native: Native bridge; None means no native download support
            notifier: Notification sink (logs by default)
            registry: Installed-version registry (built on ``store``)
            poll_interval: Seconds between progress polls
            auto_poll: Start the polling task automatically on changes

        """
        self.native = native
        self.notifier = notifier or LoggingNotifier()
        self.registry = registry or InstalledVersionRegistry(store)
        self.preferences = Preferences(store)
        self.poll_interval = poll_interval
        self.auto_poll = auto_poll
        self.pending_retry: PendingInstallRetry | None = None

        self._lifecycle = LifecycleStore(store)
        self.state: LifecycleState = self._lifecycle.load()
        self._apps: dict[str, AppEntry] = {}
        self._progress: dict[str, DownloadProgress] = {}
        self._poll_task: asyncio.Task | None = None

    @classmethod
    def from_settings(
        cls,
        store: KeyValueStore,
        settings: Settings,
        native: NativeBridge | None = None,
        **kwargs: Any,
    ) -> "DownloadManager":
        """Build a manager polling at the configured ``poll_interval_ms``."""
        interval = settings["updates"]["poll_interval_ms"] / 1000
        return cls(store, native, poll_interval=interval, **kwargs)

    # ------------------------------------------------------------------
    # State plumbing
    # ------------------------------------------------------------------

    def track_apps(self, apps: Iterable[AppEntry]) -> None:
        """Remember catalog entries so notifications can name them."""
        self._apps.update({app.id: app for app in apps})

    def progress(self, app_id: str) -> DownloadProgress | None:
        return self._progress.get(app_id)

    def _app_name(self, app_id: str) -> str:
        app = self._apps.get(app_id)
        return app.name if app else app_id

    def _apply(self, transition: Transition, *, notify: bool = True) -> None:
        if transition.state is self.state and not transition.events:
            return
        self.state = transition.state
        self._lifecycle.save(self.state)

        for app_id in list(self._progress):
            if not self.state.is_active(app_id):
                del self._progress[app_id]

        if notify:
            for event in transition.events:
                self._emit(event)
        self._sync_polling()

    def _emit(self, event: DownloadCompleted | DownloadFailed) -> None:
        name = self._app_name(event.app_id)
        if isinstance(event, DownloadCompleted):
            logger.info("%s downloaded: %s", name, event.file_name)
            self.notifier.notify(
                "Download Complete",
                f"{name} is ready to install.",
                channel=CHANNEL_UPDATES,
                extra={
                    "appId": event.app_id,
                    "fileName": event.file_name,
                    "notificationId": announcement_hash(event.app_id),
                },
            )
        else:
            logger.warning("Download failed for %s: %s", name, event.reason)
            self.notifier.notify(
                "Download Failed",
                f"{name}: Network Error",
                channel=CHANNEL_UPDATES,
                extra={"appId": event.app_id},
            )

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def _sync_polling(self) -> None:
        # One task polls whatever is active on each tick and exits when
        # nothing is left
        if not self.auto_poll or self.native is None:
            return
        if not self.state.active_ids():
            return
        if self._poll_task is not None and not self._poll_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; recover_stale_downloads starts polling later
            return
        self._poll_task = loop.create_task(self.run_polling())

    async def _poll_native(self) -> dict[str, DownloadProgress | Exception]:
        polls: dict[str, DownloadProgress | Exception] = {}
        if self.native is None:
            return polls
        for app_id in self.state.active_ids():
            entry = self.state.get(app_id)
            try:
                polls[app_id] = await self.native.get_download_progress(
                    entry.download_id
                )
            except Exception as e:  # noqa: BLE001
                polls[app_id] = e
        return polls

    def _current_polls(
        self,
        polls: dict[str, DownloadProgress | Exception],
        download_ids: dict[str, str],
    ) -> dict[str, DownloadProgress | Exception]:
        # Drop results for downloads that were replaced while polling
        current = {}
        for app_id, result in polls.items():
            entry = self.state.get(app_id)
            if isinstance(entry, Active) and (
                entry.download_id == download_ids.get(app_id)
            ):
                current[app_id] = result
        return current

    async def poll_once(self) -> Transition:
        """Poll every active download once and apply the results."""
        download_ids = {
            app_id: self.state.get(app_id).download_id
            for app_id in self.state.active_ids()
        }
        polls = self._current_polls(await self._poll_native(), download_ids)
        for app_id, result in polls.items():
            if isinstance(result, DownloadProgress):
                self._progress[app_id] = result
        transition = lifecycle.reconcile_tick(self.state, polls)
        self._apply(transition)
        return transition

    async def run_polling(self) -> None:
        """Poll at ``poll_interval`` until no download is active."""
        while self.state.active_ids():
            await asyncio.sleep(self.poll_interval)
            await self.poll_once()

    async def close(self) -> None:
        """Stop the polling task."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poll_task
            self._poll_task = None

    async def recover_stale_downloads(self) -> Transition:
        """Check persisted active downloads once at startup.

        Finished downloads become Ready and failed or unknown ones are
        dropped, without notifications. Downloads still running resume
        polling.
        """
        polls = await self._poll_native()
        transition = lifecycle.reconcile_tick(self.state, polls)
        self._apply(transition, notify=False)
        return transition

    async def request_permissions(self) -> dict[str, str]:
        """Ask the platform for the permissions downloads and cleanup need.

        Call at startup and whenever auto-update or delete-after-install
        is switched on. A refused or failed request is logged, not raised;
        the install path still reports a missing permission on its own.

        Returns:
            Permission -> status from the platform ({} without a bridge or
            when the request failed)

        """
        if self.native is None:
            return {}
        try:
            granted = await self.native.request_permissions()
        except Exception as e:  # noqa: BLE001
            logger.warning("Permission request failed: %s", e)
            return {}
        logger.debug("Permission status: %s", granted)
        return dict(granted)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def start(self, app_id: str, download_id: str, file_name: str) -> None:
        """Track a native download that has been started."""
        self._progress.pop(app_id, None)
        self._apply(lifecycle.start(self.state, app_id, download_id, file_name))
        logger.debug("Tracking download %s for %s", download_id, app_id)

    def _wifi_blocked(self) -> bool:
        if not self.preferences.wifi_only or self.native is None:
            return False
        return not self.native.is_wifi_connected()

    async def download(
        self, app: AppEntry, url: str | None = None
    ) -> DownloadOutcome:
        """Download (or install) an app.

        A ready package is installed instead of downloaded again, and an
        app that is already downloading is left alone. Without a native
        bridge the latest version is registered and the caller is expected
        to open the URL itself.

        Args:
            app: Catalog entry
            url: Specific variant URL (defaults to the preferred variant)

        Returns:
            DownloadOutcome

        """
        self.track_apps([app])
        if self.state.ready_file(app.id):
            await self.install(app)
            return DownloadOutcome.INSTALLING
        if self.state.is_active(app.id):
            return DownloadOutcome.ALREADY_ACTIVE

        target = _target_url(app, url)
        if target is None:
            return DownloadOutcome.NO_URL
        if self._wifi_blocked():
            self.notifier.notify(
                "Download blocked", "Download blocked: WiFi Only mode."
            )
            return DownloadOutcome.WIFI_BLOCKED

        safe_url = sanitize_url(target)
        is_direct_file = safe_url.lower().endswith(_DIRECT_FILE_SUFFIXES)
        if not is_direct_file and not app.is_android:
            return DownloadOutcome.EXTERNAL

        if self.native is None:
            self.registry.set(app.id, app.latest_version)
            return DownloadOutcome.FALLBACK
        if app.platform in (Platform.PC, Platform.TV):
            return DownloadOutcome.EXTERNAL

        file_name = package_file_name(app)
        try:
            download_id = await self.native.download_file(safe_url, file_name)
        except Exception as e:  # noqa: BLE001
            error = classify_native_error(e, app.id)
            if isinstance(error, InsufficientStorageError):
                logger.error("%s", error)
                self.notifier.notify("Download failed", "Not enough space on device!")
                return DownloadOutcome.FAILED
            logger.warning("Native download failed for %s: %s", app.id, error)
            return DownloadOutcome.FALLBACK

        if not download_id:
            logger.warning("Native download for %s returned no id", app.id)
            return DownloadOutcome.FAILED
        await self.start(app.id, str(download_id), file_name)
        return DownloadOutcome.STARTED

    async def redownload(
        self, app: AppEntry, url: str | None = None
    ) -> DownloadOutcome:
        """Forget the installed version and download again."""
        target = url or app.download_url
        if not target or target == UNSAFE_URL_PLACEHOLDER:
            self.notifier.notify("Redownload", "Download link not found")
            return DownloadOutcome.NO_URL
        self.registry.remove(app.id)
        await asyncio.sleep(REDOWNLOAD_SETTLE_SECONDS)
        return await self.download(app, target)

    async def install(
        self, app: AppEntry, file_name: str | None = None
    ) -> InstallOutcome:
        """Hand a downloaded package to the OS installer.

        A successful call only means the installer opened; the app stays
        Ready until ``sync_installed`` sees the new version.

        Args:
            app: Catalog entry
            file_name: Package file (defaults to the app's Ready file)

        Returns:
            InstallOutcome

        """
        file_name = file_name or self.state.ready_file(app.id)
        if not file_name or self.native is None:
            return InstallOutcome.NOTHING_READY

        self._apply(lifecycle.begin_install(self.state, app.id))
        try:
            await self.native.install_package(file_name)
        except Exception as e:  # noqa: BLE001
            error = classify_native_error(e, app.id)
        else:
            self._apply(lifecycle.finish_install(self.state, app.id))
            return InstallOutcome.HANDED_OFF

        self._apply(lifecycle.finish_install(self.state, app.id))
        if isinstance(error, CorruptedFileError):
            logger.error("%s", error)
            self.notifier.notify("Install failed", "File corrupted. Deleting...")
            await self.delete_ready(app.id, file_name)
            return InstallOutcome.CORRUPTED
        if isinstance(error, PermissionRequiredError):
            self.pending_retry = PendingInstallRetry(app, file_name)
            self.notifier.notify(
                "Permission required",
                "Please allow permission and return here",
            )
            return InstallOutcome.PERMISSION_REQUIRED
        if _SILENT_INSTALL_MARKER in error.message:
            logger.debug("Installer dismissed for %s: %s", app.id, error)
            return InstallOutcome.SILENT

        logger.error("%s", error)
        self.notifier.notify("Install failed", "Installation failed.")
        return InstallOutcome.FAILED

    async def cancel(self, app_id: str, composite: str | None = None) -> None:
        """Cancel a download; local tracking is cleared even if native fails."""
        entry = self.state.get(app_id)
        if composite:
            download_id, _ = lifecycle.split_composite(composite)
        elif isinstance(entry, Active):
            download_id = entry.download_id
        else:
            download_id = None

        try:
            if download_id and self.native is not None:
                await self.native.cancel_download(download_id)
        except Exception as e:  # noqa: BLE001
            logger.warning("Native cancel failed for %s: %s", app_id, e)
        finally:
            self._progress.pop(app_id, None)
            self._apply(lifecycle.cancel(self.state, app_id))

    async def delete_ready(
        self, app_id: str, file_name: str | None = None
    ) -> bool:
        """Delete a downloaded package; the Ready entry goes only on success.

        Returns:
            True if the file was deleted and the entry cleared

        """
        ready_file = self.state.ready_file(app_id)
        if ready_file is None:
            return False
        if self.native is None:
            return False
        try:
            await self.native.delete_file(file_name or ready_file)
        except Exception as e:  # noqa: BLE001
            logger.error("Failed to delete %s: %s", file_name or ready_file, e)
            return False
        self._apply(lifecycle.drop_ready(self.state, app_id))
        return True

    async def cleanup(self, app_id: str) -> bool:
        """Delete the package file of an installed app awaiting cleanup."""
        file_name = self.state.cleanup_file(app_id)
        if file_name is None or self.native is None:
            return False
        try:
            await self.native.delete_file(file_name)
        except Exception as e:  # noqa: BLE001
            logger.warning("Cleanup of %s failed: %s", file_name, e)
            return False
        self._apply(lifecycle.cleanup_done(self.state, app_id))
        return True

    def dismiss_cleanup(self, app_id: str) -> None:
        """Forget a pending cleanup without deleting the file."""
        self._apply(lifecycle.cleanup_done(self.state, app_id))

    def restore_ready_from_notification(
        self, app_id: str, file_name: str | None
    ) -> None:
        """Mark a file Ready when the user taps a completion notification."""
        if not file_name:
            return
        self._apply(lifecycle.restore_ready(self.state, app_id, file_name))

    async def _app_info(self, app: AppEntry) -> AppInfo | None:
        try:
            return await self.native.get_app_info(app.package_name)
        except Exception as e:  # noqa: BLE001
            logger.debug("Package inspection failed for %s: %s", app.id, e)
            return None

    async def sync_installed(
        self, apps: Iterable[AppEntry], delete_after_install: bool | None = None
    ) -> None:
        """Refresh the registry from package inspection.

        Apps reported absent are removed from the registry. An installed
        app whose version has caught up with the catalog leaves Ready, and
        its package file is queued for cleanup when that is enabled.

        Args:
            apps: Catalog entries (only those with a package name are checked)
            delete_after_install: Override for the delete-after-install
                preference

        """
        if self.native is None:
            return
        cleanup_enabled = (
            self.preferences.delete_apk
            if delete_after_install is None
            else delete_after_install
        )
        candidates = [app for app in apps if app.package_name]
        self.track_apps(candidates)
        results = await asyncio.gather(
            *(self._app_info(app) for app in candidates)
        )

        versions = self.registry.all()
        for app, info in zip(candidates, results, strict=True):
            if info is None:
                continue
            if not info.installed:
                versions.pop(app.id, None)
                continue
            versions[app.id] = info.version or VERSION_INSTALLED_UNKNOWN
            if compare_versions(info.version, app.latest_version) < 0:
                continue
            file_name = self.state.ready_file(app.id)
            if file_name is None:
                continue
            self._apply(
                lifecycle.confirm_installed(
                    self.state, app.id, cleanup_enabled=cleanup_enabled
                )
            )
            if cleanup_enabled:
                self.notifier.notify(
                    "Installed",
                    f"{app.name} installed. Delete the package file?",
                    channel=CHANNEL_CLEANUP,
                    extra={"appId": app.id, "fileName": file_name},
                )
        if versions != self.registry.all():
            self.registry.replace_all(versions)

    async def on_resume(self, apps: Iterable[AppEntry]) -> InstallOutcome | None:
        """Foreground hook: resync, then retry a permission-blocked install.

        The retry record is discarded after one attempt whatever the result.
        """
        apps = list(apps)
        await self.sync_installed(apps)
        retry = self.pending_retry
        if retry is None:
            return None
        await asyncio.sleep(INSTALL_RETRY_SETTLE_SECONDS)
        try:
            return await self.install(retry.app, retry.file_name)
        finally:
            self.pending_retry = None
