"""Tests for DownloadManager lifecycle effects."""

import asyncio

import pytest

from orion_store.config.settings import default_settings
from orion_store.constants import CHANNEL_CLEANUP, StoreKeys
from orion_store.core.downloads import (
    DownloadManager,
    DownloadOutcome,
    InstallOutcome,
    package_file_name,
)
from orion_store.core.native import AppInfo
from orion_store.core.registry import InstalledVersionRegistry
from orion_store.domain.lifecycle import Active, Ready
from orion_store.domain.types import DownloadProgress, DownloadStatus, Platform

from tests.core.conftest import make_app

FILE_NAME = "App_App_2.0.0.apk"


@pytest.fixture
def manager(store, native, notifier):
    return DownloadManager(store, native, notifier=notifier, auto_poll=False)


def _with_ready(store, app_id="app", file_name=FILE_NAME):
    store.set(StoreKeys.READY_TO_INSTALL, {app_id: file_name})


class TestDownload:
    """Test starting downloads."""

    @pytest.mark.asyncio
    async def test_starts_native_download(self, manager, native, store):
        """A fresh download is tracked and persisted as Active."""
        app = make_app()

        outcome = await manager.download(app)

        assert outcome is DownloadOutcome.STARTED
        assert native.called("download_file") == [
            ("https://github.com/o/app/u.apk", FILE_NAME)
        ]
        assert manager.state.get("app") == Active("101", FILE_NAME)
        assert store.get(StoreKeys.ACTIVE_DOWNLOADS) == {
            "app": f"101|{FILE_NAME}"
        }

    @pytest.mark.asyncio
    async def test_new_download_keeps_pending_cleanup(self, store, native):
        """Updating again does not forget the old package awaiting deletion."""
        store.set(StoreKeys.PENDING_CLEANUP, {"app": "App_App_1.0.0.apk"})
        manager = DownloadManager(store, native, auto_poll=False)

        await manager.download(make_app())

        assert manager.state.is_active("app")
        assert store.get(StoreKeys.PENDING_CLEANUP) == {
            "app": "App_App_1.0.0.apk"
        }

        assert await manager.cleanup("app") is True
        assert native.called("delete_file") == ["App_App_1.0.0.apk"]
        assert manager.state.is_active("app")

    def test_package_file_name(self):
        """Non-alphanumeric characters in the name become underscores."""
        app = make_app(name="My Cool-App!", latest_version="1.2")
        assert package_file_name(app) == "My_Cool_App__1.2.apk"

    @pytest.mark.asyncio
    async def test_ready_file_is_installed(self, store, native, notifier):
        """A Ready package is installed instead of downloaded again."""
        _with_ready(store)
        manager = DownloadManager(
            store, native, notifier=notifier, auto_poll=False
        )

        outcome = await manager.download(make_app())

        assert outcome is DownloadOutcome.INSTALLING
        assert native.called("install_package") == [FILE_NAME]
        assert native.called("download_file") == []

    @pytest.mark.asyncio
    async def test_already_active(self, manager, native):
        """A second request while downloading is a no-op."""
        app = make_app()
        await manager.download(app)

        outcome = await manager.download(app)

        assert outcome is DownloadOutcome.ALREADY_ACTIVE
        assert len(native.called("download_file")) == 1

    @pytest.mark.asyncio
    async def test_no_url(self, manager):
        """Entries without a usable URL are not downloaded."""
        app = make_app(download_url="#", variants=())
        assert await manager.download(app) is DownloadOutcome.NO_URL

    @pytest.mark.asyncio
    async def test_wifi_only_blocks(self, manager, native, notifier):
        """WiFi-only mode blocks downloads on other networks."""
        manager.preferences.wifi_only = True
        native.wifi = False

        outcome = await manager.download(make_app())

        assert outcome is DownloadOutcome.WIFI_BLOCKED
        assert "Download blocked: WiFi Only mode." in notifier.bodies
        assert native.called("download_file") == []

    @pytest.mark.asyncio
    async def test_without_native_registers_version(self, store, notifier):
        """Without native support the latest version is registered."""
        manager = DownloadManager(store, None, notifier=notifier)

        outcome = await manager.download(make_app())

        assert outcome is DownloadOutcome.FALLBACK
        assert InstalledVersionRegistry(store).get("app") == "2.0.0"

    @pytest.mark.asyncio
    async def test_pc_entries_open_externally(self, manager, native):
        """PC and TV entries are never downloaded natively."""
        app = make_app(
            platform=Platform.PC,
            variants=(),
            download_url="https://example.com/setup.exe",
        )

        assert await manager.download(app) is DownloadOutcome.EXTERNAL
        assert native.called("download_file") == []

    @pytest.mark.asyncio
    async def test_insufficient_storage(self, manager, native, notifier):
        """A full device is reported and nothing is tracked."""
        native.failures["download_file"] = RuntimeError("INSUFFICIENT_STORAGE")

        outcome = await manager.download(make_app())

        assert outcome is DownloadOutcome.FAILED
        assert "Not enough space on device!" in notifier.bodies
        assert not manager.state.is_active("app")

    @pytest.mark.asyncio
    async def test_other_native_error_falls_back(self, manager, native):
        """Other native failures leave the URL to the caller."""
        native.failures["download_file"] = RuntimeError("boom")
        assert await manager.download(make_app()) is DownloadOutcome.FALLBACK


class TestPolling:
    """Test progress polling."""

    @pytest.mark.asyncio
    async def test_success_becomes_ready(self, manager, native, notifier):
        """A finished download is Ready and announced."""
        await manager.download(make_app())
        native.progress["101"] = DownloadProgress(DownloadStatus.SUCCESSFUL, 100)

        await manager.poll_once()

        assert manager.state.get("app") == Ready(FILE_NAME)
        completed = notifier.sent[-1]
        assert completed["title"] == "Download Complete"
        assert completed["body"] == "App App is ready to install."
        assert completed["extra"]["appId"] == "app"
        assert completed["extra"]["fileName"] == FILE_NAME

    @pytest.mark.asyncio
    async def test_progress_is_recorded(self, manager, native):
        """Running downloads expose their progress."""
        await manager.download(make_app())
        native.progress["101"] = DownloadProgress(DownloadStatus.RUNNING, 40)

        await manager.poll_once()

        assert manager.progress("app").progress == 40
        assert manager.state.get("app").progress == 40

    @pytest.mark.asyncio
    async def test_poll_error_clears_active(self, manager, native, notifier):
        """A polling exception is treated as a failed download."""
        await manager.download(make_app())
        native.progress["101"] = RuntimeError("no such download")

        await manager.poll_once()

        assert not manager.state.is_active("app")
        assert notifier.sent[-1]["title"] == "Download Failed"
        assert manager.progress("app") is None

    @pytest.mark.asyncio
    async def test_run_polling_stops_when_idle(
        self, manager, native, mock_asyncio_sleep
    ):
        """The polling loop exits once nothing is active."""
        await manager.download(make_app())
        native.progress["101"] = DownloadProgress(DownloadStatus.FAILED)

        await manager.run_polling()

        assert manager.state.active_ids() == []
        assert mock_asyncio_sleep == [manager.poll_interval]

    @pytest.mark.asyncio
    async def test_poll_interval_from_settings(
        self, store, native, notifier, mock_asyncio_sleep
    ):
        """poll_interval_ms from the settings paces the polling loop."""
        settings = default_settings()
        settings["updates"]["poll_interval_ms"] = 250
        manager = DownloadManager.from_settings(
            store, settings, native, notifier=notifier, auto_poll=False
        )
        await manager.download(make_app())
        native.progress["101"] = DownloadProgress(DownloadStatus.FAILED)

        await manager.run_polling()

        assert manager.poll_interval == 0.25
        assert mock_asyncio_sleep == [0.25]

    @pytest.mark.asyncio
    async def test_background_polling(self, store, native, notifier):
        """With auto-poll on, a started download is polled to completion."""
        manager = DownloadManager(
            store, native, notifier=notifier, poll_interval=0.001
        )
        native.progress["101"] = DownloadProgress(DownloadStatus.SUCCESSFUL, 100)

        await manager.download(make_app())
        for _ in range(100):
            if manager.state.ready_file("app"):
                break
            await asyncio.sleep(0.001)
        await manager.close()

        assert manager.state.ready_file("app") == FILE_NAME

    @pytest.mark.asyncio
    async def test_recover_stale_downloads(self, store, native, notifier):
        """Persisted downloads are settled at startup without notifying."""
        store.set(
            StoreKeys.ACTIVE_DOWNLOADS, {"done": "1|done.apk", "gone": "2|g.apk"}
        )
        native.progress["1"] = DownloadProgress(DownloadStatus.SUCCESSFUL, 100)
        native.progress["2"] = DownloadProgress(DownloadStatus.FAILED)
        manager = DownloadManager(
            store, native, notifier=notifier, auto_poll=False
        )

        await manager.recover_stale_downloads()

        assert manager.state.get("done") == Ready("done.apk")
        assert not manager.state.is_active("gone")
        assert notifier.sent == []
        assert store.get(StoreKeys.READY_TO_INSTALL) == {"done": "done.apk"}


class TestInstall:
    """Test handing packages to the installer."""

    @pytest.fixture
    def ready_manager(self, store, native, notifier):
        _with_ready(store)
        return DownloadManager(store, native, notifier=notifier, auto_poll=False)

    @pytest.mark.asyncio
    async def test_handed_off_stays_ready(self, ready_manager):
        """A successful install call waits for package confirmation."""
        outcome = await ready_manager.install(make_app())

        assert outcome is InstallOutcome.HANDED_OFF
        assert ready_manager.state.get("app") == Ready(FILE_NAME)

    @pytest.mark.asyncio
    async def test_corrupted_file_is_deleted(self, ready_manager, native):
        """A corrupted package is deleted and Ready is cleared."""
        native.failures["install_package"] = RuntimeError("PARSE_ERROR")

        outcome = await ready_manager.install(make_app())

        assert outcome is InstallOutcome.CORRUPTED
        assert native.called("delete_file") == [FILE_NAME]
        assert ready_manager.state.ready_file("app") is None

    @pytest.mark.asyncio
    async def test_permission_retry_on_resume(
        self, ready_manager, native, mock_asyncio_sleep
    ):
        """A permission prompt is retried once when the app resumes."""
        native.failures["install_package"] = RuntimeError(
            "INSTALL_PERMISSION_REQUIRED"
        )
        app = make_app()

        outcome = await ready_manager.install(app)
        assert outcome is InstallOutcome.PERMISSION_REQUIRED
        assert ready_manager.pending_retry.file_name == FILE_NAME

        del native.failures["install_package"]
        retried = await ready_manager.on_resume([app])

        assert retried is InstallOutcome.HANDED_OFF
        assert ready_manager.pending_retry is None
        assert len(native.called("install_package")) == 2
        assert mock_asyncio_sleep == [0.5]

    @pytest.mark.asyncio
    async def test_dismissed_installer_is_silent(
        self, ready_manager, native, notifier
    ):
        """Leaving the installer screen is not reported."""
        native.failures["install_package"] = RuntimeError("Activity not found")

        outcome = await ready_manager.install(make_app())

        assert outcome is InstallOutcome.SILENT
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_generic_failure(self, ready_manager, native, notifier):
        """Other failures notify and keep the package Ready."""
        native.failures["install_package"] = RuntimeError("weird")

        outcome = await ready_manager.install(make_app())

        assert outcome is InstallOutcome.FAILED
        assert "Installation failed." in notifier.bodies
        assert ready_manager.state.get("app") == Ready(FILE_NAME)

    @pytest.mark.asyncio
    async def test_nothing_ready(self, manager, native):
        """Installing without a Ready file does nothing."""
        assert await manager.install(make_app()) is InstallOutcome.NOTHING_READY
        assert native.called("install_package") == []


class TestCancelAndDelete:
    """Test cancelling downloads and deleting packages."""

    @pytest.mark.asyncio
    async def test_cancel_clears_even_if_native_fails(self, manager, native):
        """Local state is cleared when the native cancel raises."""
        await manager.download(make_app())
        native.failures["cancel_download"] = RuntimeError("unknown id")

        await manager.cancel("app")

        assert native.called("cancel_download") == ["101"]
        assert not manager.state.is_active("app")

    @pytest.mark.asyncio
    async def test_cancel_with_composite(self, manager, native):
        """A composite id names the native download to cancel."""
        await manager.download(make_app())

        await manager.cancel("app", f"101|{FILE_NAME}")

        assert native.called("cancel_download") == ["101"]

    @pytest.mark.asyncio
    async def test_delete_ready_without_entry_is_noop(self, manager, native):
        """Deleting when nothing is Ready does not touch the filesystem."""
        assert await manager.delete_ready("app") is False
        assert native.called("delete_file") == []

    @pytest.mark.asyncio
    async def test_delete_ready_failure_keeps_entry(
        self, store, native, notifier
    ):
        """A failed delete keeps the Ready entry."""
        _with_ready(store)
        manager = DownloadManager(
            store, native, notifier=notifier, auto_poll=False
        )
        native.failures["delete_file"] = OSError("busy")

        assert await manager.delete_ready("app") is False
        assert manager.state.ready_file("app") == FILE_NAME


class TestSyncInstalled:
    """Test package inspection sync."""

    @pytest.mark.asyncio
    async def test_confirms_install_and_queues_cleanup(
        self, store, native, notifier
    ):
        """A caught-up install leaves Ready for cleanup when enabled."""
        _with_ready(store)
        manager = DownloadManager(
            store, native, notifier=notifier, auto_poll=False
        )
        manager.preferences.delete_apk = True
        native.installed["com.example.app"] = AppInfo(True, "2.0.0")

        await manager.sync_installed([make_app()])

        assert manager.state.ready_file("app") is None
        assert manager.state.cleanup_file("app") == FILE_NAME
        assert store.get(StoreKeys.PENDING_CLEANUP) == {"app": FILE_NAME}
        assert manager.registry.get("app") == "2.0.0"
        assert notifier.sent[-1]["channel"] == CHANNEL_CLEANUP

    @pytest.mark.asyncio
    async def test_confirms_without_cleanup(self, store, native, notifier):
        """With cleanup off the entry goes straight to Idle."""
        _with_ready(store)
        manager = DownloadManager(
            store, native, notifier=notifier, auto_poll=False
        )
        native.installed["com.example.app"] = AppInfo(True, "2.1.0")

        await manager.sync_installed([make_app()])

        assert manager.state.ready_file("app") is None
        assert manager.state.cleanup_file("app") is None
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_older_install_keeps_ready(self, store, native, notifier):
        """An install that has not caught up keeps the package Ready."""
        _with_ready(store)
        manager = DownloadManager(
            store, native, notifier=notifier, auto_poll=False
        )
        native.installed["com.example.app"] = AppInfo(True, "1.9.0")

        await manager.sync_installed([make_app()])

        assert manager.state.ready_file("app") == FILE_NAME
        assert manager.registry.get("app") == "1.9.0"

    @pytest.mark.asyncio
    async def test_uninstalled_apps_leave_registry(self, manager):
        """Apps reported absent are removed from the registry."""
        manager.registry.set("app", "1.0")
        manager.registry.set("other", "3.0")

        await manager.sync_installed([make_app()])

        assert manager.registry.all() == {"other": "3.0"}

    @pytest.mark.asyncio
    async def test_unknown_version_uses_sentinel(self, manager, native):
        """Installed apps without a readable version are marked Installed."""
        native.installed["com.example.app"] = AppInfo(True, None)

        await manager.sync_installed([make_app()])

        assert manager.registry.get("app") == "Installed"


class TestNotificationsAndRedownload:
    """Test notification taps and redownloads."""

    def test_restore_ready_ignored_during_cleanup(self, store, native):
        """A tap does not resurrect a file pending cleanup."""
        store.set(StoreKeys.PENDING_CLEANUP, {"app": FILE_NAME})
        manager = DownloadManager(store, native, auto_poll=False)

        manager.restore_ready_from_notification("app", FILE_NAME)

        assert manager.state.ready_file("app") is None
        assert manager.state.cleanup_file("app") == FILE_NAME

    def test_restore_ready(self, manager):
        """A tap on a completion notification marks the file Ready."""
        manager.restore_ready_from_notification("app", FILE_NAME)
        assert manager.state.ready_file("app") == FILE_NAME

    @pytest.mark.asyncio
    async def test_redownload_without_link(self, manager, notifier):
        """A placeholder URL cannot be redownloaded."""
        app = make_app(download_url="#")

        outcome = await manager.redownload(app, "#")

        assert outcome is DownloadOutcome.NO_URL
        assert "Download link not found" in notifier.bodies

    @pytest.mark.asyncio
    async def test_redownload_forgets_version(
        self, manager, native, mock_asyncio_sleep
    ):
        """Redownloading drops the registry entry, then downloads."""
        manager.registry.set("app", "2.0.0")

        outcome = await manager.redownload(make_app())

        assert outcome is DownloadOutcome.STARTED
        assert manager.registry.get("app") is None
        assert mock_asyncio_sleep == [1.0]

    @pytest.mark.asyncio
    async def test_cleanup_deletes_file(self, store, native):
        """Cleanup deletes the package and clears the entry."""
        store.set(StoreKeys.PENDING_CLEANUP, {"app": FILE_NAME})
        manager = DownloadManager(store, native, auto_poll=False)

        assert await manager.cleanup("app") is True
        assert native.called("delete_file") == [FILE_NAME]
        assert store.get(StoreKeys.PENDING_CLEANUP) == {}


class TestPermissions:
    """Test the platform permission request."""

    @pytest.mark.asyncio
    async def test_request_permissions(self, manager, native):
        """The bridge is asked once and its statuses are returned."""
        assert await manager.request_permissions() == {"storage": "granted"}
        assert native.called("request_permissions") == [None]

    @pytest.mark.asyncio
    async def test_refused_request_is_logged(self, manager, native, caplog):
        """A failing request returns no statuses and does not raise."""
        native.failures["request_permissions"] = RuntimeError("denied")

        assert await manager.request_permissions() == {}
        assert "Permission request failed: denied" in caplog.text

    @pytest.mark.asyncio
    async def test_without_native(self, store):
        manager = DownloadManager(store, None, auto_poll=False)
        assert await manager.request_permissions() == {}
