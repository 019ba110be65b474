"""Automatic update checks for installed apps."""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field

from orion_store.constants import (
    AUTO_UPDATE_DELAY_SECONDS,
    MAX_CONCURRENT_UPDATES,
    UPDATE_SETTLE_SECONDS,
)
from orion_store.core.downloads import DownloadManager, DownloadOutcome
from orion_store.domain.types import AppEntry
from orion_store.domain.version import compare_versions
from orion_store.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class UpdateRun:
    """What one scheduler pass did."""

    dispatched: dict[str, DownloadOutcome] = field(default_factory=dict)
    deferred: tuple[str, ...] = ()
    skipped_reason: str | None = None


class AutoUpdateScheduler:
    """Finds apps with newer catalog versions and downloads a few of them.

    An app is eligible when its installed version is known, it is not
    downloading and has no package waiting, and the catalog version is
    newer. Each pass dispatches at most ``max_per_run`` apps one after the
    other; the rest wait for the next pass.
    """

    def __init__(
        self,
        manager: DownloadManager,
        *,
        max_per_run: int = MAX_CONCURRENT_UPDATES,
        settle_seconds: float = UPDATE_SETTLE_SECONDS,
    ) -> None:
        self.manager = manager
        self.max_per_run = max_per_run
        self.settle_seconds = settle_seconds

    def find_updates(self, apps: Iterable[AppEntry]) -> list[AppEntry]:
        registry = self.manager.registry
        state = self.manager.state
        updates = []
        for app in apps:
            if not registry.has_known_version(app.id):
                continue
            if state.is_active(app.id) or state.ready_file(app.id):
                continue
            installed = registry.get(app.id)
            if compare_versions(app.latest_version, installed) > 0:
                updates.append(app)
        return updates

    def count_updates(self, apps: Iterable[AppEntry]) -> int:
        """Number of installed apps with a newer catalog version."""
        registry = self.manager.registry
        return sum(
            1
            for app in apps
            if registry.has_known_version(app.id)
            and compare_versions(app.latest_version, registry.get(app.id)) > 0
        )

    def _skip_reason(self) -> str | None:
        manager = self.manager
        if not manager.preferences.auto_update_enabled:
            return "auto-update disabled"
        if manager.native is None:
            return "native downloads unavailable"
        if manager.preferences.wifi_only and not manager.native.is_wifi_connected():
            return "waiting for WiFi"
        return None

    async def run_once(self, apps: Iterable[AppEntry]) -> UpdateRun:
        """Dispatch downloads for eligible apps.

        Args:
            apps: Current catalog

        Returns:
            UpdateRun with the outcome per dispatched app id

        """
        reason = self._skip_reason()
        if reason is not None:
            logger.debug("Skipping auto-update: %s", reason)
            return UpdateRun(skipped_reason=reason)

        updates = self.find_updates(apps)
        if not updates:
            return UpdateRun()

        batch, rest = updates[: self.max_per_run], updates[self.max_per_run :]
        logger.info(
            "Auto-updating %s apps (%s deferred)", len(batch), len(rest)
        )
        self.manager.notifier.notify(
            "Auto-Update", f"Updating {len(batch)} apps in background..."
        )

        dispatched: dict[str, DownloadOutcome] = {}
        for app in batch:
            url = app.variants[0].url if app.variants else app.download_url
            dispatched[app.id] = await self.manager.download(app, url)
            await asyncio.sleep(self.settle_seconds)
        return UpdateRun(
            dispatched=dispatched, deferred=tuple(app.id for app in rest)
        )

    async def run_after_delay(
        self, apps: Iterable[AppEntry], delay: float = AUTO_UPDATE_DELAY_SECONDS
    ) -> UpdateRun:
        """Wait ``delay`` seconds after a catalog load, then run once."""
        apps = list(apps)
        await asyncio.sleep(delay)
        return await self.run_once(apps)
