"""Updates command: list installed apps with newer catalog versions."""

from argparse import Namespace

from orion_store.core.catalog import load_cached_catalog
from orion_store.core.downloads import DownloadManager
from orion_store.core.scheduler import AutoUpdateScheduler

from .base import BaseCommandHandler


class UpdatesHandler(BaseCommandHandler):
    """Handler for the updates command."""

    async def execute(self, args: Namespace) -> int:
        apps = load_cached_catalog(self.store)
        manager = DownloadManager.from_settings(
            self.store, self.settings, auto_poll=False
        )
        scheduler = AutoUpdateScheduler(manager, max_per_run=args.limit)
        updates = scheduler.find_updates(apps)
        if not updates:
            print("✅ All installed apps are up to date")
            return 0

        for position, app in enumerate(updates):
            installed = manager.registry.get(app.id)
            marker = "" if position < args.limit else " (next pass)"
            print(f"  {app.name}: {installed} -> {app.latest_version}{marker}")
        print(f"{len(updates)} update(s) available")
        return 0
