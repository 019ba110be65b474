"""Refresh command: reconcile the catalog with the release mirror."""

from argparse import Namespace

from orion_store.core.catalog import CatalogReconciler, load_cached_catalog
from orion_store.core.http import create_http_session
from orion_store.exceptions import CatalogError, DataMalformedError
from orion_store.logger import get_logger

from .base import BaseCommandHandler

logger = get_logger(__name__)


class RefreshHandler(BaseCommandHandler):
    """Handler for the refresh command."""

    async def execute(self, args: Namespace) -> int:
        try:
            existing = load_cached_catalog(self.store)
        except DataMalformedError as e:
            logger.warning("No usable cached catalog: %s", e)
            existing = []

        timeout = self.settings["network"]["timeout_seconds"]
        async with create_http_session(timeout) as session:
            reconciler = CatalogReconciler(
                session,
                self.store,
                settings=self.settings,
                token_store=self.token_store,
                existing=existing,
            )
            try:
                result = await reconciler.reconcile(manual_refresh=args.manual)
            except CatalogError as e:
                logger.error("Catalog refresh failed: %s", e)  # noqa: TRY400
                print(f"❌ Catalog refresh failed: {e}")
                return 1

        print(f"✅ {len(result.apps)} apps ({result.apps_source})")
        if result.imported:
            print(f"   {len(result.imported)} imported apps")
        print(f"   Mirror: {result.mirror_source}")
        if result.store_update is not None:
            latest = result.store_update.latest_version
            print(f"⬆️  Store update available: {latest}")
        for error in result.errors:
            print(f"⚠️  {error}")
        return 0
