"""Cache command: drop the cached catalog or the whole store."""

from argparse import Namespace

from orion_store.constants import StoreKeys
from orion_store.logger import get_logger

from .base import BaseCommandHandler

logger = get_logger(__name__)


class CacheHandler(BaseCommandHandler):
    """Handler for the cache command."""

    async def execute(self, args: Namespace) -> int:
        if not args.clear:
            cached = self.store.get(StoreKeys.CACHED_APPS)
            count = len(cached) if isinstance(cached, list) else 0
            version = self.store.get(StoreKeys.CACHE_VERSION)
            print(f"Cached apps: {count} (cache version {version or '-'})")
            print(f"Store: {self.store.store_dir}")
            return 0

        if args.all:
            removed = self.store.clear()
            logger.info("Cleared %s store files", removed)
            print(f"✅ Removed {removed} stored keys")
            return 0

        self.store.delete(StoreKeys.CACHED_APPS)
        self.store.delete(StoreKeys.CACHE_VERSION)
        print("✅ Catalog cache cleared")
        return 0
