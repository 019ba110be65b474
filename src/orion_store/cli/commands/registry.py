"""Registry command: inspect or edit installed app versions."""

from argparse import Namespace

from orion_store.core.registry import InstalledVersionRegistry

from .base import BaseCommandHandler


class RegistryHandler(BaseCommandHandler):
    """Handler for the registry command."""

    async def execute(self, args: Namespace) -> int:
        registry = InstalledVersionRegistry(self.store)
        action = args.registry_action

        if action == "list":
            versions = registry.all()
            if not versions:
                print("No installed apps registered")
            for app_id, version in sorted(versions.items()):
                print(f"  {app_id}: {version}")
            return 0

        if action == "set":
            registry.set(args.app_id, args.installed_version)
            print(f"✅ {args.app_id} registered as {registry.get(args.app_id)}")
            return 0

        if not registry.remove(args.app_id):
            print(f"⚠️  {args.app_id} is not registered")
            return 1
        print(f"✅ {args.app_id} removed")
        return 0
