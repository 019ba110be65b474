"""CLI argument parser for orion-store.

Handles parsing of command-line arguments and provides a clean
interface for defining CLI commands and their options.
"""

import argparse
from argparse import Namespace
from collections.abc import Sequence

from orion_store.config.settings import Settings

_ON_OFF = ("on", "off")


class CLIParser:
    """Command-line argument parser for orion-store."""

    def __init__(self, settings: Settings) -> None:
        """Initialize the CLI parser with loaded settings.

        Args:
            settings: Loaded settings, used for option defaults

        """
        self.settings = settings

    def parse_args(self, argv: Sequence[str] | None = None) -> Namespace:
        """Parse command-line arguments.

        Args:
            argv: Arguments to parse (defaults to ``sys.argv[1:]``)

        Returns:
            Namespace: Parsed arguments namespace.

        """
        parser = self.build()
        return parser.parse_args(argv)

    def build(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="orion-store",
            description="Orion app store catalog and update engine",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  %(prog)s refresh              # Reconcile catalog and release mirror
  %(prog)s refresh --manual     # Bypass CDN caches
  %(prog)s updates              # List installed apps with newer versions
  %(prog)s registry set orion.app 1.2.0
  %(prog)s prefs --auto-update on --wifi-only on
  %(prog)s token --save
            """,
        )
        # Long form only so it cannot collide with subcommand flags
        parser.add_argument(
            "--version",
            action="store_true",
            help="Show orion-store version and exit",
        )
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands"
        )

        self._add_refresh_command(subparsers)
        self._add_updates_command(subparsers)
        self._add_registry_command(subparsers)
        self._add_prefs_command(subparsers)
        self._add_cache_command(subparsers)
        self._add_token_command(subparsers)
        return parser

    def _add_refresh_command(self, subparsers) -> None:
        refresh_parser = subparsers.add_parser(
            "refresh", help="Reconcile the catalog with the release mirror"
        )
        refresh_parser.add_argument(
            "--manual",
            action="store_true",
            help="Cache-bust catalog and mirror requests",
        )
        refresh_parser.add_argument(
            "--verbose",
            action="store_true",
            help="Show detailed logging",
        )

    def _add_updates_command(self, subparsers) -> None:
        updates_parser = subparsers.add_parser(
            "updates", help="List installed apps with a newer catalog version"
        )
        updates_parser.add_argument(
            "--limit",
            type=int,
            default=self.settings["updates"]["max_concurrent_updates"],
            help="Apps an auto-update pass would dispatch",
        )

    def _add_registry_command(self, subparsers) -> None:
        """Add registry command parser.

        Args:
            subparsers: The subparsers object to add the registry command
                to.

        """
        registry_parser = subparsers.add_parser(
            "registry", help="Inspect or edit the installed-version registry"
        )
        actions = registry_parser.add_subparsers(
            dest="registry_action", required=True
        )
        actions.add_parser("list", help="Show registered versions")

        set_parser = actions.add_parser("set", help="Register a version")
        set_parser.add_argument("app_id", help="Catalog app id")
        set_parser.add_argument(
            "installed_version",
            nargs="?",
            metavar="version",
            help="Installed version (unknown when omitted)",
        )

        remove_parser = actions.add_parser("remove", help="Forget an app")
        remove_parser.add_argument("app_id", help="Catalog app id")

    def _add_prefs_command(self, subparsers) -> None:
        prefs_parser = subparsers.add_parser(
            "prefs", help="Show or change preferences"
        )
        for flag, help_text in (
            ("--auto-update", "Download updates automatically"),
            ("--wifi-only", "Only download on WiFi"),
            ("--delete-apk", "Offer to delete packages after install"),
            ("--remote-json", "Fetch the catalog from the network"),
        ):
            prefs_parser.add_argument(flag, choices=_ON_OFF, help=help_text)

    def _add_cache_command(self, subparsers) -> None:
        cache_parser = subparsers.add_parser(
            "cache", help="Manage the local catalog cache"
        )
        cache_parser.add_argument(
            "--clear",
            action="store_true",
            help="Drop the cached catalog",
        )
        cache_parser.add_argument(
            "--all",
            action="store_true",
            help="With --clear, remove every stored key",
        )

    def _add_token_command(self, subparsers) -> None:
        token_parser = subparsers.add_parser(
            "token", help="Manage the GitHub token in the keyring"
        )
        group = token_parser.add_mutually_exclusive_group(required=True)
        group.add_argument(
            "--save", action="store_true", help="Save a GitHub token"
        )
        group.add_argument(
            "--remove", action="store_true", help="Remove the stored token"
        )
        group.add_argument(
            "--status", action="store_true", help="Show whether a token is set"
        )
