"""Token command handler for orion-store CLI.

Saves, removes and reports the GitHub token kept in the system keyring.
"""

import getpass
from argparse import Namespace

from keyring.errors import KeyringError

from orion_store.core.auth import validate_github_token
from orion_store.logger import get_logger

from .base import BaseCommandHandler

logger = get_logger(__name__)


class TokenHandler(BaseCommandHandler):
    """Handler for token command operations."""

    async def execute(self, args: Namespace) -> int:
        if args.save:
            return self._save_token()
        if args.remove:
            return self._remove_token()
        return self._show_status()

    def _save_token(self) -> int:
        try:
            token, confirm_token = self._prompt_for_token()
        except (EOFError, KeyboardInterrupt):
            logger.error("Token input aborted by user")  # noqa: TRY400
            return 1

        if token != confirm_token:
            print("❌ Token confirmation does not match")
            return 1
        if not validate_github_token(token):
            print(
                "❌ Invalid GitHub token format. "
                "Must be a classic or fine-grained personal access token."
            )
            return 1

        try:
            self.token_store.set(token)
        except KeyringError:
            logger.exception("Failed to save token to keyring")
            return 1
        print("✅ GitHub token saved")
        return 0

    def _remove_token(self) -> int:
        if not self.token_store.delete():
            print("⚠️  No GitHub token found in keyring")
            print("Tip: Use 'orion-store token --save' to save a token first.")
            return 1
        print("✅ GitHub token removed")
        return 0

    def _show_status(self) -> int:
        if self.token_store.get():
            print("🔑 GitHub token is set (value hidden)")
        else:
            print("No GitHub token set; requests are unauthenticated")
        return 0

    @staticmethod
    def _prompt_for_token() -> tuple[str, str]:
        token = getpass.getpass(prompt="Enter your GitHub token (input hidden): ")
        confirm_token = getpass.getpass(prompt="Confirm your GitHub token: ")
        return token.strip(), confirm_token.strip()
