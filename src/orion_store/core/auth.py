"""GitHub token storage in the system keyring.

A token raises GitHub's rate limit for mirror and raw-content fetches. It
is optional: every keyring failure degrades to "no token".
"""

import re
from urllib.parse import urlsplit

import keyring
from keyring.errors import KeyringError

from orion_store.constants import GITHUB_HOSTS
from orion_store.logger import get_logger

logger = get_logger(__name__)

MAX_TOKEN_LENGTH: int = 255

_LEGACY_TOKEN_RE = re.compile(r"^[a-f0-9]{40}$")
_PREFIXED_TOKEN_RE = re.compile(
    r"^(?:gh[pousr]_[A-Za-z0-9_]{36,251}|github_pat_[A-Za-z0-9_]{36,243})$"
)


def validate_github_token(token: str | None) -> bool:
    """Check that a token looks like a GitHub token.

    Accepts classic 40-hex tokens and the prefixed formats (``ghp_``,
    ``gho_``, ``ghu_``, ``ghs_``, ``ghr_``, ``github_pat_``).

    Args:
        token: Candidate token

    Returns:
        True if the format is valid

    """
    if not token or not isinstance(token, str):
        return False
    token = token.strip()
    if not token or len(token) > MAX_TOKEN_LENGTH:
        return False
    return bool(
        _LEGACY_TOKEN_RE.match(token) or _PREFIXED_TOKEN_RE.match(token)
    )


def is_github_url(url: str) -> bool:
    host = (urlsplit(url).hostname or "").lower()
    return host in GITHUB_HOSTS


class TokenStore:
    """Keyring-backed GitHub token storage."""

    def __init__(
        self, service: str = "orion-store-github-token", username: str = "token"
    ) -> None:
        self.service = service
        self.username = username

    def get(self) -> str | None:
        """Return the stored token, or None if absent or unreadable."""
        try:
            token = keyring.get_password(self.service, self.username)
        except KeyringError:
            logger.debug("Keyring access failed")
            return None
        if not token:
            logger.debug("No token stored in keyring")
            return None
        logger.debug("GitHub token retrieved from keyring (value hidden)")
        return token

    def set(self, token: str) -> None:
        """Store a token.

        Raises:
            ValueError: If the token format is invalid
            KeyringError: If the keyring refuses the write

        """
        if not validate_github_token(token):
            msg = "Invalid GitHub token format"
            raise ValueError(msg)
        keyring.set_password(self.service, self.username, token.strip())
        logger.debug("Token saved to keyring")

    def delete(self) -> bool:
        """Remove the stored token. Returns False if nothing was removed."""
        try:
            keyring.delete_password(self.service, self.username)
        except KeyringError:
            logger.debug("No token to delete from keyring")
            return False
        logger.debug("Token removed from keyring")
        return True

    def apply_auth(
        self, url: str, headers: dict[str, str] | None = None
    ) -> dict[str, str]:
        """Return headers with Authorization added for GitHub hosts.

        CDN hosts never receive the token.

        Args:
            url: Request URL
            headers: Existing headers (not modified)

        Returns:
            New header dict

        """
        result = dict(headers or {})
        if not is_github_url(url):
            return result
        token = self.get()
        if token:
            result["Authorization"] = f"token {token}"
        return result
