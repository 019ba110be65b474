"""Native capability contract.

The host platform (an Android shell, a test double) implements
``NativeBridge``. Failures are raised as exceptions whose message carries
the platform's marker string; ``classify_native_error`` turns them into
the typed errors from ``orion_store.exceptions``.
"""

from dataclasses import dataclass
from typing import Protocol

from orion_store.domain.types import DownloadProgress
from orion_store.exceptions import classify_native_error

__all__ = ["AppInfo", "NativeBridge", "classify_native_error"]


@dataclass(frozen=True)
class AppInfo:
    """Package inspection result."""

    installed: bool
    version: str | None = None
    version_code: int | None = None


class NativeBridge(Protocol):
    """Asynchronous native download, install and package-inspection calls."""

    async def get_app_info(self, package_name: str) -> AppInfo: ...

    async def download_file(self, url: str, file_name: str) -> str:
        """Start a download and return its download id."""
        ...

    async def get_download_progress(
        self, download_id: str
    ) -> DownloadProgress: ...

    async def install_package(self, file_name: str) -> None: ...

    async def delete_file(self, file_name: str) -> None: ...

    async def cancel_download(self, download_id: str) -> None: ...

    async def request_permissions(self) -> dict[str, str]:
        """Prompt for storage access; returns status per permission."""
        ...

    def is_wifi_connected(self) -> bool: ...
