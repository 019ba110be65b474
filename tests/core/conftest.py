"""Shared fixtures for core engine tests.

Provides an in-memory native bridge double, a notifier that records what
it was asked to show, and catalog entry factories.
"""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import orjson
import pytest

from orion_store.core.native import AppInfo
from orion_store.core.store import MemoryStore
from orion_store.domain.types import (
    AppEntry,
    DownloadProgress,
    DownloadStatus,
    Platform,
    Variant,
)


class FakeNativeBridge:
    """Native bridge double with scriptable results.

    ``progress`` maps download id -> DownloadProgress or an exception to
    raise; ``failures`` maps method name -> exception to raise.
    """

    def __init__(self) -> None:
        self.wifi = True
        self.installed: dict[str, AppInfo] = {}
        self.progress: dict[str, DownloadProgress | Exception] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, Any]] = []
        self._next_id = 100

    def _maybe_fail(self, method: str) -> None:
        if method in self.failures:
            raise self.failures[method]

    async def get_app_info(self, package_name: str) -> AppInfo:
        self.calls.append(("get_app_info", package_name))
        self._maybe_fail("get_app_info")
        return self.installed.get(package_name, AppInfo(installed=False))

    async def download_file(self, url: str, file_name: str) -> str:
        self.calls.append(("download_file", (url, file_name)))
        self._maybe_fail("download_file")
        self._next_id += 1
        return str(self._next_id)

    async def get_download_progress(self, download_id: str) -> DownloadProgress:
        self.calls.append(("get_download_progress", download_id))
        result = self.progress.get(
            download_id, DownloadProgress(DownloadStatus.RUNNING, 10)
        )
        if isinstance(result, Exception):
            raise result
        return result

    async def install_package(self, file_name: str) -> None:
        self.calls.append(("install_package", file_name))
        self._maybe_fail("install_package")

    async def delete_file(self, file_name: str) -> None:
        self.calls.append(("delete_file", file_name))
        self._maybe_fail("delete_file")

    async def cancel_download(self, download_id: str) -> None:
        self.calls.append(("cancel_download", download_id))
        self._maybe_fail("cancel_download")

    async def request_permissions(self) -> dict[str, str]:
        self.calls.append(("request_permissions", None))
        self._maybe_fail("request_permissions")
        return {"storage": "granted"}

    def is_wifi_connected(self) -> bool:
        return self.wifi

    def called(self, method: str) -> list[Any]:
        return [args for name, args in self.calls if name == method]


class RecordingNotifier:
    """Notifier that keeps every notification for assertions."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    def notify(
        self,
        title: str,
        body: str,
        *,
        channel: str = "orion_updates",
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.sent.append(
            {"title": title, "body": body, "channel": channel, "extra": extra}
        )

    @property
    def bodies(self) -> list[str]:
        return [n["body"] for n in self.sent]


def make_app(app_id: str = "app", **overrides: Any) -> AppEntry:
    """Build an Android catalog entry with a usable variant."""
    fields: dict[str, Any] = {
        "id": app_id,
        "name": f"{app_id.title()} App",
        "platform": Platform.ANDROID,
        "version": "2.0.0",
        "latest_version": "2.0.0",
        "download_url": f"https://github.com/o/{app_id}/releases/{app_id}.apk",
        "variants": (
            Variant("Universal", f"https://github.com/o/{app_id}/u.apk"),
        ),
        "package_name": f"com.example.{app_id}",
    }
    fields.update(overrides)
    return AppEntry(**fields)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def native():
    return FakeNativeBridge()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def mock_asyncio_sleep(monkeypatch):
    """Replace asyncio.sleep with a recorder that returns immediately."""
    delays: list[float] = []

    async def fake_sleep(delay, *args, **kwargs):
        delays.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return delays


def _response_context(status: int, body: bytes) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.read = AsyncMock(return_value=body)
    context = MagicMock()
    context.__aenter__.return_value = response
    context.__aexit__.return_value = False
    return context


def make_session(routes: dict[str, Any]) -> MagicMock:
    """Build a mock aiohttp session answering GETs by URL.

    Query strings are ignored when routing. A route maps to a JSON-able
    payload (served with status 200), a ``(status, bytes)`` tuple, or an
    exception to raise. Unrouted URLs answer 404.
    """
    session = MagicMock(spec=aiohttp.ClientSession)

    def get(url: str, **kwargs: Any) -> MagicMock:
        route = routes.get(url.split("?", 1)[0], (404, b"not found"))
        if isinstance(route, Exception):
            raise route
        if isinstance(route, tuple):
            return _response_context(*route)
        return _response_context(200, orjson.dumps(route))

    session.get.side_effect = get
    return session


def requested_urls(session: MagicMock) -> list[str]:
    return [call.args[0] for call in session.get.call_args_list]
