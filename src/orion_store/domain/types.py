"""Domain types for the catalog, releases and native download progress.

Pure data with no IO. Catalog entries keep the camelCase keys of the
remote JSON on the wire and snake_case attributes in Python.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from orion_store.constants import (
    DEFAULT_APP_NAME,
    DEFAULT_AUTHOR,
    DEFAULT_CATEGORY,
    UNSAFE_URL_PLACEHOLDER,
    VERSION_PLACEHOLDER,
)


class Platform(Enum):
    """Target platform of a catalog entry."""

    ANDROID = "Android"
    PC = "PC"
    TV = "TV"

    @classmethod
    def parse(cls, value: Any) -> "Platform":
        """Parse a raw platform value, case-insensitively.

        Unknown or missing values map to ANDROID.
        """
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.ANDROID


class DownloadStatus(Enum):
    """Status reported by the native download manager."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "DownloadStatus":
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class DownloadProgress:
    """One poll result for a native download."""

    status: DownloadStatus
    progress: int = 0


@dataclass(frozen=True)
class Variant:
    """Architecture-specific download of an app."""

    arch: str
    url: str


# Wire key -> attribute name for fields that are not pass-through extras
_WIRE_FIELDS = {
    "id": "id",
    "name": "name",
    "description": "description",
    "author": "author",
    "category": "category",
    "platform": "platform",
    "icon": "icon",
    "version": "version",
    "latestVersion": "latest_version",
    "downloadUrl": "download_url",
    "screenshots": "screenshots",
    "githubRepo": "github_repo",
    "repoUrl": "repo_url",
    "releaseKeyword": "release_keyword",
    "packageName": "package_name",
    "variants": "variants",
    "size": "size",
}


@dataclass(frozen=True)
class AppEntry:
    """A catalog entry after sanitization.

    ``version`` and ``latest_version`` are never empty; ``"Latest"`` is the
    placeholder when nothing better is known. Unknown wire keys are kept in
    ``extra`` and written back by ``to_dict``.
    """

    id: str
    name: str = DEFAULT_APP_NAME
    description: str = ""
    author: str = DEFAULT_AUTHOR
    category: str = DEFAULT_CATEGORY
    platform: Platform = Platform.ANDROID
    icon: str = UNSAFE_URL_PLACEHOLDER
    version: str = VERSION_PLACEHOLDER
    latest_version: str = VERSION_PLACEHOLDER
    download_url: str = UNSAFE_URL_PLACEHOLDER
    screenshots: tuple[str, ...] = ()
    github_repo: str | None = None
    repo_url: str | None = None
    release_keyword: str | None = None
    package_name: str | None = None
    variants: tuple[Variant, ...] = ()
    size: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_android(self) -> bool:
        return self.platform is Platform.ANDROID

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the catalog's wire format."""
        data: dict[str, Any] = dict(self.extra)
        for wire_key, attr in _WIRE_FIELDS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            if attr == "platform":
                value = value.value
            elif attr == "screenshots":
                value = list(value)
            elif attr == "variants":
                if not value:
                    continue
                value = [{"arch": v.arch, "url": v.url} for v in value]
            data[wire_key] = value
        return data


def wire_keys() -> frozenset[str]:
    """Return the catalog keys that map onto AppEntry attributes."""
    return frozenset(_WIRE_FIELDS)


def _size_bytes(value: Any) -> int:
    try:
        return max(int(float(value or 0)), 0)
    except (TypeError, ValueError, OverflowError):
        return 0


def _optional_text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class Asset:
    """Downloadable file attached to a mirrored release."""

    name: str
    size: int = 0
    download_url: str = ""

    @classmethod
    def from_mirror(cls, raw: dict[str, Any]) -> "Asset":
        return cls(
            name=str(raw.get("name") or ""),
            size=_size_bytes(raw.get("size")),
            download_url=str(raw.get("browser_download_url") or ""),
        )


@dataclass(frozen=True)
class Release:
    """Release record as published in the mirror document."""

    tag_name: str
    name: str
    published_at: str | None
    created_at: str | None
    assets: tuple[Asset, ...]

    @classmethod
    def from_mirror(cls, raw: dict[str, Any]) -> "Release":
        assets = raw.get("assets")
        if not isinstance(assets, list):
            assets = []
        return cls(
            tag_name=str(raw.get("tag_name") or ""),
            name=str(raw.get("name") or ""),
            published_at=_optional_text(raw.get("published_at")),
            created_at=_optional_text(raw.get("created_at")),
            assets=tuple(
                Asset.from_mirror(asset)
                for asset in assets
                if isinstance(asset, dict)
            ),
        )


# Lowercase "owner/repo" -> releases in mirror order
ReleaseIndex = dict[str, list[Release]]
