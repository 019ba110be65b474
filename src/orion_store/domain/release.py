"""Release resolution against the mirrored release index.

Pure functions: given a sanitized catalog entry and the release index
built from the mirror document, pick the release and packaging assets
that apply, then derive variants, version and size.
"""

import re
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from orion_store.constants import (
    ARCH_ARM64,
    ARCH_ARMV7,
    ARCH_UNIVERSAL,
    ARCH_X64,
    ARCH_X86,
    BYTES_PER_MB,
    NON_VERSION_TAGS,
    PACKAGE_EXTENSION,
)
from orion_store.domain.types import (
    AppEntry,
    Asset,
    Release,
    ReleaseIndex,
    Variant,
)
from orion_store.domain.version import extract_version

_GITHUB_PREFIX_RE = re.compile(r"^https?://(www\.)?github\.com/", re.IGNORECASE)
_GIT_SUFFIX_RE = re.compile(r"\.git$", re.IGNORECASE)

_ARCH_PRIORITY = {ARCH_UNIVERSAL: 1, ARCH_ARM64: 2, ARCH_ARMV7: 3}
_OTHER_ARCH_PRIORITY = 4


def normalize_repo_path(repo: str) -> str:
    """Reduce a repo reference to ``owner/repo``.

    Strips the github.com URL prefix, a trailing ``.git`` and a trailing
    slash. Case is preserved; index lookups lowercase the result.
    """
    path = _GITHUB_PREFIX_RE.sub("", repo)
    path = _GIT_SUFFIX_RE.sub("", path)
    return path.removesuffix("/")


def is_repository_backed(app: AppEntry) -> bool:
    """Whether the entry's releases come from a GitHub repository."""
    return bool(app.github_repo) or "github.com" in (app.repo_url or "")


def determine_arch(file_name: str) -> str:
    """Classify a packaging file name by CPU architecture."""
    lower = file_name.lower()
    if "arm64" in lower or "v8a" in lower:
        return ARCH_ARM64
    if "armeabi" in lower or "v7a" in lower:
        return ARCH_ARMV7
    if "x86_64" in lower or "x64" in lower:
        return ARCH_X64
    if "x86" in lower:
        return ARCH_X86
    return ARCH_UNIVERSAL


def build_release_index(mirror: dict[str, Any] | None) -> ReleaseIndex:
    """Build the lowercase ``owner/repo`` -> releases map.

    Mirror values may be a single release object or a list of them.

    Args:
        mirror: Parsed mirror document, or None when unavailable

    Returns:
        Release index (empty when there is no mirror)

    """
    index: ReleaseIndex = {}
    for key, data in (mirror or {}).items():
        raw_releases = data if isinstance(data, list) else [data]
        index[key.lower()] = [
            Release.from_mirror(raw)
            for raw in raw_releases
            if isinstance(raw, dict)
        ]
    return index


def _packaging_assets(release: Release) -> list[Asset]:
    return [
        asset
        for asset in release.assets
        if asset.name.lower().endswith(PACKAGE_EXTENSION)
    ]


def select_release(
    releases: list[Release], keyword: str | None
) -> tuple[Release, list[Asset]] | None:
    """Pick the release and assets for an entry.

    Releases without packaging assets are skipped. With a keyword, the
    first release whose title, tag or any packaging asset mentions it is
    chosen; assets mentioning the keyword are preferred, and when none do
    the release's packaging assets are used as-is.

    Args:
        releases: Releases in mirror order
        keyword: Optional release keyword (case-insensitive)

    Returns:
        (release, assets) or None when nothing qualifies

    """
    kw = keyword.lower() if keyword else None
    for release in releases:
        candidates = _packaging_assets(release)
        if not candidates:
            continue
        if kw is None:
            return release, candidates

        matches_keyword = (
            kw in release.name.lower()
            or kw in release.tag_name.lower()
            or any(kw in asset.name.lower() for asset in candidates)
        )
        if matches_keyword:
            preferred = [a for a in candidates if kw in a.name.lower()]
            return release, preferred or candidates
    return None


def _date_version(release: Release, now: datetime | None = None) -> str:
    stamp = release.published_at or release.created_at
    moment = None
    if stamp:
        try:
            moment = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
        except ValueError:
            moment = None
    if moment is None:
        moment = now or datetime.now(tz=timezone.utc)
    return moment.strftime("%Y.%m.%d")


def derive_version(
    release: Release, first_asset: Asset, now: datetime | None = None
) -> str:
    """Derive the version: file name, then tag, then title, then date.

    The tag is ignored when it is a moving label such as "latest" or
    "nightly".
    """
    file_version = extract_version(first_asset.name)
    if file_version:
        return file_version

    tag_version = extract_version(release.tag_name)
    if tag_version and release.tag_name.lower() not in NON_VERSION_TAGS:
        return tag_version

    title_version = extract_version(release.name)
    if title_version:
        return title_version

    return _date_version(release, now)


def build_variants(assets: list[Asset]) -> tuple[Variant, ...]:
    """Build variants ordered Universal, ARM64, ARMv7, then the rest.

    The sort is stable, so assets of equal priority keep mirror order.
    """
    variants = [
        Variant(arch=determine_arch(asset.name), url=asset.download_url)
        for asset in assets
    ]
    variants.sort(key=lambda v: _ARCH_PRIORITY.get(v.arch, _OTHER_ARCH_PRIORITY))
    return tuple(variants)


def format_size(size_bytes: int) -> str:
    return f"{size_bytes / BYTES_PER_MB:.1f} MB"


def resolve_app(
    app: AppEntry, index: ReleaseIndex, now: datetime | None = None
) -> AppEntry:
    """Resolve an entry's download, variants, version and size.

    Entries that are not repository-backed, whose repo is absent from the
    index, or whose releases carry no packaging assets are returned
    unchanged.

    Args:
        app: Sanitized catalog entry
        index: Release index for this reconciliation pass
        now: Clock override for the date fallback

    Returns:
        A new entry with resolved fields, or ``app`` itself

    """
    if not is_repository_backed(app):
        return app

    repo_path = normalize_repo_path(app.github_repo or app.repo_url or "")
    releases = index.get(repo_path.lower()) if repo_path else None
    if not releases:
        return app

    selected = select_release(releases, app.release_keyword)
    if selected is None:
        return app

    release, assets = selected
    variants = build_variants(assets)
    version = derive_version(release, assets[0], now)
    return replace(
        app,
        version=version,
        latest_version=version,
        download_url=variants[0].url,
        variants=variants,
        size=format_size(assets[0].size),
    )
