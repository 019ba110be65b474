"""Loose version comparison and version extraction from release names.

Release names in the wild are inconsistent ("MyApp-v2.3.1-arm64-v8a.apk",
"1.0_all", "nightly"), so comparison is purely numeric and extraction is a
list of independent strategies tried in order.
"""

import re
from collections.abc import Callable

# Architecture and packaging noise removed before extraction. Order matters:
# "armeabi-v7a" must go before "v7a" and "x86_64" before "x86".
_NOISE_TOKENS = (
    "armeabi-v7a",
    "arm64-v8a",
    "x86_64",
    "x86",
    "v7a",
    "v8a",
    "-all",
    "_all",
    "-universal",
    "_universal",
    "universal",
    ".apk",
)

_PREFIXED_MULTIPART_RE = re.compile(r"v(\d+(?:[.-]\d+)+)")
_DOTTED_RE = re.compile(r"(\d+(?:\.\d+)+)")
_PREFIXED_SINGLE_RE = re.compile(r"v(\d+)(?![a-z])")
_NON_VERSION_CHARS_RE = re.compile(r"[^0-9.]")


def _clean_for_compare(value: str) -> str:
    cleaned = value.lower()
    if cleaned.startswith("v"):
        cleaned = cleaned[1:]
    return _NON_VERSION_CHARS_RE.sub("", cleaned)


def _component(parts: list[str], index: int) -> int:
    if index >= len(parts) or not parts[index].isdigit():
        return 0
    return int(parts[index])


def compare_versions(version1: str | None, version2: str | None) -> int:
    """Compare two version strings numerically.

    Both inputs are lowercased, a leading "v" is dropped and every
    character other than digits and dots is removed. Missing, empty or
    non-numeric components count as 0, so "1.0" equals "1.0.0".

    Args:
        version1: First version
        version2: Second version

    Returns:
        -1 if version1 < version2, 0 if equal (or either is empty),
        1 if version1 > version2

    """
    if not version1 or not version2:
        return 0

    v1_clean = _clean_for_compare(version1)
    v2_clean = _clean_for_compare(version2)
    if v1_clean == v2_clean:
        return 0

    v1_parts = v1_clean.split(".")
    v2_parts = v2_clean.split(".")
    for i in range(max(len(v1_parts), len(v2_parts))):
        left = _component(v1_parts, i)
        right = _component(v2_parts, i)
        if left > right:
            return 1
        if left < right:
            return -1
    return 0


def strip_noise(candidate: str) -> str:
    """Lowercase and remove architecture/packaging tokens."""
    cleaned = candidate.lower()
    for token in _NOISE_TOKENS:
        cleaned = cleaned.replace(token, "")
    return cleaned


def prefixed_multipart(text: str) -> str | None:
    """Match "v2.3.1" or "v2-3-1"; dashes become dots."""
    match = _PREFIXED_MULTIPART_RE.search(text)
    return match.group(1).replace("-", ".") if match else None


def dotted(text: str) -> str | None:
    """Match a bare dotted version such as "1.4" or "10.2.0"."""
    match = _DOTTED_RE.search(text)
    return match.group(1) if match else None


def prefixed_single(text: str) -> str | None:
    """Match "v5" when not followed by a letter."""
    match = _PREFIXED_SINGLE_RE.search(text)
    return match.group(1) if match else None


VERSION_STRATEGIES: tuple[Callable[[str], str | None], ...] = (
    prefixed_multipart,
    dotted,
    prefixed_single,
)


def extract_version(candidate: str | None) -> str | None:
    """Extract a canonical version from a file name, tag or release title.

    Examples:
        >>> extract_version("MyApp-v2.3.1-arm64-v8a.apk")
        '2.3.1'
        >>> extract_version("app_v5.apk")
        '5'
        >>> extract_version("release-latest.apk") is None
        True

    Args:
        candidate: Free-form string to inspect

    Returns:
        Version string, or None if no strategy matched

    """
    if not candidate:
        return None
    cleaned = strip_noise(candidate)
    for strategy in VERSION_STRATEGIES:
        found = strategy(cleaned)
        if found:
            return found
    return None
