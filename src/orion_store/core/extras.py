"""Store self-update, announcements, submission cooldown and size parsing."""

import re
import struct
import time
from dataclasses import dataclass
from typing import Any

from orion_store.constants import (
    CURRENT_STORE_VERSION,
    SUBMISSION_BASE_COOLDOWN_MINUTES,
    SUBMISSION_MAX_REDUCTION_MINUTES,
    SUBMISSION_REDUCTION_PER_SUBMISSION,
    StoreKeys,
)
from orion_store.core.store import KeyValueStore
from orion_store.domain.version import compare_versions

_INT32_MASK = 0xFFFFFFFF
_SIZE_CHARS_RE = re.compile(r"[^0-9.]")
_LEADING_NUMBER_RE = re.compile(r"^\d*\.?\d+|^\d+")


@dataclass(frozen=True)
class StoreUpdate:
    latest_version: str
    download_url: str | None


def check_store_update(
    config: dict[str, Any] | None, current: str = CURRENT_STORE_VERSION
) -> StoreUpdate | None:
    """Return a StoreUpdate when the remote config advertises a newer store.

    Args:
        config: Remote store configuration (may be None)
        current: Version of the running store

    Returns:
        StoreUpdate or None

    """
    latest = (config or {}).get("latestStoreVersion")
    if not latest or compare_versions(str(latest), current) <= 0:
        return None
    return StoreUpdate(str(latest), config.get("storeDownloadUrl"))


def announcement_hash(text: str) -> int:
    """Stable 32-bit string hash (multiplier 31), made non-negative.

    Works on UTF-16 code units so hashes written by the client app match.
    """
    encoded = text.encode("utf-16-le")
    units = struct.unpack(f"<{len(encoded) // 2}H", encoded)
    value = 0
    for unit in units:
        value = (value * 31 + unit) & _INT32_MASK
    if value >= 1 << 31:
        value -= 1 << 32
    return abs(value)


def is_announcement_dismissed(
    store: KeyValueStore, announcement: str | None
) -> bool:
    if not announcement:
        return False
    stored = store.get(StoreKeys.DISMISSED_ANNOUNCEMENT)
    return stored is not None and str(stored) == str(
        announcement_hash(announcement)
    )


def dismiss_announcement(store: KeyValueStore, announcement: str) -> None:
    store.set(StoreKeys.DISMISSED_ANNOUNCEMENT, str(announcement_hash(announcement)))


def _int_value(store: KeyValueStore, key: str) -> int:
    try:
        return int(store.get(key) or 0)
    except (TypeError, ValueError):
        return 0


def submission_cooldown_minutes(submission_count: int) -> int:
    """Cooldown length after ``submission_count`` accepted submissions."""
    reduction = min(
        submission_count * SUBMISSION_REDUCTION_PER_SUBMISSION,
        SUBMISSION_MAX_REDUCTION_MINUTES,
    )
    return SUBMISSION_BASE_COOLDOWN_MINUTES - reduction


def submission_cooldown_remaining(
    store: KeyValueStore, now_ms: int | None = None
) -> int:
    """Milliseconds until the next submission is allowed (0 if allowed)."""
    last_ts = _int_value(store, StoreKeys.LAST_SUBMISSION_TS)
    if not last_ts:
        return 0
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    count = _int_value(store, StoreKeys.SUBMISSION_COUNT)
    remaining = submission_cooldown_minutes(count) * 60_000 - (now_ms - last_ts)
    return max(remaining, 0)


def format_cooldown(remaining_ms: int) -> str:
    hours, rest = divmod(remaining_ms, 3_600_000)
    return f"{hours}h {rest // 60_000}m"


def record_submission(store: KeyValueStore, now_ms: int | None = None) -> int:
    """Count a successful submission and start its cooldown.

    Returns:
        The new submission count

    """
    count = _int_value(store, StoreKeys.SUBMISSION_COUNT) + 1
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    store.set(StoreKeys.SUBMISSION_COUNT, str(count))
    store.set(StoreKeys.LAST_SUBMISSION_TS, str(now_ms))
    return count


def parse_size_to_mb(size: str | None) -> float:
    """Parse a display size like "45.2 MB" or "1.5 GB" into megabytes.

    "Varies" and unparseable values are 0.
    """
    if not size or "varies" in size.lower():
        return 0.0
    match = _LEADING_NUMBER_RE.match(_SIZE_CHARS_RE.sub("", size.lower()))
    if not match:
        return 0.0
    value = float(match.group())
    if "gb" in size.lower():
        return value * 1024
    return value
