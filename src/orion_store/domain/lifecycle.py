"""Download lifecycle state machine.

Each app id is in at most one download phase:

    Idle -> Active -> Ready -> Installing -> Ready (awaiting confirmation)
                                          -> Idle (confirmed)

Package files of confirmed installs wait in a separate cleanup map until
they are deleted. That map is independent of the download phase, so a new
download for the same app keeps the old file queued for removal.

Transition functions are pure: they take a ``LifecycleState`` snapshot and
return a ``Transition`` holding the next snapshot plus any events. Calls
that do not apply to the id's current phase return the state unchanged.
Effects (native calls, persistence, notifications) live in
``orion_store.core.downloads``.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from orion_store.constants import COMPOSITE_SEPARATOR
from orion_store.domain.types import DownloadProgress, DownloadStatus


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Active:
    download_id: str
    file_name: str
    progress: int = 0
    status: DownloadStatus = DownloadStatus.PENDING

    @property
    def composite(self) -> str:
        """Persisted form: ``downloadId|fileName``."""
        return f"{self.download_id}{COMPOSITE_SEPARATOR}{self.file_name}"


@dataclass(frozen=True)
class Ready:
    file_name: str


@dataclass(frozen=True)
class Installing:
    file_name: str


Entry = Idle | Active | Ready | Installing

IDLE = Idle()


@dataclass(frozen=True)
class DownloadCompleted:
    app_id: str
    file_name: str


@dataclass(frozen=True)
class DownloadFailed:
    app_id: str
    reason: str


Event = DownloadCompleted | DownloadFailed


def split_composite(value: str) -> tuple[str, str]:
    """Split ``downloadId|fileName``; a missing file name becomes ""."""
    download_id, _, file_name = value.partition(COMPOSITE_SEPARATOR)
    return download_id, file_name


@dataclass(frozen=True)
class LifecycleState:
    """Immutable snapshot of download phases and pending cleanups.

    Attributes:
        entries: app id -> download phase (idle ids are absent)
        cleanup: app id -> installed package file awaiting deletion

    """

    entries: Mapping[str, Entry] = field(default_factory=dict)
    cleanup: Mapping[str, str] = field(default_factory=dict)

    def get(self, app_id: str) -> Entry:
        return self.entries.get(app_id, IDLE)

    def with_entry(self, app_id: str, entry: Entry) -> "LifecycleState":
        entries = dict(self.entries)
        if isinstance(entry, Idle):
            entries.pop(app_id, None)
        else:
            entries[app_id] = entry
        return replace(self, entries=entries)

    def with_cleanup(
        self, app_id: str, file_name: str | None
    ) -> "LifecycleState":
        """Queue ``file_name`` for deletion, or forget the queued file."""
        cleanup = dict(self.cleanup)
        if file_name:
            cleanup[app_id] = file_name
        else:
            cleanup.pop(app_id, None)
        return replace(self, cleanup=cleanup)

    def active_ids(self) -> list[str]:
        return [
            app_id
            for app_id, entry in self.entries.items()
            if isinstance(entry, Active)
        ]

    def is_active(self, app_id: str) -> bool:
        return isinstance(self.get(app_id), Active)

    def ready_file(self, app_id: str) -> str | None:
        """File name awaiting install (Ready or Installing), if any."""
        entry = self.get(app_id)
        if isinstance(entry, Ready | Installing):
            return entry.file_name
        return None

    def cleanup_file(self, app_id: str) -> str | None:
        return self.cleanup.get(app_id)

    @classmethod
    def from_maps(
        cls,
        active: Mapping[str, str],
        ready: Mapping[str, str],
        pending_cleanup: Mapping[str, str],
    ) -> "LifecycleState":
        """Rebuild a snapshot from the three persisted maps.

        When an id is both active and ready, Active wins. Pending cleanups
        are kept as they are.

        Args:
            active: app id -> ``downloadId|fileName``
            ready: app id -> file name
            pending_cleanup: app id -> file name

        Returns:
            Snapshot

        """
        entries: dict[str, Entry] = {
            app_id: Ready(file_name) for app_id, file_name in ready.items()
        }
        for app_id, composite in active.items():
            download_id, file_name = split_composite(composite)
            entries[app_id] = Active(download_id, file_name)
        cleanup = {
            app_id: file_name
            for app_id, file_name in pending_cleanup.items()
            if file_name
        }
        return cls(entries, cleanup)

    def to_maps(self) -> tuple[dict[str, str], dict[str, str], dict[str, str]]:
        """Return the (active, ready, pending_cleanup) persisted maps.

        Installing is persisted as Ready since the file is still on disk.
        """
        active: dict[str, str] = {}
        ready: dict[str, str] = {}
        for app_id, entry in self.entries.items():
            if isinstance(entry, Active):
                active[app_id] = entry.composite
            elif isinstance(entry, Ready | Installing):
                ready[app_id] = entry.file_name
        return active, ready, dict(self.cleanup)


@dataclass(frozen=True)
class Transition:
    state: LifecycleState
    events: tuple[Event, ...] = ()


def _unchanged(state: LifecycleState) -> Transition:
    return Transition(state)


def start(
    state: LifecycleState, app_id: str, download_id: str, file_name: str
) -> Transition:
    """Track a new native download, superseding a Ready or Active entry.

    A pending cleanup for the id is left alone.
    """
    return Transition(
        state.with_entry(app_id, Active(download_id, file_name))
    )


def reconcile_tick(
    state: LifecycleState,
    polls: Mapping[str, DownloadProgress | Exception],
) -> Transition:
    """Apply one round of native progress polls.

    SUCCESSFUL moves the id to Ready and emits DownloadCompleted. FAILED or
    a polling exception drops the id to Idle and emits DownloadFailed.
    Any other status only updates progress. Polls for ids that are not
    Active are ignored.

    Args:
        state: Current snapshot
        polls: app id -> poll result or the exception the poll raised

    Returns:
        Next snapshot and the events produced

    """
    events: list[Event] = []
    for app_id, result in polls.items():
        entry = state.get(app_id)
        if not isinstance(entry, Active):
            continue

        if isinstance(result, Exception):
            state = state.with_entry(app_id, IDLE)
            events.append(DownloadFailed(app_id, str(result) or "poll error"))
        elif result.status is DownloadStatus.SUCCESSFUL:
            state = state.with_entry(app_id, Ready(entry.file_name))
            events.append(DownloadCompleted(app_id, entry.file_name))
        elif result.status is DownloadStatus.FAILED:
            state = state.with_entry(app_id, IDLE)
            events.append(DownloadFailed(app_id, "Download Failed"))
        else:
            state = state.with_entry(
                app_id,
                replace(entry, progress=result.progress, status=result.status),
            )
    return Transition(state, tuple(events))


def begin_install(state: LifecycleState, app_id: str) -> Transition:
    """Ready -> Installing."""
    entry = state.get(app_id)
    if not isinstance(entry, Ready):
        return _unchanged(state)
    return Transition(state.with_entry(app_id, Installing(entry.file_name)))


def finish_install(state: LifecycleState, app_id: str) -> Transition:
    """Installing -> Ready, awaiting confirmation from package inspection."""
    entry = state.get(app_id)
    if not isinstance(entry, Installing):
        return _unchanged(state)
    return Transition(state.with_entry(app_id, Ready(entry.file_name)))


def confirm_installed(
    state: LifecycleState, app_id: str, *, cleanup_enabled: bool
) -> Transition:
    """Ready/Installing -> Idle, queuing the file for cleanup when enabled."""
    entry = state.get(app_id)
    if not isinstance(entry, Ready | Installing):
        return _unchanged(state)
    state = state.with_entry(app_id, IDLE)
    if cleanup_enabled:
        state = state.with_cleanup(app_id, entry.file_name)
    return Transition(state)


def cancel(state: LifecycleState, app_id: str) -> Transition:
    """Active -> Idle."""
    if not state.is_active(app_id):
        return _unchanged(state)
    return Transition(state.with_entry(app_id, IDLE))


def drop_ready(state: LifecycleState, app_id: str) -> Transition:
    """Ready/Installing -> Idle; no-op for every other phase."""
    if state.ready_file(app_id) is None:
        return _unchanged(state)
    return Transition(state.with_entry(app_id, IDLE))


def cleanup_done(state: LifecycleState, app_id: str) -> Transition:
    """Forget the id's pending cleanup."""
    if state.cleanup_file(app_id) is None:
        return _unchanged(state)
    return Transition(state.with_cleanup(app_id, None))


def restore_ready(
    state: LifecycleState, app_id: str, file_name: str
) -> Transition:
    """Idle -> Ready for a file announced by a completion notification.

    Ignored when the id already has a download phase, or when the file is
    the installed package already queued for cleanup.
    """
    if not isinstance(state.get(app_id), Idle):
        return _unchanged(state)
    if state.cleanup_file(app_id) == file_name:
        return _unchanged(state)
    return Transition(state.with_entry(app_id, Ready(file_name)))
