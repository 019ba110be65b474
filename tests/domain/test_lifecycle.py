"""Tests for the pure download lifecycle transitions."""

import pytest

from orion_store.domain import lifecycle
from orion_store.domain.lifecycle import (
    IDLE,
    Active,
    DownloadCompleted,
    DownloadFailed,
    Installing,
    LifecycleState,
    Ready,
    split_composite,
)
from orion_store.domain.types import DownloadProgress, DownloadStatus


@pytest.fixture
def active_state():
    return lifecycle.start(LifecycleState(), "app", "42", "App_1.0.apk").state


class TestStart:
    """Test starting downloads."""

    def test_start_tracks_active(self):
        """A started download is Active with zero progress."""
        state = lifecycle.start(LifecycleState(), "app", "42", "a.apk").state

        assert state.get("app") == Active("42", "a.apk")
        assert state.active_ids() == ["app"]

    def test_start_clears_ready(self):
        """Starting a download supersedes a Ready entry."""
        state = LifecycleState({"app": Ready("old.apk")})

        state = lifecycle.start(state, "app", "7", "new.apk").state

        assert state.ready_file("app") is None
        assert state.is_active("app")

    def test_start_keeps_pending_cleanup(self):
        """A new download leaves the previous package queued for deletion."""
        state = LifecycleState(cleanup={"app": "App_1.0.apk"})

        state = lifecycle.start(state, "app", "42", "App_2.0.apk").state

        active, ready, cleanup = state.to_maps()
        assert active == {"app": "42|App_2.0.apk"}
        assert ready == {}
        assert cleanup == {"app": "App_1.0.apk"}


class TestReconcileTick:
    """Test applying progress polls."""

    def test_progress_update(self, active_state):
        """Running downloads update progress without events."""
        transition = lifecycle.reconcile_tick(
            active_state,
            {"app": DownloadProgress(DownloadStatus.RUNNING, 55)},
        )

        entry = transition.state.get("app")
        assert entry.progress == 55
        assert entry.status is DownloadStatus.RUNNING
        assert transition.events == ()

    def test_success_moves_to_ready(self, active_state):
        """SUCCESSFUL becomes Ready and emits DownloadCompleted."""
        transition = lifecycle.reconcile_tick(
            active_state,
            {"app": DownloadProgress(DownloadStatus.SUCCESSFUL, 100)},
        )

        assert transition.state.get("app") == Ready("App_1.0.apk")
        assert transition.events == (DownloadCompleted("app", "App_1.0.apk"),)

    def test_failed_clears_active(self, active_state):
        """FAILED drops the id to Idle and emits DownloadFailed."""
        transition = lifecycle.reconcile_tick(
            active_state, {"app": DownloadProgress(DownloadStatus.FAILED)}
        )

        assert transition.state.get("app") is IDLE
        assert not transition.state.is_active("app")
        assert isinstance(transition.events[0], DownloadFailed)

    def test_poll_exception_is_failure(self, active_state):
        """A poll that raised counts as a failed download."""
        transition = lifecycle.reconcile_tick(
            active_state, {"app": RuntimeError("bridge gone")}
        )

        assert transition.state.get("app") is IDLE
        assert transition.events == (DownloadFailed("app", "bridge gone"),)

    def test_ignores_non_active(self):
        """Polls for ids that are not Active change nothing."""
        state = LifecycleState({"app": Ready("a.apk")})

        transition = lifecycle.reconcile_tick(
            state, {"app": DownloadProgress(DownloadStatus.FAILED)}
        )

        assert transition.state.get("app") == Ready("a.apk")
        assert transition.events == ()


class TestInstallAndCleanup:
    """Test the install, confirmation and cleanup phases."""

    def test_install_round_trip(self):
        """Installing returns to Ready until confirmed."""
        state = LifecycleState({"app": Ready("a.apk")})

        state = lifecycle.begin_install(state, "app").state
        assert state.get("app") == Installing("a.apk")
        assert state.ready_file("app") == "a.apk"

        state = lifecycle.finish_install(state, "app").state
        assert state.get("app") == Ready("a.apk")

    @pytest.mark.parametrize(
        ("cleanup_enabled", "expected"),
        [(True, "a.apk"), (False, None)],
    )
    def test_confirm_installed(self, cleanup_enabled, expected):
        """Confirmation ends the download and queues cleanup when enabled."""
        state = LifecycleState({"app": Ready("a.apk")})

        state = lifecycle.confirm_installed(
            state, "app", cleanup_enabled=cleanup_enabled
        ).state

        assert state.get("app") is IDLE
        assert state.cleanup_file("app") == expected

    def test_cleanup_done(self):
        """Finishing cleanup forgets the file and keeps the download phase."""
        state = LifecycleState({"app": Ready("b.apk")}, {"app": "a.apk"})

        state = lifecycle.cleanup_done(state, "app").state

        assert state.cleanup_file("app") is None
        assert state.get("app") == Ready("b.apk")

    def test_drop_ready_without_entry_is_noop(self):
        """Dropping a Ready entry that does not exist returns the same state."""
        state = LifecycleState({"other": Ready("o.apk")})

        transition = lifecycle.drop_ready(state, "app")

        assert transition.state is state

    def test_cancel(self, active_state):
        """Cancel clears an active download."""
        assert lifecycle.cancel(active_state, "app").state.get("app") is IDLE

    def test_restore_ready_only_from_idle(self):
        """A notification tap cannot resurrect a file queued for cleanup."""
        state = LifecycleState(cleanup={"app": "a.apk"})

        restored = lifecycle.restore_ready(state, "app", "a.apk").state
        assert restored.ready_file("app") is None
        assert restored.cleanup_file("app") == "a.apk"

        newer = lifecycle.restore_ready(state, "app", "b.apk").state
        assert newer.ready_file("app") == "b.apk"

        fresh = lifecycle.restore_ready(LifecycleState(), "app", "a.apk").state
        assert fresh.get("app") == Ready("a.apk")


class TestPersistenceMaps:
    """Test conversion to and from the persisted maps."""

    def test_round_trip(self):
        """Each phase lands in its own map."""
        state = LifecycleState(
            {
                "a": Active("1", "a.apk"),
                "b": Ready("b.apk"),
                "c": Installing("c.apk"),
            },
            {"a": "a-old.apk", "d": "d.apk"},
        )

        active, ready, cleanup = state.to_maps()

        assert active == {"a": "1|a.apk"}
        assert ready == {"b": "b.apk", "c": "c.apk"}
        assert cleanup == {"a": "a-old.apk", "d": "d.apk"}
        restored = LifecycleState.from_maps(active, ready, cleanup)
        assert restored.get("c") == Ready("c.apk")
        assert restored.cleanup == {"a": "a-old.apk", "d": "d.apk"}

    def test_from_maps_precedence(self):
        """Active wins over Ready; cleanups survive next to either."""
        state = LifecycleState.from_maps(
            {"x": "9|x.apk"},
            {"x": "x.apk", "y": "y.apk"},
            {"x": "x-old.apk", "y": "y-old.apk"},
        )

        assert state.get("x") == Active("9", "x.apk")
        assert state.get("y") == Ready("y.apk")
        assert state.cleanup_file("x") == "x-old.apk"
        assert state.cleanup_file("y") == "y-old.apk"

    def test_split_composite(self):
        """A composite without a file name yields an empty name."""
        assert split_composite("12|App.apk") == ("12", "App.apk")
        assert split_composite("12") == ("12", "")
