"""Tests for the launcher boot-wait state machine"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from waydroid_atv import launcher
from waydroid_atv.core.errors import BootTimeoutError, LauncherError, SessionDiedError
from waydroid_atv.launcher import BOOT_COMPLETED_PROP, BootState, BootWaiter
from waydroid_atv.runtime.inspector import WaydroidInspector


class FakeInspector:
    """Scripted runtime.

    ``status(n)`` answers the n-th status query (0 is the check made before
    polling starts); ``prop(n)`` answers the n-th boot-property query.
    """

    def __init__(self, status=lambda n: True, prop=lambda n: "0"):
        self.status = status
        self.prop = prop
        self.status_calls = 0
        self.prop_calls = 0
        self.started = 0
        self.ui_launches = 0

    def is_running(self):
        answer = self.status(self.status_calls)
        self.status_calls += 1
        return answer

    def get_property(self, name):
        assert name == BOOT_COMPLETED_PROP
        self.prop_calls += 1
        return self.prop(self.prop_calls)

    def start_session(self):
        self.started += 1

    def show_ui(self):
        self.ui_launches += 1


def make_waiter(inspector, sleeps):
    return BootWaiter(inspector, sleep=sleeps.append)


class TestBootWaiter:
    """Boot polling"""

    def test_boots_after_fifth_poll(self):
        sleeps = []
        inspector = FakeInspector(prop=lambda n: "1" if n >= 5 else "0")

        result = make_waiter(inspector, sleeps).run()

        assert result.state is BootState.BOOTED
        assert result.polls == 5
        assert inspector.ui_launches == 1
        assert inspector.started == 0
        assert sleeps == [1.0] * 4

    def test_times_out_after_sixty_polls(self):
        sleeps = []
        inspector = FakeInspector(prop=lambda n: None)
        waiter = make_waiter(inspector, sleeps)

        with pytest.raises(BootTimeoutError):
            waiter.run()

        assert waiter.state is BootState.TIMED_OUT
        assert inspector.prop_calls == 60
        assert sleeps == [1.0] * 60
        assert inspector.ui_launches == 0

    def test_session_death_after_grace_window(self):
        sleeps = []
        inspector = FakeInspector(status=lambda n: n <= 10)
        waiter = make_waiter(inspector, sleeps)

        with pytest.raises(SessionDiedError):
            waiter.run()

        assert waiter.state is BootState.SESSION_DIED
        # Iterations 1-10 polled, iteration 11 died before polling
        assert inspector.prop_calls == 10
        assert inspector.ui_launches == 0

    def test_not_running_tolerated_during_grace(self):
        sleeps = []
        inspector = FakeInspector(status=lambda n: n > 10,
                                  prop=lambda n: "1" if n >= 12 else "")

        result = make_waiter(inspector, sleeps).run()

        assert result.state is BootState.BOOTED
        assert result.polls == 12
        assert inspector.started == 1
        # Settle delay comes first, then one second per unfinished poll
        assert sleeps == [2.0] + [1.0] * 11

    def test_boot_flag_is_string_compared(self):
        inspector = FakeInspector(prop=lambda n: "true")
        waiter = BootWaiter(inspector, timeout=3, sleep=lambda s: None)

        assert waiter.wait().state is BootState.TIMED_OUT

    def test_starts_session_when_absent(self):
        sleeps = []
        inspector = FakeInspector(status=lambda n: n > 0, prop=lambda n: "1")

        result = make_waiter(inspector, sleeps).run()

        assert inspector.started == 1
        assert result.polls == 1
        assert sleeps == [2.0]


class TestLauncherCli:
    """waydroid-atv-launch entry point"""

    def test_refuses_root(self):
        with patch.object(launcher, "is_root", return_value=True), \
                patch.object(launcher, "WaydroidInspector") as inspector_cls:
            result = CliRunner().invoke(launcher.main, [])

        assert result.exit_code == 1
        inspector_cls.assert_not_called()

    def test_missing_waydroid_binary_fails_cleanly(self):
        inspector = WaydroidInspector("waydroid-atv-missing-binary")

        with patch.object(launcher, "is_root", return_value=False), \
                patch.object(launcher, "WaydroidInspector", return_value=inspector), \
                patch.object(launcher.time, "sleep"):
            result = CliRunner().invoke(launcher.main, [])

        assert result.exit_code == 1
        assert not isinstance(result.exception, OSError)

    def test_timeout_exits_with_failure(self):
        inspector = FakeInspector(prop=lambda n: "0")

        with patch.object(launcher, "is_root", return_value=False), \
                patch.object(launcher, "WaydroidInspector", return_value=inspector), \
                patch.object(launcher.time, "sleep"):
            result = CliRunner().invoke(launcher.main, [])

        assert result.exit_code == 1
        assert inspector.ui_launches == 0


class TestWaydroidInspector:
    """waydroid CLI adapter"""

    def test_start_without_binary_raises_launcher_error(self):
        inspector = WaydroidInspector("waydroid-atv-missing-binary")

        with pytest.raises(LauncherError, match="waydroid-atv-missing-binary"):
            inspector.start_session()

    def test_show_ui_without_binary_raises_launcher_error(self):
        with patch("waydroid_atv.runtime.inspector.os.execvp",
                   side_effect=FileNotFoundError(2, "No such file or directory")):
            with pytest.raises(LauncherError, match="waydroid status"):
                WaydroidInspector().show_ui()

    def test_missing_binary_is_not_running(self):
        assert WaydroidInspector("waydroid-atv-missing-binary").is_running() is False
