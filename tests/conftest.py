# Shared fixtures for AppLock tests.
# Provides a controllable monotonic clock, a manual refresh timer and a
# controller factory wired to a temporary state file.

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable
from unittest.mock import MagicMock

import pytest

from applock.core.controller import AppLockController
from applock.core.models import AccessChallenge, MonotonicTimestamp, PasscodeSettings
from applock.core.store import StateStore

if TYPE_CHECKING:
    from collections.abc import Generator


class FakeClock:
    """Monotonic clock whose readings are set by the test."""

    def __init__(self, boot_epoch: int = 1, uptime_seconds: int = 100) -> None:
        self.current = MonotonicTimestamp(boot_epoch, uptime_seconds)

    def now(self) -> MonotonicTimestamp:
        return self.current

    def set(self, boot_epoch: int, uptime_seconds: int) -> None:
        self.current = MonotonicTimestamp(boot_epoch, uptime_seconds)

    def advance(self, seconds: int) -> None:
        self.current = MonotonicTimestamp(
            self.current.boot_epoch, self.current.uptime_seconds + seconds
        )


class FakeTimer:
    """Refresh timer that only ticks when the test calls fire()."""

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False

    @property
    def is_running(self) -> bool:
        return self.started and not self.cancelled

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if self.is_running:
            self.callback()


class TimerRecorder:
    """Timer factory remembering every timer it built."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def running(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.is_running]


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Temporary directory for state files."""
    return tmp_path


@pytest.fixture
def state_path(temp_dir: Path) -> Path:
    """Path of the lock state file inside the temporary directory."""
    return temp_dir / "applock" / "lockstate.json"


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock reading boot epoch 1, uptime 100 until changed."""
    return FakeClock()


@pytest.fixture
def timers() -> TimerRecorder:
    """Factory of manually fired refresh timers."""
    return TimerRecorder()


@pytest.fixture
def presenter() -> MagicMock:
    """Mock presenter recording challenge and covering-view requests."""
    return MagicMock()


@pytest.fixture
def wall_time() -> MagicMock:
    """Wall clock returning a fixed time until changed."""
    return MagicMock(return_value=1_700_000_000)


@pytest.fixture
def make_controller(
    state_path: Path,
    presenter: MagicMock,
    fake_clock: FakeClock,
    timers: TimerRecorder,
    wall_time: MagicMock,
) -> Generator[Callable[..., AppLockController], None, None]:
    """Build controllers on the shared fakes; closes them after the test."""
    created: list[AppLockController] = []

    def _make(**overrides: object) -> AppLockController:
        kwargs: dict[str, object] = {
            "clock": fake_clock,
            "wall_time": wall_time,
            "settings": PasscodeSettings(autolock_timeout_seconds=30),
            "challenge": AccessChallenge.NUMERICAL_4,
            "application_active": False,
            "timer_factory": timers,
        }
        kwargs.update(overrides)
        store = kwargs.pop("store", None) or StateStore(state_path)
        controller = AppLockController(store, presenter, **kwargs)  # type: ignore[arg-type]
        created.append(controller)
        assert controller.flush(timeout=5)
        return controller

    yield _make

    for controller in created:
        controller.close()
