"""
Scheduler Test Fixtures.

Base fixtures:
  - Scripted launcher (no subprocess; completions delivered on demand)
  - Manual retry timers (fired explicitly by the test)
  - Mocked clock at fixed time

Per-test fixtures:
  - make_service factory for custom concurrency/retry limits
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from job_concurrency.scheduler import (
    Dispatcher,
    LaunchFailure,
    LaunchHandle,
    Launcher,
    LaunchResult,
    RetryController,
    SchedulerService,
)


# Fixed time for deterministic tests
FIXED_DATETIME = datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)

# Tests use a one-word command template, so command[1] is the job name
TEST_COMMAND_TEMPLATE = ("run-job",)


def success() -> LaunchResult:
    return LaunchResult(output="ok")


def failure(exit_code: int = 1, spawn_failed: bool = False) -> LaunchResult:
    return LaunchResult(
        error=LaunchFailure(exit_code, output="boom", spawn_failed=spawn_failed)
    )


class MockClock:
    """
    Mock clock for deterministic time control.

    - Starts at fixed epoch
    - Advances only when explicitly ticked
    """

    def __init__(self, start_time: datetime = FIXED_DATETIME):
        self._current = start_time

    def now(self) -> datetime:
        return self._current

    def tick(self, seconds: float = 1) -> None:
        """Advance time by specified seconds."""
        self._current += timedelta(seconds=seconds)


class FakeLaunch:
    """One recorded launch; the test decides when and how it finishes."""

    def __init__(self, command: list, on_complete: Callable, pid: int):
        self.command = command
        self.on_complete = on_complete
        self.pid = pid
        self.done = False

    @property
    def job_name(self) -> str:
        return self.command[len(TEST_COMMAND_TEMPLATE)]

    def finish(self, result: LaunchResult) -> None:
        assert not self.done, f"launch of {self.job_name} already finished"
        self.done = True
        self.on_complete(result)

    def succeed(self) -> None:
        self.finish(success())

    def fail(self, exit_code: int = 1) -> None:
        self.finish(failure(exit_code))


class FakeLauncher(Launcher):
    """
    Scripted launcher for testing.

    By default launches stay open until the test finishes them. With
    auto_result set, every launch completes synchronously with
    auto_result(command).
    """

    def __init__(self):
        self.launches: list[FakeLaunch] = []
        self.auto_result: Optional[Callable[[list], LaunchResult]] = None
        self._next_pid = 1000

    def launch(self, command, on_complete) -> Optional[LaunchHandle]:
        self._next_pid += 1
        launch = FakeLaunch(list(command), on_complete, self._next_pid)
        self.launches.append(launch)

        if self.auto_result is not None:
            launch.finish(self.auto_result(launch.command))

        return LaunchHandle(pid=launch.pid)

    @property
    def pending(self) -> list[FakeLaunch]:
        return [launch for launch in self.launches if not launch.done]

    def launched_names(self) -> list[str]:
        return [launch.job_name for launch in self.launches]

    def pending_for(self, name: str) -> FakeLaunch:
        matches = [launch for launch in self.pending if launch.job_name == name]
        assert len(matches) == 1, f"expected one open launch for {name}, got {len(matches)}"
        return matches[0]


class ManualTimer:
    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if self.cancelled or self.fired:
            return
        self.fired = True
        self.callback()


class ManualTimers:
    """Timer factory whose timers only fire when the test says so."""

    def __init__(self):
        self.timers: list[ManualTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def fire_all(self) -> int:
        active = self.active
        for timer in active:
            timer.fire()
        return len(active)


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def mock_clock() -> MockClock:
    """Create a mock clock at fixed time."""
    return MockClock()


@pytest.fixture
def launcher() -> FakeLauncher:
    """Create a scripted launcher."""
    return FakeLauncher()


@pytest.fixture
def timers() -> ManualTimers:
    """Create a manual timer factory."""
    return ManualTimers()


@pytest.fixture
def make_service(launcher: FakeLauncher, timers: ManualTimers, mock_clock: MockClock) -> Callable:
    """
    Factory fixture for scheduler services.

    Returns a function building a SchedulerService around the shared
    launcher, timers and clock.
    """

    def _create(
        max_concurrent: int = 2,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ) -> SchedulerService:
        dispatcher = Dispatcher(
            launcher=launcher,
            max_concurrent=max_concurrent,
            command_template=TEST_COMMAND_TEMPLATE,
        )
        retry_controller = RetryController(
            max_retries=max_retries,
            retry_delay=retry_delay,
            timer_factory=timers,
        )
        return SchedulerService(
            dispatcher=dispatcher,
            retry_controller=retry_controller,
            clock=mock_clock.now,
        )

    return _create


@pytest.fixture
def service(make_service) -> SchedulerService:
    """SchedulerService with 2 slots and 3 retries."""
    return make_service()
