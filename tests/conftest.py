"""
Pytest configuration and shared fixtures.
"""

import logging
import os
import pytest
from typing import Callable, Optional

from job_concurrency.infra.logging_config import PACKAGE_LOGGER
from job_concurrency.scheduler import (
    Dispatcher,
    LaunchHandle,
    Launcher,
    LaunchResult,
    RetryController,
    SchedulerService,
)


CONFIG_ENV_VARS = (
    "APP_ENV",
    "MAX_CONCURRENT_JOBS",
    "JOB_RETRY_ATTEMPTS",
    "JOB_RETRY_DELAY_SECONDS",
    "JOB_TIMEOUT_SECONDS",
    "WATCHDOG_INTERVAL_SECONDS",
    "EXECUTABLE_PATH",
    "LOG_LEVEL",
    "LOG_DIR",
    "HOST",
    "PORT",
)


@pytest.fixture(autouse=True, scope="function")
def reset_config_env():
    """
    Clear configuration variables before each test.

    Tests start from the built-in defaults unless they set a variable
    explicitly; original values are restored afterwards.
    """
    original = {name: os.environ.get(name) for name in CONFIG_ENV_VARS}
    for name in CONFIG_ENV_VARS:
        os.environ.pop(name, None)

    yield

    for name, value in original.items():
        if value is not None:
            os.environ[name] = value
        else:
            os.environ.pop(name, None)


@pytest.fixture(autouse=True, scope="function")
def reset_package_logger():
    """Undo setup_logging() so caplog keeps seeing package records."""
    yield

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


class HoldingLauncher(Launcher):
    """Launcher whose processes run until the test completes them."""

    def __init__(self):
        self.callbacks: dict[int, Callable[[LaunchResult], None]] = {}
        self.commands: list[list] = []
        self._next_pid = 500

    def launch(self, command, on_complete) -> Optional[LaunchHandle]:
        self._next_pid += 1
        self.commands.append(list(command))
        self.callbacks[self._next_pid] = on_complete
        return LaunchHandle(pid=self._next_pid)

    def complete(self, pid: int, result: LaunchResult = LaunchResult()) -> None:
        self.callbacks.pop(pid)(result)


@pytest.fixture
def holding_launcher() -> HoldingLauncher:
    return HoldingLauncher()


@pytest.fixture
def api_service(holding_launcher) -> SchedulerService:
    """SchedulerService for API tests: 2 slots, retries never fire on their own."""
    return SchedulerService(
        dispatcher=Dispatcher(
            launcher=holding_launcher,
            max_concurrent=2,
            command_template=["run-job"],
        ),
        retry_controller=RetryController(
            max_retries=1,
            retry_delay=60.0,
            timer_factory=lambda delay, callback: _NeverFires(),
        ),
    )


class _NeverFires:
    def cancel(self) -> None:
        pass
