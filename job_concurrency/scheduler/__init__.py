"""
Job Scheduler Core Module.

Job state machine, priority dispatch with bounded concurrency, bounded
retries and aggregate statistics.
"""

from .entities import (
    DEFAULT_PRIORITY,
    MAX_PRIORITY,
    MIN_PRIORITY,
    Job,
    JobSnapshot,
    JobStatus,
    LaunchHandle,
)
from .errors import (
    SchedulerError,
    ValidationError,
    JobNotFoundError,
    InvalidStateError,
    LaunchFailure,
)
from .launcher import (
    Launcher,
    LaunchResult,
    SPAWN_FAILURE_EXIT_CODE,
    SubprocessLauncher,
    command_template,
    compose_command,
)
from .dispatcher import Dispatcher, DispatchClaim
from .retry_controller import RetryController
from .watchdog import Watchdog
from .stats import JobStats, PatternStats, PATTERNS, compute_stats
from .service import SchedulerService, JobPage

__all__ = [
    # Entities
    "DEFAULT_PRIORITY",
    "MAX_PRIORITY",
    "MIN_PRIORITY",
    "Job",
    "JobSnapshot",
    "JobStatus",
    "LaunchHandle",
    # Errors
    "SchedulerError",
    "ValidationError",
    "JobNotFoundError",
    "InvalidStateError",
    "LaunchFailure",
    # Launcher
    "Launcher",
    "LaunchResult",
    "SPAWN_FAILURE_EXIT_CODE",
    "SubprocessLauncher",
    "command_template",
    "compose_command",
    # Dispatcher
    "Dispatcher",
    "DispatchClaim",
    # Retry
    "RetryController",
    # Watchdog
    "Watchdog",
    # Stats
    "JobStats",
    "PatternStats",
    "PATTERNS",
    "compute_stats",
    # Service
    "SchedulerService",
    "JobPage",
]
