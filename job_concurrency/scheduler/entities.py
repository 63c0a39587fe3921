"""
Scheduler Domain Entities.

- JobStatus: lifecycle states of a job
- Job: single schedulable unit wrapping a command execution request
- JobSnapshot: read-only copy of a Job handed out to callers
- LaunchHandle: process identity returned by a launcher

Job state machine:

    PENDING ──dispatch──> RUNNING ──exit 0──> COMPLETED
       │  ^                  │
  pause│  │resume            ├──failure, retries left──> RETRIED ──delay──> PENDING
       v  │                  │
     PAUSED                  └──failure, retries exhausted──> FAILED

STOPPING is reserved and has no inbound transitions.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Sequence
import logging
import uuid

from .errors import InvalidStateError, ValidationError


logger = logging.getLogger(__name__)


MIN_PRIORITY = 1
MAX_PRIORITY = 5
DEFAULT_PRIORITY = 3


class JobStatus(str, Enum):
    """Job status values (wire format is lower-case)."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    RETRIED = "retried"
    PAUSED = "paused"
    STOPPING = "stopping"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})

_TRANSITIONS = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING, JobStatus.PAUSED}),
    JobStatus.RUNNING: frozenset(
        {JobStatus.COMPLETED, JobStatus.RETRIED, JobStatus.FAILED}
    ),
    JobStatus.RETRIED: frozenset({JobStatus.PENDING}),
    JobStatus.PAUSED: frozenset({JobStatus.PENDING}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
    JobStatus.STOPPING: frozenset(),
}


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Get current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_status(value: Any) -> JobStatus:
    """
    Coerce a status value (enum member or its wire string) to JobStatus.

    Raises:
        ValidationError: If the value is not a known status
    """
    if isinstance(value, JobStatus):
        return value
    try:
        return JobStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in JobStatus)
        raise ValidationError(
            f"Invalid status: {value!r}. Valid statuses are: {valid}"
        ) from None


def validate_priority(priority: Any) -> int:
    """
    Check that priority is an integer in [MIN_PRIORITY, MAX_PRIORITY].

    Raises:
        ValidationError: If priority is not an int or out of range
    """
    if (
        isinstance(priority, bool)
        or not isinstance(priority, int)
        or not MIN_PRIORITY <= priority <= MAX_PRIORITY
    ):
        raise ValidationError(
            f"Invalid priority: {priority!r}. "
            f"Must be an integer between {MIN_PRIORITY} and {MAX_PRIORITY}"
        )
    return priority


@dataclass(frozen=True)
class LaunchHandle:
    """Identity of a launched process."""

    pid: int


@dataclass(frozen=True)
class JobSnapshot:
    """Read-only view of a Job at a point in time."""

    id: str
    name: str
    args: tuple
    status: JobStatus
    priority: int
    created_at: datetime
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    exit_code: Optional[int]
    retry_count: int
    pid: Optional[int] = None

    @property
    def duration(self) -> Optional[float]:
        """Seconds between start and completion, if both are known."""
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        data = asdict(self)
        data["args"] = list(self.args)
        data["status"] = self.status.value
        return data


class Job:
    """
    Single schedulable unit.

    Mutability rules:
    - id, name, args, created_at: immutable
    - priority: mutable at any time (validated)
    - status: only along the state machine transitions
    - started_at, completed_at: write-once per run attempt
    - retry_count: only grows, bound enforced by the scheduler

    Only the SchedulerService mutates a Job; everyone else gets snapshots.
    """

    def __init__(
        self,
        name: str,
        args: Optional[Sequence[str]] = None,
        priority: int = DEFAULT_PRIORITY,
        clock: Callable[[], datetime] = utcnow,
        job_id: Optional[str] = None,
    ):
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Job name must be a non-empty string")

        if args is None:
            args = ()
        if isinstance(args, (str, bytes)) or not isinstance(args, (list, tuple)):
            raise ValidationError("Job arguments must be a list of strings")
        if not all(isinstance(arg, str) for arg in args):
            raise ValidationError("Job arguments must be a list of strings")

        validate_priority(priority)

        self._clock = clock
        self._id = job_id or generate_uuid()
        self._name = name
        self._args = tuple(args)
        self._status = JobStatus.PENDING
        self._priority = priority
        self._created_at = clock()
        self._started_at: Optional[datetime] = None
        self._completed_at: Optional[datetime] = None
        self._exit_code: Optional[int] = None
        self._retry_count = 0
        self._launch_handle: Optional[LaunchHandle] = None

        logger.debug(f"Job created: {self._id} ({self._name}), priority {priority}")

    # =========================================================================
    # Read-only accessors
    # =========================================================================

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def args(self) -> tuple:
        return self._args

    @property
    def status(self) -> JobStatus:
        return self._status

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def started_at(self) -> Optional[datetime]:
        return self._started_at

    @property
    def completed_at(self) -> Optional[datetime]:
        return self._completed_at

    @property
    def exit_code(self) -> Optional[int]:
        return self._exit_code

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def launch_handle(self) -> Optional[LaunchHandle]:
        return self._launch_handle

    def is_terminal(self) -> bool:
        """Check if job is in a terminal state."""
        return self._status in TERMINAL_STATUSES

    # =========================================================================
    # Validating mutators
    # =========================================================================

    def update_status(self, status: Any) -> "Job":
        """
        Move the job along the state machine.

        Raises:
            ValidationError: If status is not a known value
            InvalidStateError: If the transition is not allowed
        """
        new_status = parse_status(status)
        old_status = self._status

        if new_status not in _TRANSITIONS[old_status]:
            raise InvalidStateError(
                self._id, old_status.value, f"move to '{new_status.value}'"
            )

        self._status = new_status

        if new_status == JobStatus.RUNNING and self._started_at is None:
            self._started_at = self._clock()

        if new_status in TERMINAL_STATUSES and self._completed_at is None:
            self._completed_at = self._clock()

        logger.debug(
            f"Job {self._id} status changed: {old_status.value} -> {new_status.value}"
        )
        return self

    def update_priority(self, priority: Any) -> "Job":
        """Set a new priority in [1, 5]."""
        validate_priority(priority)
        logger.debug(
            f"Job {self._id} priority changed: {self._priority} -> {priority}"
        )
        self._priority = priority
        return self

    def increment_retry(self) -> "Job":
        self._retry_count += 1
        logger.debug(f"Job {self._id} retry count incremented to {self._retry_count}")
        return self

    def set_exit_code(self, code: Any) -> "Job":
        """Record the exit code of the last run attempt."""
        if isinstance(code, bool) or not isinstance(code, int):
            raise ValidationError(
                f"Exit code must be an integer, got {type(code).__name__}"
            )
        self._exit_code = code
        return self

    def set_launch_handle(self, handle: Any) -> "Job":
        """
        Record the process handle of the current run attempt.

        Observability only: the scheduler never manages the process itself.
        """
        pid = getattr(handle, "pid", None)
        if isinstance(pid, bool) or not isinstance(pid, int) or pid <= 0:
            raise ValidationError("Invalid launch handle: missing process id")
        self._launch_handle = LaunchHandle(pid=pid)
        logger.debug(f"Job {self._id} launched with PID {pid}")
        return self

    def clear_run_timestamps(self) -> "Job":
        """Forget started_at/completed_at so the next attempt records its own."""
        self._started_at = None
        self._completed_at = None
        return self

    def force_failed(self) -> "Job":
        """
        Put the job into FAILED regardless of the state machine.

        Only used when completion handling itself blew up.
        """
        self._status = JobStatus.FAILED
        if self._completed_at is None:
            self._completed_at = self._clock()
        return self

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(
            id=self._id,
            name=self._name,
            args=self._args,
            status=self._status,
            priority=self._priority,
            created_at=self._created_at,
            started_at=self._started_at,
            completed_at=self._completed_at,
            exit_code=self._exit_code,
            retry_count=self._retry_count,
            pid=self._launch_handle.pid if self._launch_handle else None,
        )

    def __repr__(self) -> str:
        return (
            f"Job(id={self._id!r}, name={self._name!r}, "
            f"status={self._status.value!r}, priority={self._priority})"
        )
