"""
Scheduler-specific exceptions.

Mapping at the HTTP boundary:
- ValidationError: 400
- JobNotFoundError: 404
- InvalidStateError: 400 (message carries the job's current status)
- LaunchFailure: never leaves the completion handler
"""

from typing import Optional


class SchedulerError(Exception):
    """Base exception for all scheduler errors."""
    pass


class ValidationError(SchedulerError):
    """
    Raised when input is malformed.

    Examples:
    - Empty job name or non-string arguments
    - Priority outside 1..5
    - Non-integer exit code
    - Launch handle without a process id
    """
    pass


class JobNotFoundError(SchedulerError):
    """Raised when a requested job does not exist."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class InvalidStateError(SchedulerError):
    """
    Raised when a job's status forbids the requested operation.

    Examples:
    - Deleting a RUNNING job
    - Pausing a job that is not PENDING
    - A status transition outside the job state machine
    """

    def __init__(self, job_id: str, status: str, operation: str):
        self.job_id = job_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} job {job_id} in status '{status}'"
        )


class LaunchFailure(SchedulerError):
    """
    A run attempt that did not succeed.

    Covers both a process that exited nonzero and a process that could
    not be started at all (spawn_failed=True). Retry policy treats the
    two the same way.
    """

    def __init__(
        self,
        exit_code: int,
        output: str = "",
        spawn_failed: bool = False,
        message: Optional[str] = None,
    ):
        self.exit_code = exit_code
        self.output = output
        self.spawn_failed = spawn_failed
        if message is None:
            if spawn_failed:
                message = f"Process failed to start (exit code {exit_code})"
            else:
                message = f"Process exited with code {exit_code}"
        super().__init__(message)
