"""
Retry Controller for Job Scheduler.

- Decides whether a failed run attempt is retried or final
- Puts retried jobs back to PENDING after a fixed delay (one-shot timer)
- Cancels pending re-queues on deletion or shutdown

What RetryController MUST NOT do:
- Launch processes
- Free slots (the scheduler does that before asking for a decision)
- Retry more than max_retries times
"""

import logging
import threading
from typing import Callable, Protocol

from .entities import Job, JobStatus
from .errors import LaunchFailure


logger = logging.getLogger(__name__)


DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0


class TimerHandle(Protocol):
    """Anything that can be cancelled before it fires."""

    def cancel(self) -> None:
        ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def start_timer(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Start a daemon threading.Timer."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class RetryController:
    """
    Bounded retry policy.

    A failed attempt with retry_count < max_retries:
        retry_count += 1, status RETRIED, timestamps cleared,
        re-queue to PENDING after retry_delay seconds
    Otherwise:
        status FAILED

    Failures to start a process and nonzero exits are treated the same.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        timer_factory: TimerFactory = start_timer,
    ):
        """
        Initialize RetryController.

        Args:
            max_retries: Maximum automatic retries per job (>= 0)
            retry_delay: Seconds a RETRIED job waits before re-entering PENDING
            timer_factory: Creates one-shot timers (injectable for tests)
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        if retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {retry_delay}")

        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._timer_factory = timer_factory
        self._timers: dict[str, TimerHandle] = {}
        self._timers_lock = threading.Lock()

    # =========================================================================
    # Retry Evaluation
    # =========================================================================

    def on_job_failed(
        self,
        job: Job,
        failure: LaunchFailure,
        requeue: Callable[[str], None],
    ) -> bool:
        """
        Apply the retry policy to a job whose run attempt failed.

        Called by the scheduler with its lock held, after the job's slot
        has been released.

        Args:
            job: The RUNNING job that failed
            failure: What went wrong
            requeue: Called with the job id once the retry delay elapses

        Returns:
            True if a retry was scheduled, False if the job is now FAILED
        """
        job.set_exit_code(failure.exit_code)

        if job.retry_count < self.max_retries:
            job.increment_retry()
            job.update_status(JobStatus.RETRIED)
            job.clear_run_timestamps()

            logger.info(
                f"Retrying job {job.id} (attempt {job.retry_count}/{self.max_retries}) "
                f"in {self.retry_delay}s"
            )
            self._schedule(job.id, requeue)
            return True

        job.update_status(JobStatus.FAILED)
        logger.warning(
            f"Job {job.id} failed after {job.retry_count} retry attempts "
            f"(exit code {failure.exit_code})"
        )
        return False

    # =========================================================================
    # Re-queue Timers
    # =========================================================================

    def _schedule(self, job_id: str, requeue: Callable[[str], None]) -> None:
        def fire() -> None:
            with self._timers_lock:
                self._timers.pop(job_id, None)
            try:
                requeue(job_id)
            except Exception:
                logger.exception(f"Error re-queueing job {job_id}")

        # Held across the factory call so fire() cannot run before the
        # timer is registered. Factories must not call back synchronously.
        with self._timers_lock:
            previous = self._timers.pop(job_id, None)
            if previous is not None:
                previous.cancel()
            self._timers[job_id] = self._timer_factory(self.retry_delay, fire)

    def cancel(self, job_id: str) -> bool:
        """
        Cancel the pending re-queue for a job.

        Returns:
            True if a timer was pending
        """
        with self._timers_lock:
            timer = self._timers.pop(job_id, None)
        if timer is None:
            return False
        timer.cancel()
        logger.debug(f"Cancelled pending retry for job {job_id}")
        return True

    def cancel_all(self) -> int:
        """Cancel every pending re-queue; returns how many were pending."""
        with self._timers_lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        return len(timers)

    def has_pending_retry(self, job_id: str) -> bool:
        with self._timers_lock:
            return job_id in self._timers

    @property
    def pending_count(self) -> int:
        with self._timers_lock:
            return len(self._timers)
