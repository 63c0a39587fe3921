"""
Scheduler Service - Main entry point for the Job Scheduler.

This service owns all scheduler state and coordinates the components:
- Dispatcher (slot accounting and priority dispatch)
- Launcher (external process execution, via the Dispatcher)
- RetryController (bounded retries with delayed re-queue)
- Watchdog (advisory timeout monitoring)

All mutations of the job map and the running set happen under one lock.
Processes are launched after the lock is released, so completions (which
may arrive on any thread, or synchronously) take the same lock without
deadlocking.

Usage:
    service = SchedulerService.create(settings)
    service.start()
    job = service.submit("build", ["--fast"], priority=5)
    ...
    service.shutdown()
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

from .dispatcher import DispatchClaim, Dispatcher
from .entities import (
    DEFAULT_PRIORITY,
    Job,
    JobSnapshot,
    JobStatus,
    LaunchHandle,
    parse_status,
    utcnow,
)
from .errors import InvalidStateError, JobNotFoundError, ValidationError
from .launcher import Launcher, LaunchResult, SubprocessLauncher, command_template
from .retry_controller import RetryController, TimerFactory, start_timer
from .stats import JobStats, compute_stats
from .watchdog import Watchdog


logger = logging.getLogger(__name__)


DEFAULT_LIST_LIMIT = 50

# RETRIED jobs are deletable too: deleting one cancels its pending re-queue
DELETABLE_STATUSES = frozenset(
    {JobStatus.PENDING, JobStatus.PAUSED, JobStatus.RETRIED}
)


@dataclass(frozen=True)
class JobPage:
    """One page of a filtered job listing."""

    total: int
    jobs: list


class SchedulerService:
    """
    Owns the job collection and coordinates dispatch, completion and retry.

    Provides:
    - Submission, listing, lookup, priority update, deletion, pause/resume
    - Dispatch evaluation after every state change that can free or fill a slot
    - Completion handling with bounded retries
    - Aggregate statistics
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        retry_controller: RetryController,
        watchdog: Optional[Watchdog] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize SchedulerService with its components.

        Use SchedulerService.create() for convenient construction.
        """
        self.dispatcher = dispatcher
        self.retry_controller = retry_controller
        self.watchdog = watchdog
        self._clock = clock

        # Insertion order is submission order (listing and tie-breaking)
        self._jobs: dict[str, Job] = {}
        self._running: set[str] = set()
        self._lock = threading.RLock()
        self._started = False

        # Single active dispatcher; others only request a re-run
        self._dispatching = False
        self._dispatch_requested = False

    @classmethod
    def create(
        cls,
        settings,
        launcher: Optional[Launcher] = None,
        timer_factory: TimerFactory = start_timer,
        clock: Callable[[], datetime] = utcnow,
    ) -> "SchedulerService":
        """
        Create a SchedulerService with all components wired together.

        Args:
            settings: Settings carrying concurrency, retry and timeout values
            launcher: Process launcher (default: SubprocessLauncher)
            timer_factory: One-shot timer factory for retry re-queues
            clock: Source of timestamps

        Returns:
            Configured SchedulerService
        """
        if launcher is None:
            launcher = SubprocessLauncher()

        dispatcher = Dispatcher(
            launcher=launcher,
            max_concurrent=settings.max_concurrent_jobs,
            command_template=command_template(
                executable_path=settings.executable_path
            ),
        )

        retry_controller = RetryController(
            max_retries=settings.job_retry_attempts,
            retry_delay=settings.job_retry_delay,
            timer_factory=timer_factory,
        )

        service = cls(
            dispatcher=dispatcher,
            retry_controller=retry_controller,
            clock=clock,
        )

        service.watchdog = Watchdog(
            get_running=service.list_running,
            timeout=settings.job_timeout,
            interval=settings.watchdog_interval,
            clock=clock,
        )

        logger.info(f"Command template: {' '.join(dispatcher.command_template)}")
        logger.info(f"Max concurrent jobs: {dispatcher.max_concurrent}")
        logger.info(f"Job retry attempts: {retry_controller.max_retries}")

        return service

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start background monitoring."""
        if self._started:
            return
        if self.watchdog is not None:
            self.watchdog.start()
        self._started = True
        logger.info("Scheduler service started")

    def shutdown(self) -> None:
        """
        Stop background monitoring and cancel pending retries.

        Running processes are left to finish on their own.
        """
        if self.watchdog is not None:
            self.watchdog.stop()
        cancelled = self.retry_controller.cancel_all()
        self._started = False
        logger.info(f"Scheduler service stopped ({cancelled} pending retries cancelled)")

    @property
    def is_running(self) -> bool:
        return self._started

    @property
    def max_concurrent(self) -> int:
        return self.dispatcher.max_concurrent

    @property
    def running_count(self) -> int:
        with self._lock:
            return len(self._running)

    # =========================================================================
    # Job Operations
    # =========================================================================

    def submit(
        self,
        name: str,
        args: Optional[Sequence[str]] = None,
        priority: Optional[int] = None,
    ) -> JobSnapshot:
        """
        Create a job and try to dispatch it.

        Args:
            name: Job name, passed to the command as its first argument
            args: Further command arguments
            priority: 1 (lowest) to 5 (highest); None means 3

        Returns:
            Snapshot of the job after the dispatch evaluation

        Raises:
            ValidationError: If name, args or priority are malformed
        """
        if priority is None:
            priority = DEFAULT_PRIORITY

        # Validation happens in the constructor, before registration
        job = Job(name, args, priority=priority, clock=self._clock)

        with self._lock:
            self._jobs[job.id] = job
            snapshot = job.snapshot()

        logger.info(
            f"Created job {job.id} with name {job.name} "
            f"(args={list(job.args)}, priority={job.priority})"
        )

        self.dispatch()
        return self._current_snapshot(job.id, snapshot)

    def list_jobs(
        self,
        status: Any = None,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> JobPage:
        """
        List jobs in submission order.

        Args:
            status: Only include jobs with this exact status
            limit: Maximum jobs to return (>= 1)
            offset: Jobs to skip (>= 0)

        Returns:
            JobPage whose total is the filtered count before pagination

        Raises:
            ValidationError: If status is unknown or limit/offset out of range
        """
        status_filter = parse_status(status) if status is not None else None

        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(f"limit must be a positive integer, got {limit!r}")
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise ValidationError(f"offset must be a non-negative integer, got {offset!r}")

        with self._lock:
            snapshots = [
                job.snapshot()
                for job in self._jobs.values()
                if status_filter is None or job.status == status_filter
            ]

        return JobPage(total=len(snapshots), jobs=snapshots[offset:offset + limit])

    def list_running(self) -> list[JobSnapshot]:
        """Snapshots of all RUNNING jobs."""
        with self._lock:
            return [
                job.snapshot()
                for job in self._jobs.values()
                if job.status == JobStatus.RUNNING
            ]

    def get_job(self, job_id: str) -> JobSnapshot:
        """
        Get a job by ID.

        Raises:
            JobNotFoundError: If no such job exists
        """
        with self._lock:
            return self._get(job_id).snapshot()

    def update_priority(self, job_id: str, priority: Any) -> JobSnapshot:
        """
        Change a job's priority.

        A PENDING job is re-evaluated for dispatch immediately, so raising
        its priority can put it ahead of other pending jobs.

        Raises:
            JobNotFoundError: If no such job exists
            ValidationError: If priority is not an integer in [1, 5]
        """
        with self._lock:
            job = self._get(job_id)
            old_priority = job.priority
            job.update_priority(priority)
            is_pending = job.status == JobStatus.PENDING
            snapshot = job.snapshot()

        logger.info(f"Job {job_id} priority changed: {old_priority} -> {priority}")

        if is_pending:
            self.dispatch()
        return self._current_snapshot(job_id, snapshot)

    def remove(self, job_id: str) -> None:
        """
        Delete a job that is not running.

        Raises:
            JobNotFoundError: If no such job exists
            InvalidStateError: If the job's status is not deletable
        """
        with self._lock:
            job = self._get(job_id)

            if job.status not in DELETABLE_STATUSES:
                raise InvalidStateError(job_id, job.status.value, "delete")

            if job.status == JobStatus.RETRIED:
                self.retry_controller.cancel(job_id)

            del self._jobs[job_id]

        logger.info(f"Deleted job {job_id} ({job.name})")

    def pause(self, job_id: str) -> JobSnapshot:
        """
        Hold a PENDING job back from dispatch.

        Raises:
            JobNotFoundError: If no such job exists
            InvalidStateError: If the job is not PENDING
        """
        with self._lock:
            job = self._get(job_id)
            if job.status != JobStatus.PENDING:
                raise InvalidStateError(job_id, job.status.value, "pause")
            job.update_status(JobStatus.PAUSED)
            snapshot = job.snapshot()

        logger.info(f"Paused job {job_id}")
        return snapshot

    def resume(self, job_id: str) -> JobSnapshot:
        """
        Return a PAUSED job to the pending queue.

        Raises:
            JobNotFoundError: If no such job exists
            InvalidStateError: If the job is not PAUSED
        """
        with self._lock:
            job = self._get(job_id)
            if job.status != JobStatus.PAUSED:
                raise InvalidStateError(job_id, job.status.value, "resume")
            job.update_status(JobStatus.PENDING)
            snapshot = job.snapshot()

        logger.info(f"Resumed job {job_id}")

        self.dispatch()
        return self._current_snapshot(job_id, snapshot)

    def stats(self) -> JobStats:
        """Aggregate statistics over a consistent snapshot of all jobs."""
        with self._lock:
            snapshots = [job.snapshot() for job in self._jobs.values()]
        return compute_stats(snapshots)

    # =========================================================================
    # Dispatch
    # =========================================================================

    def dispatch(self) -> list[JobSnapshot]:
        """
        Run a dispatch evaluation.

        Claims as many PENDING jobs as there are free slots (under the
        lock), then launches them. Calling it again with nothing changed
        does nothing.

        Only one caller dispatches at a time. A call made while another
        evaluation is in progress (including one made from a completion
        delivered synchronously by the launcher) just flags a re-run; the
        active caller loops until no request is left. Nesting depth stays
        constant however many completions arrive synchronously.

        Returns:
            Snapshots of the jobs started by this call; empty if the
            evaluation was handed to the active caller
        """
        with self._lock:
            self._dispatch_requested = True
            if self._dispatching:
                return []
            self._dispatching = True

        claimed: list[DispatchClaim] = []
        try:
            while True:
                with self._lock:
                    if not self._dispatch_requested:
                        self._dispatching = False
                        break
                    self._dispatch_requested = False
                    claims = self.dispatcher.claim(self._jobs.values(), self._running)

                for claim in claims:
                    handle = self.dispatcher.launch(claim, self._completion_callback(claim))
                    if handle is not None:
                        self._record_handle(claim, handle)
                claimed.extend(claims)
        except BaseException:
            with self._lock:
                self._dispatching = False
            raise

        with self._lock:
            return [
                self._jobs[claim.job_id].snapshot()
                for claim in claimed
                if claim.job_id in self._jobs
            ]

    def _completion_callback(self, claim: DispatchClaim) -> Callable[[LaunchResult], None]:
        def on_complete(result: LaunchResult) -> None:
            self._handle_completion(claim, result)
        return on_complete

    def _record_handle(self, claim: DispatchClaim, handle: LaunchHandle) -> None:
        with self._lock:
            job = self._jobs.get(claim.job_id)
            if not self._is_current_attempt(job, claim):
                return
            try:
                job.set_launch_handle(handle)
            except ValidationError as e:
                logger.warning(f"Ignoring launch handle for job {claim.job_id}: {e}")

    def _is_current_attempt(self, job: Optional[Job], claim: DispatchClaim) -> bool:
        return (
            job is not None
            and job.id in self._running
            and job.status == JobStatus.RUNNING
            and job.retry_count == claim.attempt
        )

    # =========================================================================
    # Completion Handling
    # =========================================================================

    def _handle_completion(self, claim: DispatchClaim, result: LaunchResult) -> None:
        """
        Apply the outcome of one run attempt, then backfill the freed slot.

        Errors raised while applying the outcome are logged and the job is
        put into FAILED; they never reach the launcher thread.
        """
        with self._lock:
            job = self._jobs.get(claim.job_id)

            if not self._is_current_attempt(job, claim):
                logger.warning(
                    f"Ignoring stale completion for job {claim.job_id} "
                    f"(attempt {claim.attempt})"
                )
            else:
                self._running.discard(job.id)
                try:
                    self._apply_result(job, result)
                except Exception:
                    logger.exception(f"Error handling completion of job {job.id}")
                    job.force_failed()

        self.dispatch()

    def _apply_result(self, job: Job, result: LaunchResult) -> None:
        if result.succeeded:
            job.update_status(JobStatus.COMPLETED)
            job.set_exit_code(0)
            logger.info(f"Job {job.id} completed successfully")
            return

        failure = result.error
        logger.error(f"Job {job.id} failed: {failure}")
        self.retry_controller.on_job_failed(job, failure, self._requeue)

    def _requeue(self, job_id: str) -> None:
        """Retry delay elapsed: RETRIED -> PENDING, then dispatch."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status != JobStatus.RETRIED:
                logger.debug(f"Skipping re-queue of job {job_id}: no longer waiting")
                return
            job.update_status(JobStatus.PENDING)

        logger.info(f"Job {job_id} re-queued for retry {job.retry_count}")
        self.dispatch()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def _current_snapshot(self, job_id: str, fallback: JobSnapshot) -> JobSnapshot:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.snapshot() if job is not None else fallback
