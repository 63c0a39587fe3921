"""
Dispatcher for Job Scheduler.

- Computes free slots from the running set
- Picks PENDING jobs in dispatch order and claims them (PENDING -> RUNNING)
- Hands claimed jobs to the Launcher

Dispatch order: priority DESC, then submission order ASC.

What Dispatcher MUST NOT do:
- Hold the scheduler lock while launching (claims happen under the lock,
  launches after it is released)
- Handle completions or retries
- Exceed max_concurrent running jobs
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .entities import Job, JobStatus, LaunchHandle
from .errors import LaunchFailure
from .launcher import (
    CompletionCallback,
    Launcher,
    LaunchResult,
    SPAWN_FAILURE_EXIT_CODE,
    compose_command,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchClaim:
    """
    A job that was moved to RUNNING and still has to be launched.

    attempt is the job's retry_count at claim time; completions for an
    older attempt are recognised as stale.
    """

    job_id: str
    attempt: int
    command: tuple


class Dispatcher:
    """
    Priority dispatch with bounded-concurrency slot accounting.

    The caller owns the job collection and the running set and must hold
    its lock around claim(). launch() is called without the lock.
    """

    def __init__(
        self,
        launcher: Launcher,
        max_concurrent: int,
        command_template: Sequence[str],
    ):
        """
        Initialize Dispatcher.

        Args:
            launcher: Process launcher used for every run attempt
            max_concurrent: Maximum number of RUNNING jobs (>= 1)
            command_template: Command prefix the job name and args are appended to
        """
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")

        self.launcher = launcher
        self.max_concurrent = max_concurrent
        self.command_template = tuple(command_template)

    def available_slots(self, running: set) -> int:
        return self.max_concurrent - len(running)

    def select(self, jobs: Iterable[Job], running: set) -> list[Job]:
        """
        Pick the jobs that should start now, in dispatch order.

        Args:
            jobs: All jobs, in submission order
            running: Ids of jobs currently holding a slot

        Returns:
            Up to available_slots() PENDING jobs
        """
        available = self.available_slots(running)
        if available <= 0:
            logger.debug(
                f"Max concurrent jobs limit reached "
                f"({len(running)}/{self.max_concurrent})"
            )
            return []

        pending = [job for job in jobs if job.status == JobStatus.PENDING]
        if not pending:
            logger.debug("No pending jobs to process")
            return []

        # sorted() is stable, so submission order breaks priority ties
        pending = sorted(pending, key=lambda job: -job.priority)
        return pending[:available]

    def claim(self, jobs: Iterable[Job], running: set) -> list[DispatchClaim]:
        """
        Move the selected jobs to RUNNING and occupy their slots.

        Must be called with the scheduler lock held.
        """
        claims = []

        for job in self.select(jobs, running):
            job.update_status(JobStatus.RUNNING)
            running.add(job.id)

            command = compose_command(self.command_template, job.name, job.args)
            claims.append(
                DispatchClaim(
                    job_id=job.id,
                    attempt=job.retry_count,
                    command=tuple(command),
                )
            )

            logger.info(
                f"Starting job {job.id} ({job.name}, priority={job.priority}, "
                f"slots {len(running)}/{self.max_concurrent})"
            )

        return claims

    def launch(
        self,
        claim: DispatchClaim,
        on_complete: CompletionCallback,
    ) -> Optional[LaunchHandle]:
        """
        Start the process for a claimed job.

        A launcher that raises instead of reporting is turned into a
        failed completion so the slot is always released.
        """
        try:
            return self.launcher.launch(list(claim.command), on_complete)
        except Exception as e:
            logger.exception(f"Launcher raised for job {claim.job_id}")
            on_complete(
                LaunchResult(
                    error=LaunchFailure(
                        SPAWN_FAILURE_EXIT_CODE,
                        output=str(e),
                        spawn_failed=True,
                    )
                )
            )
            return None
