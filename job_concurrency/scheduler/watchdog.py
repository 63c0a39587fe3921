"""
Advisory timeout watchdog.

Periodically looks at RUNNING jobs and logs a warning for each run
attempt that has been running longer than the configured timeout.
It never terminates a process: completion is only ever detected through
the launcher's callback.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from .entities import JobSnapshot, utcnow


logger = logging.getLogger(__name__)


DEFAULT_INTERVAL_SECONDS = 5.0


class Watchdog:
    """Background monitor for overdue running jobs."""

    def __init__(
        self,
        get_running: Callable[[], list[JobSnapshot]],
        timeout: float,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize Watchdog.

        Args:
            get_running: Returns snapshots of the currently RUNNING jobs
            timeout: Seconds after which a running job counts as overdue
            interval: Seconds between checks
            clock: Source of the current time
        """
        self.get_running = get_running
        self.timeout = timeout
        self.interval = interval
        self._clock = clock

        # (job_id, started_at) of attempts already reported
        self._reported: set[tuple] = set()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def check_once(self) -> list[JobSnapshot]:
        """
        Report newly overdue jobs.

        Returns:
            Snapshots of jobs that crossed the timeout since the last check
        """
        now = self._clock()
        running = self.get_running()
        live_keys = set()
        overdue = []

        for job in running:
            if job.started_at is None:
                continue
            key = (job.id, job.started_at)
            live_keys.add(key)

            elapsed = (now - job.started_at).total_seconds()
            if elapsed > self.timeout and key not in self._reported:
                self._reported.add(key)
                overdue.append(job)
                logger.warning(
                    f"Job {job.id} ({job.name}) has been running for "
                    f"{elapsed:.1f}s, exceeding the {self.timeout}s timeout"
                )

        # Forget attempts that are no longer running
        self._reported &= live_keys
        return overdue

    def start(self) -> None:
        if self._thread is not None:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name="job-watchdog", daemon=True
        )
        self._thread.start()
        logger.info(
            f"Watchdog started (timeout={self.timeout}s, interval={self.interval}s)"
        )

    def stop(self, timeout: float = 5.0) -> None:
        if self._thread is None:
            return

        self._stop_event.set()
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Watchdog thread did not stop within timeout")
        self._thread = None
        logger.info("Watchdog stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.check_once()
            except Exception:
                logger.exception("Error in watchdog check")
