"""
Aggregate job statistics.

Patterns are descriptive heuristics: each one reports how the success
rate of the jobs matching a simple predicate compares with the overall
success rate. They say nothing about cause and effect.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from .entities import JobSnapshot, JobStatus


LONG_NAME_THRESHOLD = 10


@dataclass(frozen=True)
class JobPattern:
    """A named boolean predicate over a job snapshot."""

    name: str
    predicate: Callable[[JobSnapshot], bool]


PATTERNS = (
    JobPattern(
        name=f"Job name length > {LONG_NAME_THRESHOLD}",
        predicate=lambda job: len(job.name) > LONG_NAME_THRESHOLD,
    ),
    JobPattern(
        name="Jobs with arguments",
        predicate=lambda job: len(job.args) > 0,
    ),
    JobPattern(
        name="Jobs that were retried",
        predicate=lambda job: job.retry_count > 0,
    ),
)


@dataclass(frozen=True)
class PatternStats:
    """Success rate of one pattern's matching subset."""

    pattern: str
    match_count: int
    success_rate: float
    difference_from_average: float


@dataclass(frozen=True)
class JobStats:
    """Aggregate statistics over all known jobs."""

    total_jobs: int
    completed_jobs: int
    failed_jobs: int
    pending_jobs: int
    running_jobs: int
    retried_jobs: int
    average_completion_time: float
    success_rate: float
    status_counts: dict = field(default_factory=dict)
    patterns: list = field(default_factory=list)


def _success_rate(jobs: list) -> float:
    if not jobs:
        return 0.0
    completed = sum(1 for job in jobs if job.status == JobStatus.COMPLETED)
    return completed / len(jobs)


def average_completion_time(jobs: Iterable[JobSnapshot]) -> float:
    """
    Mean run time in seconds of COMPLETED jobs with both timestamps.

    Returns 0.0 when there are none.
    """
    durations = [
        job.duration
        for job in jobs
        if job.status == JobStatus.COMPLETED and job.duration is not None
    ]
    if not durations:
        return 0.0
    return sum(durations) / len(durations)


def compute_stats(
    jobs: Iterable[JobSnapshot],
    patterns: Optional[Iterable[JobPattern]] = None,
) -> JobStats:
    """
    Compute aggregate statistics.

    Args:
        jobs: Snapshots of every job to include
        patterns: Patterns to evaluate (defaults to PATTERNS)

    Returns:
        JobStats; patterns matching no job are left out
    """
    jobs = list(jobs)
    if patterns is None:
        patterns = PATTERNS

    status_counts = {status.value: 0 for status in JobStatus}
    for job in jobs:
        status_counts[job.status.value] += 1

    overall_rate = _success_rate(jobs)

    pattern_stats = []
    for pattern in patterns:
        matched = [job for job in jobs if pattern.predicate(job)]
        if not matched:
            continue
        rate = _success_rate(matched)
        pattern_stats.append(
            PatternStats(
                pattern=pattern.name,
                match_count=len(matched),
                success_rate=rate,
                difference_from_average=rate - overall_rate,
            )
        )

    return JobStats(
        total_jobs=len(jobs),
        completed_jobs=status_counts[JobStatus.COMPLETED.value],
        failed_jobs=status_counts[JobStatus.FAILED.value],
        pending_jobs=status_counts[JobStatus.PENDING.value],
        running_jobs=status_counts[JobStatus.RUNNING.value],
        retried_jobs=sum(1 for job in jobs if job.retry_count > 0),
        average_completion_time=average_completion_time(jobs),
        success_rate=overall_rate,
        status_counts=status_counts,
        patterns=pattern_stats,
    )
