"""
Job API schemas.

Supports /jobs CRUD endpoints and /stats.

Request fields for name, args and priority are taken as sent (Any) and
checked by the scheduler, so a wrong type or range is reported as 400
with the scheduler's message instead of pydantic coercing it (true -> 1,
"4" -> 4) or answering 422.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Job Schemas
# =============================================================================


class JobCreateRequest(BaseModel):
    """Request to create a new job."""

    name: Any = Field(
        default=None,
        description="Name of the job to run (required, non-empty string)"
    )
    args: Any = Field(
        default_factory=list,
        description="List of string arguments to pass to the job; a single string is accepted"
    )
    priority: Any = Field(
        default=None,
        description="Job priority, integer 1-5, 5 is highest (default 3)"
    )

    @field_validator("args")
    @classmethod
    def wrap_single_arg(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class PriorityUpdateRequest(BaseModel):
    """Request to change a job's priority."""

    priority: Any = Field(
        default=None,
        description="New priority value, integer 1-5 (5 is highest)"
    )


class JobResponse(BaseModel):
    """Response representing a Job."""

    id: str = Field(..., description="Unique job identifier")
    name: str = Field(..., description="Job name")
    args: List[str] = Field(default_factory=list, description="Job arguments")
    status: str = Field(..., description="Job status (pending/running/completed/failed/retried/paused)")
    priority: int = Field(..., description="Job priority (1-5)")
    created_at: datetime = Field(..., description="Creation timestamp")
    started_at: Optional[datetime] = Field(default=None, description="Start of the current run attempt")
    completed_at: Optional[datetime] = Field(default=None, description="Completion timestamp")
    exit_code: Optional[int] = Field(default=None, description="Exit code of the last run attempt")
    retry_count: int = Field(default=0, description="Number of retries so far")
    pid: Optional[int] = Field(default=None, description="Process id of the last launch")


class JobCreateResponse(BaseModel):
    """Response from job creation."""

    message: str
    job: JobResponse


class JobUpdateResponse(BaseModel):
    """Response from a job mutation (priority, pause, resume)."""

    message: str
    job: JobResponse


class JobListResponse(BaseModel):
    """Response for job list endpoint."""

    total: int = Field(..., description="Total number of jobs matching the filter")
    jobs: List[JobResponse] = Field(default_factory=list)


class JobDeleteResponse(BaseModel):
    """Response from job deletion."""

    job_id: str
    success: bool
    message: Optional[str] = None


# =============================================================================
# Stats Schemas
# =============================================================================


class PatternResponse(BaseModel):
    """
    Success rate of jobs matching a heuristic pattern.

    Descriptive only; not evidence that the pattern causes the outcome.
    """

    pattern: str = Field(..., description="Description of the pattern")
    match_count: int = Field(..., description="Number of jobs matching this pattern")
    success_rate: float = Field(..., description="Success rate within the matching jobs (0-1)")
    difference_from_average: float = Field(
        ...,
        description="Matching success rate minus overall success rate"
    )


class StatsResponse(BaseModel):
    """Aggregate job statistics."""

    total_jobs: int = Field(default=0, description="Total number of jobs")
    completed_jobs: int = Field(default=0, description="COMPLETED jobs")
    failed_jobs: int = Field(default=0, description="FAILED jobs")
    pending_jobs: int = Field(default=0, description="PENDING jobs")
    running_jobs: int = Field(default=0, description="RUNNING jobs")
    retried_jobs: int = Field(default=0, description="Jobs retried at least once")
    average_completion_time: float = Field(
        default=0.0,
        description="Mean run time of completed jobs (seconds)"
    )
    success_rate: float = Field(default=0.0, description="Completed / total (0-1)")
    status_counts: dict = Field(default_factory=dict, description="Job count per status")
    patterns: List[PatternResponse] = Field(default_factory=list)
