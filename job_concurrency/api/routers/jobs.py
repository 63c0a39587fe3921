"""
Jobs router for job management API.

- POST /jobs - Create job (dispatched as soon as a slot is free)
- GET /jobs - List jobs (filter by status, paginate)
- GET /jobs/{job_id} - Get job details
- PUT /jobs/{job_id}/priority - Update job priority
- DELETE /jobs/{job_id} - Delete job (pending, paused or waiting for retry)
- POST /jobs/{job_id}/pause - Hold a pending job back
- POST /jobs/{job_id}/resume - Return a paused job to the queue

Handlers are plain functions: dispatch may spawn processes and waits on
the scheduler lock, so they run in FastAPI's threadpool.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_scheduler_service
from ..schemas.jobs import (
    JobCreateRequest,
    JobCreateResponse,
    JobDeleteResponse,
    JobListResponse,
    JobResponse,
    JobUpdateResponse,
    PriorityUpdateRequest,
)
from job_concurrency.scheduler import (
    InvalidStateError,
    JobNotFoundError,
    JobSnapshot,
    SchedulerService,
    ValidationError,
)


logger = logging.getLogger(__name__)

router = APIRouter()


def _job_to_response(job: JobSnapshot) -> JobResponse:
    """Convert scheduler JobSnapshot to API response."""
    return JobResponse(
        id=job.id,
        name=job.name,
        args=list(job.args),
        status=job.status.value,
        priority=job.priority,
        created_at=job.created_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
        exit_code=job.exit_code,
        retry_count=job.retry_count,
        pid=job.pid,
    )


@router.post("", response_model=JobCreateResponse, status_code=201)
def create_job(
    request: JobCreateRequest,
    service: SchedulerService = Depends(get_scheduler_service),
):
    """
    Create a new job.

    The job starts immediately if a concurrency slot is free; otherwise it
    waits as PENDING and is dispatched by priority (5 first), then in
    submission order.
    """
    if not request.name:
        logger.warning("Attempt to create job without name")
        raise HTTPException(status_code=400, detail="Job name is required")

    logger.info(f"Creating job with name: {request.name}, args: {request.args}")

    try:
        job = service.submit(
            name=request.name,
            args=request.args,
            priority=request.priority,
        )
        return JobCreateResponse(
            message="Job created successfully",
            job=_job_to_response(job),
        )

    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating job: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to create job: {str(e)}"
        )


@router.get("", response_model=JobListResponse)
def list_jobs(
    status: Optional[str] = Query(default=None, description="Filter jobs by status"),
    limit: int = Query(default=50, ge=1, le=1000, description="Maximum jobs to return"),
    offset: int = Query(default=0, ge=0, description="Number of jobs to skip"),
    service: SchedulerService = Depends(get_scheduler_service),
):
    """
    List jobs in submission order.

    total is the number of jobs matching the filter before pagination.
    """
    logger.info(f"Getting jobs with filters: status={status}, limit={limit}, offset={offset}")

    try:
        page = service.list_jobs(status=status, limit=limit, offset=offset)

        return JobListResponse(
            total=page.total,
            jobs=[_job_to_response(job) for job in page.jobs],
        )

    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting jobs: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to list jobs: {str(e)}"
        )


@router.get("/{job_id}", response_model=JobResponse)
def get_job(
    job_id: str,
    service: SchedulerService = Depends(get_scheduler_service),
):
    """Get a specific job by ID."""
    try:
        return _job_to_response(service.get_job(job_id))

    except JobNotFoundError:
        logger.warning(f"Job with ID {job_id} not found")
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    except Exception as e:
        logger.error(f"Error getting job: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to get job: {str(e)}"
        )


@router.put("/{job_id}/priority", response_model=JobUpdateResponse)
def update_job_priority(
    job_id: str,
    request: PriorityUpdateRequest,
    service: SchedulerService = Depends(get_scheduler_service),
):
    """
    Update a job's priority (1-5, 5 is highest).

    A pending job is re-evaluated for dispatch right away.
    """
    if request.priority is None:
        raise HTTPException(status_code=400, detail="Priority is required")

    try:
        job = service.update_priority(job_id, request.priority)
        return JobUpdateResponse(
            message="Job priority updated successfully",
            job=_job_to_response(job),
        )

    except JobNotFoundError:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating job priority: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to update job: {str(e)}")


@router.delete("/{job_id}", response_model=JobDeleteResponse)
def delete_job(
    job_id: str,
    service: SchedulerService = Depends(get_scheduler_service),
):
    """
    Delete a job.

    Pending, paused and retry-waiting jobs can be deleted. Running and
    finished jobs cannot; the error names the current status.
    """
    try:
        service.remove(job_id)

        return JobDeleteResponse(
            job_id=job_id,
            success=True,
            message="Job deleted successfully",
        )

    except JobNotFoundError:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    except InvalidStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error deleting job: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to delete job: {str(e)}")


@router.post("/{job_id}/pause", response_model=JobUpdateResponse)
def pause_job(
    job_id: str,
    service: SchedulerService = Depends(get_scheduler_service),
):
    """Hold a pending job back from dispatch."""
    try:
        job = service.pause(job_id)
        return JobUpdateResponse(message="Job paused", job=_job_to_response(job))

    except JobNotFoundError:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    except InvalidStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error pausing job: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to pause job: {str(e)}")


@router.post("/{job_id}/resume", response_model=JobUpdateResponse)
def resume_job(
    job_id: str,
    service: SchedulerService = Depends(get_scheduler_service),
):
    """Return a paused job to the pending queue."""
    try:
        job = service.resume(job_id)
        return JobUpdateResponse(message="Job resumed", job=_job_to_response(job))

    except JobNotFoundError:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    except InvalidStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error resuming job: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to resume job: {str(e)}")
