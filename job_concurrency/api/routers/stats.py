"""
Stats router.

GET /stats - aggregate job statistics and heuristic patterns.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_scheduler_service
from ..schemas.jobs import PatternResponse, StatsResponse
from job_concurrency.scheduler import SchedulerService


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=StatsResponse)
def get_stats(service: SchedulerService = Depends(get_scheduler_service)):
    """
    Get job statistics.

    Patterns compare the success rate of jobs sharing a simple trait
    (long name, has arguments, was retried) with the overall rate.
    They are descriptive heuristics, not causal findings.
    """
    logger.info("Getting job statistics")

    try:
        stats = service.stats()

        return StatsResponse(
            total_jobs=stats.total_jobs,
            completed_jobs=stats.completed_jobs,
            failed_jobs=stats.failed_jobs,
            pending_jobs=stats.pending_jobs,
            running_jobs=stats.running_jobs,
            retried_jobs=stats.retried_jobs,
            average_completion_time=stats.average_completion_time,
            success_rate=stats.success_rate,
            status_counts=stats.status_counts,
            patterns=[
                PatternResponse(
                    pattern=p.pattern,
                    match_count=p.match_count,
                    success_rate=p.success_rate,
                    difference_from_average=p.difference_from_average,
                )
                for p in stats.patterns
            ],
        )

    except Exception as e:
        logger.error(f"Error getting job statistics: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to get job statistics: {str(e)}"
        )
