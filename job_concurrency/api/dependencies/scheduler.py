"""
Scheduler access for API routes.

The SchedulerService is built by the application factory and stored on
app.state; routes receive it through this dependency instead of a
module-level singleton.

Usage:
    @router.get("/jobs")
    async def list_jobs(service: SchedulerService = Depends(get_scheduler_service)):
        ...
"""

from fastapi import Request

from job_concurrency.scheduler.service import SchedulerService


def get_scheduler_service(request: Request) -> SchedulerService:
    """
    Get the scheduler service of the current application.

    Raises:
        RuntimeError: If the application has no scheduler service
    """
    service = getattr(request.app.state, "scheduler", None)

    if service is None:
        raise RuntimeError(
            "Scheduler service not initialized. "
            "Ensure create_app() received a service or the lifespan has run."
        )

    return service
