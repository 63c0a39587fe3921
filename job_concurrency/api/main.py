"""
FastAPI application entry point.

create_app() is the composition root: it builds (or receives) the
SchedulerService and stores it on app.state for the routers.

Run with:
    uvicorn job_concurrency.api.main:app --host 127.0.0.1 --port 3000
or:
    python -m job_concurrency
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from job_concurrency import __version__
from job_concurrency.infra.config import Settings, load_settings
from job_concurrency.infra.logging_config import setup_logging
from job_concurrency.scheduler.service import SchedulerService
from .routers import jobs, stats


# Tag metadata for Swagger UI
tags_metadata = [
    {
        "name": "jobs",
        "description": "Job submission, listing, priority changes, pause/resume and deletion",
    },
    {
        "name": "stats",
        "description": "Aggregate job statistics and heuristic success-rate patterns",
    },
]


def create_app(
    service: Optional[SchedulerService] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: Pre-built scheduler (tests inject one); when None, the
            lifespan builds it from settings and configures logging
        settings: Configuration (default: load_settings())

    Returns:
        Configured FastAPI app
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Startup: configure logging and build the scheduler if none was given,
        start the watchdog. Shutdown: stop the watchdog and cancel retries.
        """
        if getattr(app.state, "scheduler", None) is None:
            app_settings = settings or load_settings()
            setup_logging(app_settings.log_level, app_settings.log_dir)
            app.state.scheduler = SchedulerService.create(app_settings)

        app.state.scheduler.start()

        yield

        app.state.scheduler.shutdown()

    app = FastAPI(
        title="Job Concurrency Manager API",
        lifespan=lifespan,
        description="""
## Job Concurrency Manager API

Runs external commands as jobs under a bounded concurrency limit.

### Features
- **Priority dispatch**: priority 5 runs first; equal priorities run in submission order
- **Bounded concurrency**: at most `MAX_CONCURRENT_JOBS` jobs run at once
- **Retries**: failed jobs are retried up to `JOB_RETRY_ATTEMPTS` times after `JOB_RETRY_DELAY_SECONDS`
- **Statistics**: counts, success rate, average run time and heuristic patterns

### Usage
```bash
curl -X POST http://localhost:3000/jobs \\
  -H "Content-Type: application/json" \\
  -d '{"name": "nightly-report", "args": ["--full"], "priority": 4}'
```
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=tags_metadata,
    )

    if service is not None:
        app.state.scheduler = service

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "version": __version__}

    app.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
    app.include_router(stats.router, prefix="/stats", tags=["stats"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=3000)
