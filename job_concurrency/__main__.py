"""
Run the Job Concurrency Manager API server.

Usage:
    python -m job_concurrency
"""

import uvicorn

from job_concurrency.api.main import create_app
from job_concurrency.infra.config import load_settings


def main() -> None:
    settings = load_settings()
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
