"""
Tests for stats router.
"""

import pytest
from fastapi.testclient import TestClient

from job_concurrency.api.main import create_app
from job_concurrency.scheduler import LaunchFailure, LaunchResult


@pytest.fixture
def client(api_service):
    with TestClient(create_app(service=api_service)) as test_client:
        yield test_client


def run_job(client, launcher, name, args=None, succeed=True):
    job = client.post("/jobs", json={"name": name, "args": args or []}).json()["job"]
    result = LaunchResult() if succeed else LaunchResult(error=LaunchFailure(1))
    launcher.complete(job["pid"], result)
    return job


class TestStatsEndpoint:
    """Tests for GET /stats endpoint."""

    def test_empty_stats(self, client):
        response = client.get("/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total_jobs"] == 0
        assert data["success_rate"] == 0.0
        assert data["average_completion_time"] == 0.0
        assert data["patterns"] == []
        assert data["status_counts"]["pending"] == 0

    def test_counts_and_patterns(self, client, holding_launcher):
        """Should report counts, rates and matching patterns."""
        run_job(client, holding_launcher, "a-long-job-name")
        run_job(client, holding_launcher, "short", args=["--x"])
        run_job(client, holding_launcher, "flaky", succeed=False)

        data = client.get("/stats").json()

        assert data["total_jobs"] == 3
        assert data["completed_jobs"] == 2
        assert data["failed_jobs"] == 0
        assert data["retried_jobs"] == 1
        assert data["status_counts"]["retried"] == 1
        assert data["success_rate"] == pytest.approx(2 / 3)

        patterns = {p["pattern"]: p for p in data["patterns"]}
        assert set(patterns) == {
            "Job name length > 10",
            "Jobs with arguments",
            "Jobs that were retried",
        }
        assert patterns["Job name length > 10"]["match_count"] == 1
        assert patterns["Job name length > 10"]["success_rate"] == pytest.approx(1.0)
        assert patterns["Jobs that were retried"]["difference_from_average"] == pytest.approx(-2 / 3)

    def test_running_jobs_counted(self, client):
        client.post("/jobs", json={"name": "busy"})

        data = client.get("/stats").json()

        assert data["running_jobs"] == 1
        assert data["completed_jobs"] == 0
