"""Tests for the deletion queue endpoints."""

from datetime import timedelta

from fastapi.testclient import TestClient

from conftest import FIXED_NOW
from dbpower.config.settings import get_settings
from dbpower.infra.database import get_database
from dbpower.v1.deletions.models import DeletionStatus
from dbpower.v1.deletions.repository import (
    HardDeleteError,
    QueueUnavailableError,
    get_deletion_queue,
)


class TestProcessAuth:
    def test_missing_authorization(self, client: TestClient):
        response = client.post("/v1/deletion-queue/process")

        assert response.status_code == 401
        data = response.json()
        assert data["ok"] is False
        assert data["error"] == "Unauthorized: Missing or invalid Authorization header"

    def test_wrong_key(self, client: TestClient):
        response = client.post(
            "/v1/deletion-queue/process",
            headers={"Authorization": "Bearer not-the-key"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized: Invalid service role key"

    def test_bearer_prefix_is_case_insensitive(
        self, client: TestClient, service_headers
    ):
        token = service_headers["Authorization"].split(" ", 1)[1]
        response = client.post(
            "/v1/deletion-queue/process", headers={"Authorization": f"bearer {token}"}
        )

        assert response.status_code == 200

    def test_missing_service_role_key_config(
        self, app, client: TestClient, test_settings, service_headers
    ):
        app.dependency_overrides[get_settings] = lambda: test_settings.model_copy(
            update={"supabase_service_role_key": ""}
        )

        response = client.post("/v1/deletion-queue/process", headers=service_headers)

        assert response.status_code == 500
        assert response.json()["error"] == "Missing SUPABASE_SERVICE_ROLE_KEY"


class TestProcess:
    def test_empty_queue(self, client: TestClient, service_headers):
        response = client.post("/v1/deletion-queue/process", headers=service_headers)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "processed": 0, "results": []}

    def test_processes_due_jobs(
        self, client: TestClient, service_headers, fake_queue, make_job
    ):
        ok_job = make_job(scheduled_for=FIXED_NOW - timedelta(hours=2))
        bad_job = make_job(scheduled_for=FIXED_NOW - timedelta(hours=1))
        for job in (ok_job, bad_job):
            fake_queue.jobs[job.id] = job
        fake_queue.hard_delete_results[ok_job.user_id] = {"rows": 12}
        fake_queue.hard_delete_results[bad_job.user_id] = HardDeleteError("not found")

        response = client.post("/v1/deletion-queue/process", headers=service_headers)

        assert response.status_code == 200
        assert response.json() == {
            "ok": True,
            "processed": 2,
            "results": [
                {"user_id": str(ok_job.user_id), "ok": True, "data": {"rows": 12}},
                {"user_id": str(bad_job.user_id), "ok": False, "error": "not found"},
            ],
        }

    def test_store_unreachable(
        self, client: TestClient, service_headers, fake_queue, make_job
    ):
        job = make_job()
        fake_queue.jobs[job.id] = job
        fake_queue.list_error = QueueUnavailableError("connection refused")

        response = client.post("/v1/deletion-queue/process", headers=service_headers)

        assert response.status_code == 500
        assert response.json() == {"error": "connection refused"}
        assert job.status == DeletionStatus.PENDING.value
        assert fake_queue.writes == []

    def test_missing_database_url(self, app, test_settings, service_headers):
        app.dependency_overrides.pop(get_deletion_queue)
        app.dependency_overrides.pop(get_database)
        app.dependency_overrides[get_settings] = lambda: test_settings.model_copy(
            update={"database_url": ""}
        )

        with TestClient(app) as client:
            response = client.post(
                "/v1/deletion-queue/process", headers=service_headers
            )

        assert response.status_code == 500
        assert response.json()["error"] == "Missing DATABASE_URL"


class TestInspection:
    def test_list_jobs(self, client: TestClient, service_headers, fake_queue, make_job):
        older = make_job(created_at=FIXED_NOW - timedelta(days=2))
        newer = make_job(
            status=DeletionStatus.FAILED, created_at=FIXED_NOW - timedelta(days=1)
        )
        for job in (older, newer):
            fake_queue.jobs[job.id] = job

        response = client.get("/v1/deletion-queue", headers=service_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 2
        assert [job["id"] for job in data["jobs"]] == [str(newer.id), str(older.id)]

    def test_list_jobs_filtered_by_status(
        self, client: TestClient, service_headers, fake_queue, make_job
    ):
        pending = make_job()
        failed = make_job(status=DeletionStatus.FAILED)
        for job in (pending, failed):
            fake_queue.jobs[job.id] = job

        response = client.get(
            "/v1/deletion-queue", params={"status": "failed"}, headers=service_headers
        )

        data = response.json()["data"]
        assert data["total"] == 1
        assert data["jobs"][0]["status"] == "failed"

    def test_list_rejects_unknown_status(self, client: TestClient, service_headers):
        response = client.get(
            "/v1/deletion-queue", params={"status": "queued"}, headers=service_headers
        )

        assert response.status_code == 422
        data = response.json()
        assert data["ok"] is False
        assert data["error"].startswith("Invalid query.status")
        assert data["details"]["errors"]

    def test_stats(self, client: TestClient, service_headers, fake_queue, make_job):
        for job in (
            make_job(),
            make_job(),
            make_job(status=DeletionStatus.COMPLETED),
        ):
            fake_queue.jobs[job.id] = job

        response = client.get("/v1/deletion-queue/stats", headers=service_headers)

        assert response.status_code == 200
        assert response.json()["data"] == {
            "total_jobs": 3,
            "by_status": {"pending": 2, "completed": 1},
            "due_now": 2,
        }

    def test_recover(self, client: TestClient, service_headers, fake_queue, make_job):
        stale = make_job(
            status=DeletionStatus.IN_PROGRESS,
            claimed_at=FIXED_NOW - timedelta(days=1),
        )
        fake_queue.jobs[stale.id] = stale

        response = client.post("/v1/deletion-queue/recover", headers=service_headers)

        assert response.status_code == 200
        assert response.json()["data"] == {"recovered": 1, "job_ids": [str(stale.id)]}
        assert stale.status == DeletionStatus.FAILED.value

    def test_inspection_requires_auth(self, client: TestClient):
        assert client.get("/v1/deletion-queue").status_code == 401
        assert client.get("/v1/deletion-queue/stats").status_code == 401
