import os
from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from dbpower.config.settings import Settings, get_settings
from dbpower.infra.database import Base, get_database, get_session
from dbpower.main import create_app
from dbpower.v1.deletions.models import DeletionJob, DeletionStatus
from dbpower.v1.deletions.repository import DeletionQueueRepository, get_deletion_queue

# Import models to ensure they're registered
from dbpower.v1.account import models as account_models  # noqa: F401
from dbpower.v1.events import models as event_models  # noqa: F401

SERVICE_ROLE_KEY = "test-service-role-key"
ADMIN_KEY = "test-admin-key"

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


class FakeDeletionQueue:
    """
    In-memory stand-in for DeletionQueueRepository.

    `hard_delete_results` maps user_id to either a return value or an
    exception to raise. Status writes honour the same preconditions as the
    SQL updates (claim only pending rows, finish only in_progress rows).
    """

    def __init__(self, jobs: list[DeletionJob] | None = None):
        self.jobs: dict[UUID, DeletionJob] = {job.id: job for job in jobs or []}
        self.hard_delete_results: dict[UUID, Any] = {}
        self.hard_delete_calls: list[tuple[UUID, UUID | None]] = []
        self.list_error: Exception | None = None
        self.claim_errors: dict[UUID, Exception] = {}
        self.finish_errors: list[Exception] = []
        self.writes: list[tuple[UUID, str]] = []

    async def list_eligible(self, now: datetime, limit: int) -> list[DeletionJob]:
        if self.list_error is not None:
            raise self.list_error
        eligible = [job for job in self.jobs.values() if job.is_eligible(now)]
        eligible.sort(key=lambda job: (job.scheduled_for, job.created_at))
        return eligible[:limit]

    async def claim(self, job_id: UUID, now: datetime) -> bool:
        if job_id in self.claim_errors:
            raise self.claim_errors[job_id]
        job = self.jobs[job_id]
        if job.status != DeletionStatus.PENDING.value:
            return False
        job.status = DeletionStatus.IN_PROGRESS.value
        job.claimed_at = now
        self.writes.append((job_id, job.status))
        return True

    async def hard_delete(self, user_id: UUID, performed_by: UUID | None) -> Any:
        self.hard_delete_calls.append((user_id, performed_by))
        result = self.hard_delete_results.get(user_id, {"deleted": True})
        if isinstance(result, Exception):
            raise result
        return result

    async def mark_completed(self, job_id: UUID, now: datetime) -> bool:
        return self._finish(job_id, DeletionStatus.COMPLETED, None, now)

    async def mark_failed(self, job_id: UUID, error: str, now: datetime) -> bool:
        return self._finish(job_id, DeletionStatus.FAILED, error, now)

    def _finish(
        self, job_id: UUID, status: DeletionStatus, error: str | None, now: datetime
    ) -> bool:
        if self.finish_errors:
            raise self.finish_errors.pop(0)
        job = self.jobs[job_id]
        if job.status != DeletionStatus.IN_PROGRESS.value:
            return False
        job.status = status.value
        job.error = error
        job.updated_at = now
        self.writes.append((job_id, job.status))
        return True

    async def fail_stale_claims(
        self, cutoff: datetime, error: str, now: datetime
    ) -> list[UUID]:
        stale = [
            job
            for job in self.jobs.values()
            if job.status == DeletionStatus.IN_PROGRESS.value
            and job.claimed_at is not None
            and job.claimed_at < cutoff
        ]
        for job in stale:
            job.status = DeletionStatus.FAILED.value
            job.error = error
            job.updated_at = now
        return [job.id for job in stale]

    async def list_jobs(
        self, statuses: list[str] | None = None, limit: int = 50, offset: int = 0
    ) -> tuple[list[DeletionJob], int]:
        jobs = [
            job
            for job in self.jobs.values()
            if not statuses or job.status in statuses
        ]
        jobs.sort(key=lambda job: job.created_at, reverse=True)
        return jobs[offset : offset + limit], len(jobs)

    async def count_by_status(self, now: datetime) -> tuple[dict[str, int], int]:
        by_status: dict[str, int] = {}
        for job in self.jobs.values():
            by_status[job.status] = by_status.get(job.status, 0) + 1
        due_now = sum(1 for job in self.jobs.values() if job.is_eligible(now))
        return by_status, due_now


def build_job(
    user_id: UUID | None = None,
    status: DeletionStatus = DeletionStatus.PENDING,
    scheduled_for: datetime | None = None,
    created_at: datetime | None = None,
    claimed_at: datetime | None = None,
    requested_by: UUID | None = None,
) -> DeletionJob:
    """Build a transient DeletionJob with every column populated."""
    created = created_at or FIXED_NOW - timedelta(days=31)
    return DeletionJob(
        id=uuid4(),
        user_id=user_id or uuid4(),
        requested_by=requested_by,
        scheduled_for=scheduled_for or FIXED_NOW - timedelta(hours=1),
        status=status.value,
        error=None,
        claimed_at=claimed_at,
        created_at=created,
        updated_at=created,
    )


@pytest.fixture
def test_settings() -> Settings:
    """Settings with every credential configured and no backoff delay."""
    return Settings(
        supabase_url="https://project.example.co",
        supabase_anon_key="test-anon-key",
        supabase_service_role_key=SERVICE_ROLE_KEY,
        supabase_function_url="https://project.example.co/functions/v1",
        dbpower_admin_key=ADMIN_KEY,
        make_webhook_url="https://hook.example.com/new-user",
        deletion_finalize_backoff_ms=0,
    )


@pytest.fixture
def fake_queue() -> FakeDeletionQueue:
    return FakeDeletionQueue()


@pytest.fixture
def make_job():
    """Factory for transient deletion jobs."""
    return build_job


@pytest.fixture
def mock_session() -> MagicMock:
    """AsyncSession double for routes that only need execute/commit."""
    session = MagicMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest.fixture
def mock_database() -> MagicMock:
    """Database double; only `ping` is used directly by routes."""
    database = MagicMock()
    database.ping = AsyncMock(return_value=1.25)
    return database


@pytest.fixture
def app(test_settings, fake_queue, mock_session, mock_database):
    """Create a test FastAPI application with in-memory dependencies."""
    app = create_app()

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_deletion_queue] = lambda: fake_queue
    app.dependency_overrides[get_database] = lambda: mock_database

    async def get_test_session() -> AsyncGenerator[AsyncSession, None]:
        yield mock_session

    app.dependency_overrides[get_session] = get_test_session

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def service_headers():
    """Authorization for the deletion queue endpoints."""
    return {"Authorization": f"Bearer {SERVICE_ROLE_KEY}"}


@pytest.fixture
def admin_headers():
    """Authorization for the admin endpoints."""
    return {"Authorization": f"Bearer {ADMIN_KEY}"}


@pytest.fixture
async def test_engine():
    """Create a test database engine."""
    database_url = os.getenv("DATABASE_URL")

    if not database_url or "postgresql" not in database_url:
        # Skip database tests if no PostgreSQL available
        pytest.skip("No PostgreSQL database available for testing")

    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

        # Stand-in for the platform procedure: deletes the profile, errors on unknown users
        await conn.execute(text("""
            CREATE OR REPLACE FUNCTION perform_hard_delete(p_user_id UUID, p_performed_by UUID)
            RETURNS JSONB AS $$
            BEGIN
                IF NOT EXISTS (SELECT 1 FROM user_profiles WHERE id = p_user_id) THEN
                    RAISE EXCEPTION 'not found';
                END IF;
                DELETE FROM user_profiles WHERE id = p_user_id;
                RETURN jsonb_build_object('user_id', p_user_id, 'deleted', true);
            END;
            $$ LANGUAGE plpgsql;
        """))

    yield engine

    async with engine.begin() as conn:
        await conn.execute(text("DELETE FROM deletion_queue"))
        await conn.execute(text("DELETE FROM user_profiles"))
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=test_engine, expire_on_commit=False)


@pytest.fixture
def repository(session_factory) -> DeletionQueueRepository:
    return DeletionQueueRepository(session_factory)

