from datetime import UTC, datetime, timedelta

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dbpower.config.logging import get_logger
from dbpower.config.settings import Settings, SettingsDep
from dbpower.infra.database import Database, get_database, get_session
from dbpower.v1.core.exceptions import create_success_response
from dbpower.v1.deletions.models import DeletionJob, DeletionStatus

logger = get_logger(__name__)
router = APIRouter()


class DatabaseHealth(BaseModel):
    """Database health status."""

    connected: bool
    response_time_ms: float | None = None
    error: str | None = None


class DeletionQueueHealth(BaseModel):
    """Deletion queue backlog."""

    due_now: int = 0
    in_progress: int = 0
    stale_claims: int = 0
    failed: int = 0


@router.get("/healthz", response_model=dict)
async def health_check(
    settings: Settings = SettingsDep,
    database: Database = Depends(get_database),
    session: AsyncSession = Depends(get_session),
):
    """Health check with database and deletion queue status."""

    timestamp = datetime.now(UTC).isoformat()

    db_health = await _check_database_health(database)

    queue_health = None
    if db_health.connected:
        try:
            queue_health = await _check_queue_health(session, settings)
        except Exception as e:
            # Queue stats are informational; they never fail the health check
            logger.warning("Deletion queue health check failed", error=str(e))

    health_data = {
        "ok": db_health.connected,
        "version": settings.version,
        "environment": settings.environment,
        "timestamp": timestamp,
        "database": db_health.model_dump(),
        "deletion_queue": queue_health.model_dump() if queue_health else None,
    }

    return create_success_response(data=health_data)


async def _check_database_health(database: Database) -> DatabaseHealth:
    """Check database connectivity and response time."""
    try:
        return DatabaseHealth(connected=True, response_time_ms=await database.ping())
    except Exception as e:
        return DatabaseHealth(connected=False, error=str(e))


async def _check_queue_health(
    session: AsyncSession, settings: Settings
) -> DeletionQueueHealth:
    """Summarise the deletion backlog."""
    now = datetime.now(UTC)
    stale_cutoff = now - timedelta(seconds=settings.deletion_stale_claim_s)

    due_result = await session.execute(
        select(func.count(DeletionJob.id)).where(
            and_(
                DeletionJob.status == DeletionStatus.PENDING.value,
                DeletionJob.scheduled_for <= now,
            )
        )
    )
    in_progress_result = await session.execute(
        select(func.count(DeletionJob.id)).where(
            DeletionJob.status == DeletionStatus.IN_PROGRESS.value
        )
    )
    stale_result = await session.execute(
        select(func.count(DeletionJob.id)).where(
            and_(
                DeletionJob.status == DeletionStatus.IN_PROGRESS.value,
                DeletionJob.claimed_at < stale_cutoff,
            )
        )
    )
    failed_result = await session.execute(
        select(func.count(DeletionJob.id)).where(
            DeletionJob.status == DeletionStatus.FAILED.value
        )
    )

    return DeletionQueueHealth(
        due_now=due_result.scalar() or 0,
        in_progress=in_progress_result.scalar() or 0,
        stale_claims=stale_result.scalar() or 0,
        failed=failed_result.scalar() or 0,
    )
