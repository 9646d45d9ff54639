"""
Postgres-backed access to the deletion queue.

Every method opens its own short-lived session so a failed remote procedure
never leaves the session used for status writes in an aborted transaction.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import Depends
from sqlalchemy import and_, desc, func, select, text, update
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dbpower.infra.database import Database, get_database
from dbpower.v1.core.exceptions import DBPowerException
from dbpower.v1.deletions.models import DeletionJob, DeletionStatus


class QueueUnavailableError(DBPowerException):
    """Raised when the queue cannot be listed; fatal to the whole pass."""

    def __init__(self, message: str):
        super().__init__(message)


class HardDeleteError(Exception):
    """Raised when the remote hard-delete procedure reports an error."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def db_error_message(exc: BaseException) -> str:
    """Prefer the driver's message over SQLAlchemy's wrapped repr."""
    orig = getattr(exc, "orig", None)
    message = str(orig) if orig is not None else str(exc)
    return message or exc.__class__.__name__


class DeletionQueueRepository:
    """Store operations used by the deletion processor and the admin routes."""

    HARD_DELETE_SQL = text("SELECT perform_hard_delete(:p_user_id, :p_performed_by)")

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_eligible(self, now: datetime, limit: int) -> list[DeletionJob]:
        """Return up to `limit` pending jobs whose scheduled time has arrived."""
        query = (
            select(DeletionJob)
            .where(
                and_(
                    DeletionJob.status == DeletionStatus.PENDING.value,
                    DeletionJob.scheduled_for <= now,
                )
            )
            .order_by(DeletionJob.scheduled_for, DeletionJob.created_at)
            .limit(limit)
        )

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            raise QueueUnavailableError(db_error_message(e)) from e

    async def claim(self, job_id: UUID, now: datetime) -> bool:
        """
        Move a job from pending to in_progress.

        Returns False when the row was no longer pending, i.e. another pass
        claimed it first.
        """
        async with self.session_factory() as session:
            result = await session.execute(
                update(DeletionJob)
                .where(
                    and_(
                        DeletionJob.id == job_id,
                        DeletionJob.status == DeletionStatus.PENDING.value,
                    )
                )
                .values(
                    status=DeletionStatus.IN_PROGRESS.value,
                    claimed_at=now,
                    updated_at=now,
                )
            )
            await session.commit()
            return result.rowcount == 1

    async def hard_delete(self, user_id: UUID, performed_by: UUID | None) -> Any:
        """Invoke the irreversible `perform_hard_delete` procedure."""
        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    self.HARD_DELETE_SQL,
                    {"p_user_id": user_id, "p_performed_by": performed_by},
                )
                data = result.scalar()
                await session.commit()
                return data
            except DBAPIError as e:
                await session.rollback()
                raise HardDeleteError(db_error_message(e)) from e

    async def mark_completed(self, job_id: UUID, now: datetime) -> bool:
        return await self._finish(job_id, DeletionStatus.COMPLETED, None, now)

    async def mark_failed(self, job_id: UUID, error: str, now: datetime) -> bool:
        return await self._finish(job_id, DeletionStatus.FAILED, error, now)

    async def _finish(
        self,
        job_id: UUID,
        status: DeletionStatus,
        error: str | None,
        now: datetime,
    ) -> bool:
        """Write a terminal status. Only in_progress rows can be finished."""
        async with self.session_factory() as session:
            result = await session.execute(
                update(DeletionJob)
                .where(
                    and_(
                        DeletionJob.id == job_id,
                        DeletionJob.status == DeletionStatus.IN_PROGRESS.value,
                    )
                )
                .values(status=status.value, error=error, updated_at=now)
            )
            await session.commit()
            return result.rowcount == 1

    async def fail_stale_claims(
        self, cutoff: datetime, error: str, now: datetime
    ) -> list[UUID]:
        """Mark in_progress jobs claimed before `cutoff` as failed."""
        async with self.session_factory() as session:
            result = await session.execute(
                update(DeletionJob)
                .where(
                    and_(
                        DeletionJob.status == DeletionStatus.IN_PROGRESS.value,
                        DeletionJob.claimed_at < cutoff,
                    )
                )
                .values(
                    status=DeletionStatus.FAILED.value, error=error, updated_at=now
                )
                .returning(DeletionJob.id)
            )
            job_ids = list(result.scalars().all())
            await session.commit()
            return job_ids

    async def list_jobs(
        self,
        statuses: list[str] | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[DeletionJob], int]:
        """List jobs newest first, with the total matching count."""
        base_query = select(DeletionJob)
        if statuses:
            base_query = base_query.where(DeletionJob.status.in_(statuses))

        async with self.session_factory() as session:
            count_query = select(func.count()).select_from(base_query.subquery())
            total = (await session.execute(count_query)).scalar() or 0

            jobs_result = await session.execute(
                base_query.order_by(desc(DeletionJob.created_at))
                .offset(offset)
                .limit(limit)
            )
            return list(jobs_result.scalars().all()), total

    async def count_by_status(self, now: datetime) -> tuple[dict[str, int], int]:
        """Return counts per status and the number of pending jobs already due."""
        async with self.session_factory() as session:
            status_result = await session.execute(
                select(DeletionJob.status, func.count(DeletionJob.id)).group_by(
                    DeletionJob.status
                )
            )
            by_status = dict(status_result.all())

            due_result = await session.execute(
                select(func.count(DeletionJob.id)).where(
                    and_(
                        DeletionJob.status == DeletionStatus.PENDING.value,
                        DeletionJob.scheduled_for <= now,
                    )
                )
            )
            return by_status, due_result.scalar() or 0


def get_deletion_queue(
    database: Database = Depends(get_database),
) -> DeletionQueueRepository:
    """Dependency injection for the deletion queue repository."""
    return DeletionQueueRepository(database.SessionLocal)
