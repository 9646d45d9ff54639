"""
Deletion queue models.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import TIMESTAMP, CheckConstraint, Text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from dbpower.infra.database import Base


class DeletionStatus(str, Enum):
    """Deletion job status enumeration."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = (DeletionStatus.COMPLETED.value, DeletionStatus.FAILED.value)


class DeletionJob(Base):
    """
    A scheduled hard delete of one user's data.

    Rows move forward only: pending -> in_progress -> completed | failed.
    Terminal rows are kept for audit.
    """

    __tablename__ = "deletion_queue"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID, nullable=False, comment="User whose data is deleted"
    )
    requested_by: Mapped[UUID | None] = mapped_column(
        PG_UUID, nullable=True, comment="Actor that requested the deletion"
    )
    scheduled_for: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
        comment="Earliest time the deletion may run",
    )
    status: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=DeletionStatus.PENDING.value,
        server_default=DeletionStatus.PENDING.value,
        comment="Job status: pending|in_progress|completed|failed",
    )
    error: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Failure message, cleared on success"
    )
    claimed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True, comment="When a pass claimed the job"
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed', 'failed')",
            name="status_check",
        ),
    )

    def is_eligible(self, now: datetime) -> bool:
        """Check if the job is pending and due."""
        return (
            self.status == DeletionStatus.PENDING.value and self.scheduled_for <= now
        )

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_stale(self, now: datetime, stale_after_s: int) -> bool:
        """Check if an in_progress claim has outlived the stale threshold."""
        if self.status != DeletionStatus.IN_PROGRESS.value or not self.claimed_at:
            return False
        return (now - self.claimed_at).total_seconds() > stale_after_s
