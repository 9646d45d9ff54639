"""add deletion queue and events tables

Revision ID: 5c1e7d2a9b40
Revises:
Create Date: 2025-11-04 10:12:31.418207

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c1e7d2a9b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "deletion_queue",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.UUID(as_uuid=True),
            nullable=False,
            comment="User whose data is deleted",
        ),
        sa.Column(
            "requested_by",
            sa.UUID(as_uuid=True),
            nullable=True,
            comment="Actor that requested the deletion",
        ),
        sa.Column(
            "scheduled_for",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment="Earliest time the deletion may run",
        ),
        sa.Column(
            "status",
            sa.Text,
            nullable=False,
            server_default="pending",
            comment="Job status: pending|in_progress|completed|failed",
        ),
        sa.Column(
            "error",
            sa.Text,
            nullable=True,
            comment="Failure message, cleared on success",
        ),
        sa.Column(
            "claimed_at",
            sa.TIMESTAMP(timezone=True),
            nullable=True,
            comment="When a pass claimed the job",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed', 'failed')",
            name="deletion_queue_status_check",
        ),
    )

    # Eligibility scan: status = 'pending' AND scheduled_for <= now()
    op.create_index(
        "ix_deletion_queue_status_scheduled_for",
        "deletion_queue",
        ["status", "scheduled_for"],
    )
    op.create_index("ix_deletion_queue_user_id", "deletion_queue", ["user_id"])
    op.create_index(
        "ix_deletion_queue_claimed_at",
        "deletion_queue",
        ["claimed_at"],
        postgresql_where=sa.text("status = 'in_progress'"),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True),
        sa.Column("type", sa.Text, nullable=False),
        sa.Column("session_id", sa.Text, nullable=False),
        sa.Column("user_id", sa.UUID(as_uuid=True), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=False, server_default="{}"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_events_type_created_at", "events", ["type", "created_at"])
    op.create_index("ix_events_session_id", "events", ["session_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("events")
    op.drop_table("deletion_queue")
