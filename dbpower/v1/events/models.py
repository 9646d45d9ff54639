from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, TIMESTAMP, Text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from dbpower.infra.database import Base


class Event(Base):
    """Anonymous or authenticated analytics event."""

    __tablename__ = "events"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True, default=uuid4)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    session_id: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[UUID | None] = mapped_column(PG_UUID, nullable=True)
    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict, server_default="{}"
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
    )


class UserEvent(Base):
    """Per-user audit trail written by the platform."""

    __tablename__ = "user_events"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(PG_UUID, nullable=False)
    event: Mapped[str] = mapped_column(Text, nullable=False)
    event_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
    )
