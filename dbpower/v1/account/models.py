from datetime import datetime
from uuid import UUID

from sqlalchemy import TIMESTAMP, Text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from dbpower.infra.database import Base


class UserProfile(Base):
    """Platform-owned profile row; only the columns this service touches."""

    __tablename__ = "user_profiles"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    api_key: Mapped[str | None] = mapped_column(
        Text, nullable=True, unique=True, comment="Per-user webhook API key"
    )


class Subscription(Base):
    """Billing subscription mirrored from Stripe."""

    __tablename__ = "subscriptions"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(PG_UUID, nullable=False)
    stripe_subscription_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str | None] = mapped_column(Text, nullable=True)
    canceled_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
