"""
Account self-service: API key rotation and account deletion.
"""

import secrets
from datetime import UTC, datetime
from uuid import UUID

import httpx
from sqlalchemy import select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dbpower.config.logging import get_logger
from dbpower.config.settings import Settings
from dbpower.infra.platform import PlatformAuthClient
from dbpower.v1.account.models import Subscription, UserProfile
from dbpower.v1.core.exceptions import DBPowerException, NotFoundError, UpstreamError

logger = get_logger(__name__)

API_KEY_PREFIX = "dbp_"
DEFAULT_DELETION_REASON = "user_requested"


def generate_api_key() -> str:
    """32 random bytes, hex encoded, behind the `dbp_` prefix."""
    return f"{API_KEY_PREFIX}{secrets.token_hex(32)}"


class StripeClient:
    """Minimal Stripe REST client for subscription cancellation."""

    def __init__(self, client: httpx.AsyncClient, secret_key: str, base_url: str):
        self.client = client
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")

    async def cancel_subscription(self, subscription_id: str) -> None:
        try:
            response = await self.client.delete(
                f"{self.base_url}/subscriptions/{subscription_id}",
                headers={"Authorization": f"Bearer {self.secret_key}"},
            )
        except httpx.HTTPError as e:
            logger.error("Stripe API request failed", error=str(e))
            raise UpstreamError("Stripe API error") from e

        if response.is_error:
            logger.error(
                "Stripe cancel error",
                status_code=response.status_code,
                body=response.text,
            )
            raise UpstreamError("Failed to cancel Stripe subscription")


class AccountService:
    """Service for account-level operations on behalf of the signed-in user."""

    def __init__(
        self,
        settings: Settings,
        session: AsyncSession,
        http_client: httpx.AsyncClient,
    ):
        self.settings = settings
        self.session = session
        self.http_client = http_client

    async def regenerate_api_key(self, user_id: UUID) -> str:
        """Store a fresh API key on the user's profile and return it."""
        api_key = generate_api_key()

        try:
            result = await self.session.execute(
                update(UserProfile)
                .where(UserProfile.id == user_id)
                .values(api_key=api_key)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to update API key", user_id=str(user_id))
            raise DBPowerException(
                "Failed to regenerate API key", details={"message": str(e)}
            ) from e

        if result.rowcount == 0:
            raise NotFoundError("User profile not found")

        logger.info("Regenerated API key", user_id=str(user_id))
        return api_key

    async def delete_account(
        self,
        user_id: UUID,
        auth_client: PlatformAuthClient,
        reason: str | None = None,
    ) -> None:
        """
        Delete the caller's account.

        Steps:
        1. Cancel an active Stripe subscription (when Stripe is configured)
        2. Soft-delete and anonymise via `soft_delete_user`
        3. Remove the auth user (best effort)
        """
        await self._cancel_subscription(user_id)

        try:
            await self.session.execute(
                text("SELECT soft_delete_user(:p_user_id, :p_reason)"),
                {"p_user_id": user_id, "p_reason": reason or DEFAULT_DELETION_REASON},
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("soft_delete_user failed", error=str(e))
            raise DBPowerException("Failed to soft-delete user") from e

        try:
            await auth_client.delete_user(str(user_id))
        except (httpx.HTTPError, DBPowerException) as e:
            logger.warning(
                "Auth user deletion failed or is not applicable",
                user_id=str(user_id),
                error=str(e),
            )

        logger.info("Account deleted", user_id=str(user_id))

    async def _cancel_subscription(self, user_id: UUID) -> None:
        try:
            result = await self.session.execute(
                select(Subscription).where(Subscription.user_id == user_id).limit(1)
            )
            subscription = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Error fetching subscription", error=str(e))
            raise DBPowerException("Failed to fetch subscription") from e

        if (
            subscription is None
            or not subscription.stripe_subscription_id
            or not self.settings.stripe_secret_key
        ):
            return

        stripe = StripeClient(
            self.http_client,
            self.settings.stripe_secret_key,
            self.settings.stripe_api_url,
        )
        await stripe.cancel_subscription(subscription.stripe_subscription_id)

        await self.session.execute(
            update(Subscription)
            .where(Subscription.id == subscription.id)
            .values(status="canceled", canceled_at=datetime.now(UTC))
        )
        await self.session.commit()
