"""
Thin client for the hosted platform's auth REST API.
"""

from dataclasses import dataclass

import httpx
from fastapi import Depends

from dbpower.config.logging import get_logger
from dbpower.config.settings import Settings, get_settings
from dbpower.infra.http import get_http_client
from dbpower.v1.core.exceptions import ConfigurationError, UpstreamError

logger = get_logger(__name__)


@dataclass
class AuthUser:
    """A user as reported by the platform auth API."""

    id: str
    email: str | None = None


class PlatformAuthClient:
    """Resolve access tokens to users and manage auth users with the service key."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        anon_key: str,
        service_role_key: str = "",
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.service_role_key = service_role_key

    async def get_user(self, access_token: str) -> AuthUser | None:
        """Return the user owning `access_token`, or None if the token is rejected."""
        if not self.base_url or not self.anon_key:
            raise ConfigurationError("Server configuration error")

        try:
            response = await self.client.get(
                f"{self.base_url}/auth/v1/user",
                headers={
                    "apikey": self.anon_key,
                    "Authorization": f"Bearer {access_token}",
                },
            )
        except httpx.HTTPError as e:
            logger.error("Auth API request failed", error=str(e))
            raise UpstreamError("Auth service unavailable") from e

        if response.status_code != 200:
            logger.info("Access token rejected", status_code=response.status_code)
            return None

        data = response.json()
        user_id = data.get("id")
        if not user_id:
            return None
        return AuthUser(id=str(user_id), email=data.get("email"))

    async def delete_user(self, user_id: str) -> None:
        """Delete an auth user. Requires the service role key."""
        if not self.base_url or not self.service_role_key:
            raise ConfigurationError("Server configuration error")

        response = await self.client.delete(
            f"{self.base_url}/auth/v1/admin/users/{user_id}",
            headers={
                "apikey": self.service_role_key,
                "Authorization": f"Bearer {self.service_role_key}",
            },
        )
        response.raise_for_status()


def get_platform_auth(
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> PlatformAuthClient:
    """Dependency injection for the platform auth client."""
    return PlatformAuthClient(
        client,
        base_url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
        service_role_key=settings.supabase_service_role_key,
    )


# Convenience type alias for dependency injection
PlatformAuthDep = Depends(get_platform_auth)
