import hmac
import re
from dataclasses import dataclass, field

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dbpower.config.settings import Settings, get_settings
from dbpower.infra.platform import PlatformAuthClient, get_platform_auth
from dbpower.v1.account.models import UserProfile
from dbpower.v1.core.exceptions import ConfigurationError, UnauthorizedError

_BEARER_PREFIX = re.compile(r"^Bearer\s+", re.IGNORECASE)


@dataclass
class Principal:
    """Represents the current authenticated caller."""

    user_id: str
    roles: list[str] = field(default_factory=list)
    email: str | None = None


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token of a `Bearer <token>` header, or None if absent."""
    raw = (authorization or "").strip()
    if not _BEARER_PREFIX.match(raw):
        return None
    token = _BEARER_PREFIX.sub("", raw).strip()
    return token or None


def keys_match(provided: str, expected: str) -> bool:
    """Constant-time comparison of a caller-supplied key against a secret."""
    return hmac.compare_digest(provided.encode(), expected.encode())


def _require_shared_key(authorization: str | None, expected: str, label: str) -> None:
    token = extract_bearer_token(authorization)
    if token is None:
        raise UnauthorizedError(
            "Unauthorized: Missing or invalid Authorization header"
        )
    if not keys_match(token, expected):
        raise UnauthorizedError(f"Unauthorized: Invalid {label}")


async def require_service_role(
    authorization: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> Principal:
    """Callers of the deletion queue must present the service role key."""
    if not settings.supabase_service_role_key:
        raise ConfigurationError("Missing SUPABASE_SERVICE_ROLE_KEY")

    _require_shared_key(
        authorization, settings.supabase_service_role_key, "service role key"
    )
    return Principal(user_id="service_role", roles=["service_role"])


async def require_admin_key(
    authorization: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> Principal:
    """Admin endpoints compare the bearer token with DBPOWER_ADMIN_KEY."""
    if not settings.dbpower_admin_key:
        raise ConfigurationError("Missing DBPOWER_ADMIN_KEY")

    _require_shared_key(authorization, settings.dbpower_admin_key, "admin key")
    return Principal(user_id="admin", roles=["admin"])


async def get_current_user(
    authorization: str | None = Header(None),
    auth_client: PlatformAuthClient = Depends(get_platform_auth),
) -> Principal:
    """Resolve the bearer access token to a platform user."""
    token = extract_bearer_token(authorization)
    if token is None:
        raise UnauthorizedError("Missing token")

    user = await auth_client.get_user(token)
    if user is None:
        raise UnauthorizedError("Invalid token")

    return Principal(user_id=user.id, roles=["user"], email=user.email)


async def find_profile_by_api_key(
    session: AsyncSession, api_key: str
) -> UserProfile | None:
    result = await session.execute(
        select(UserProfile).where(UserProfile.api_key == api_key).limit(1)
    )
    return result.scalar_one_or_none()


# Convenience type aliases for dependency injection
ServiceRoleDep = Depends(require_service_role)
AdminKeyDep = Depends(require_admin_key)
CurrentUserDep = Depends(get_current_user)
