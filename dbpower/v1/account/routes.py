from typing import Any
from uuid import UUID

import httpx
from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dbpower.config.settings import Settings, SettingsDep
from dbpower.infra.database import get_session
from dbpower.infra.http import HttpClientDep
from dbpower.infra.platform import PlatformAuthClient, get_platform_auth
from dbpower.v1.account.service import AccountService
from dbpower.v1.core.exceptions import UnauthorizedError
from dbpower.v1.core.security import CurrentUserDep, Principal

router = APIRouter(prefix="/account", tags=["account"])


def _user_uuid(principal: Principal) -> UUID:
    try:
        return UUID(principal.user_id)
    except ValueError:
        raise UnauthorizedError("Invalid token") from None


@router.post("/api-key", response_model=dict)
async def regenerate_api_key(
    principal: Principal = CurrentUserDep,
    session: AsyncSession = Depends(get_session),
    settings: Settings = SettingsDep,
    client: httpx.AsyncClient = HttpClientDep,
) -> dict[str, Any]:
    """Rotate the caller's API key. The key is only ever shown in this response."""
    service = AccountService(settings, session, client)
    api_key = await service.regenerate_api_key(_user_uuid(principal))

    return {
        "success": True,
        "api_key": api_key,
        "message": "API key regenerated successfully. Save it now - it won't be shown again.",
    }


@router.post("/delete", response_model=dict)
async def delete_account(
    payload: dict[str, Any] | None = Body(default=None),
    principal: Principal = CurrentUserDep,
    session: AsyncSession = Depends(get_session),
    settings: Settings = SettingsDep,
    client: httpx.AsyncClient = HttpClientDep,
    auth_client: PlatformAuthClient = Depends(get_platform_auth),
) -> dict[str, Any]:
    """Cancel billing, soft-delete the caller's data and remove the auth user."""
    reason = (payload or {}).get("reason")
    service = AccountService(settings, session, client)
    await service.delete_account(
        _user_uuid(principal),
        auth_client,
        reason=reason if isinstance(reason, str) else None,
    )

    return {"status": "ok"}
