"""
Database webhook receivers that fan out to automation services.
"""

from typing import Any

import httpx
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from dbpower.config.logging import get_logger
from dbpower.config.settings import Settings, SettingsDep
from dbpower.infra.http import HttpClientDep

logger = get_logger(__name__)
router = APIRouter(prefix="/hooks", tags=["hooks"])


class NewUserRecord(BaseModel):
    """The subset of an auth user row forwarded on signup."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    email: str | None = None
    created_at: str | None = None


def extract_user_record(payload: Any) -> NewUserRecord:
    """Accept either a `{"record": {...}}` webhook envelope or a bare user object."""
    if not isinstance(payload, dict):
        raise ValueError("Expected a JSON object")
    record = payload.get("record") or payload
    return NewUserRecord.model_validate(record)


def _error(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": message}
    )


@router.post("/new-user")
async def forward_new_user(
    request: Request,
    settings: Settings = SettingsDep,
    client: httpx.AsyncClient = HttpClientDep,
) -> Any:
    """Forward a signup to the Make.com scenario as a `user_created` event."""
    if not settings.make_webhook_url:
        logger.error("MAKE_WEBHOOK_URL is not configured")
        return _error("MAKE_WEBHOOK_URL is not configured")

    try:
        user = extract_user_record(await request.json())
    except ValueError as e:
        return _error(f"Invalid payload: {e}")

    event = {
        "event": "user_created",
        "email": user.email,
        "user_id": user.id,
        "created_at": user.created_at,
    }

    try:
        response = await client.post(settings.make_webhook_url, json=event)
    except httpx.HTTPError as e:
        logger.error("New-user forward failed", user_id=user.id, error=str(e))
        return _error(str(e) or e.__class__.__name__)

    if response.is_error:
        logger.warning(
            "New-user webhook rejected",
            user_id=user.id,
            status_code=response.status_code,
        )
    else:
        logger.info("New-user forwarded", user_id=user.id)

    return {"ok": True}
