"""
Webhook proxy.

Callers authenticate with their per-user `X-API-Key`; the proxy adds the
project anon key as a bearer token and forwards the body to the upstream
`webhook` function unchanged.
"""

import httpx
from fastapi import APIRouter, Depends, Header, Request, Response, status
from fastapi.responses import JSONResponse

from dbpower.config.logging import get_logger
from dbpower.config.settings import Settings, SettingsDep
from dbpower.infra.database import get_database
from dbpower.infra.http import HttpClientDep
from dbpower.v1.core.exceptions import ConfigurationError, UnauthorizedError
from dbpower.v1.core.security import find_profile_by_api_key

logger = get_logger(__name__)
router = APIRouter(prefix="/proxy", tags=["proxy"])


async def get_caller_api_key(
    x_api_key: str | None = Header(None, alias="X-API-Key"),
    settings: Settings = SettingsDep,
) -> str:
    """Require `X-API-Key`; optionally check it against stored user keys."""
    if not x_api_key:
        raise UnauthorizedError("Missing X-API-Key")

    if settings.proxy_verify_api_key:
        database = get_database(settings)
        async with database.SessionLocal() as session:
            profile = await find_profile_by_api_key(session, x_api_key)
        if profile is None:
            raise UnauthorizedError("Invalid API key")

    return x_api_key


@router.post("/webhook")
async def proxy_webhook(
    request: Request,
    api_key: str = Depends(get_caller_api_key),
    settings: Settings = SettingsDep,
    client: httpx.AsyncClient = HttpClientDep,
) -> Response:
    """Forward a webhook call upstream with the project bearer token."""
    if not settings.supabase_anon_key:
        raise ConfigurationError("Server misconfigured")

    body = await request.body()
    forward_headers = {
        "Content-Type": request.headers.get("content-type") or "application/json",
        "Authorization": f"Bearer {settings.supabase_anon_key}",
        "X-API-Key": api_key,
    }
    target = f"{settings.supabase_function_url}/webhook"

    try:
        upstream = await client.post(target, content=body, headers=forward_headers)
    except httpx.HTTPError as e:
        logger.error("Proxy upstream request failed", target=target, error=str(e))
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "Proxy error", "details": str(e) or e.__class__.__name__},
        )

    logger.info(
        "Proxied webhook call", target=target, status_code=upstream.status_code
    )

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type") or "application/json",
    )
