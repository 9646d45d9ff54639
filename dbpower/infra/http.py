from typing import AsyncGenerator

import httpx
from fastapi import Depends

from dbpower.config.settings import Settings, get_settings


async def get_http_client(
    settings: Settings = Depends(get_settings),
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Dependency injection for an outbound HTTP client scoped to the request."""
    async with httpx.AsyncClient(timeout=settings.http_timeout_s) as client:
        yield client


# Convenience type alias for dependency injection
HttpClientDep = Depends(get_http_client)
