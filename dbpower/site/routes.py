from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query, Response

from dbpower.config.settings import Settings, SettingsDep
from dbpower.site.countdown import countdown_to
from dbpower.site.sitemap import build_sitemap
from dbpower.v1.core.exceptions import create_success_response

sitemap_router = APIRouter(tags=["site"])
countdown_router = APIRouter(tags=["site"])


@sitemap_router.get("/sitemap.xml", include_in_schema=False)
async def sitemap(settings: Settings = SettingsDep) -> Response:
    """Serve the sitemap for the configured routes."""
    xml = build_sitemap(settings.site_url, settings.sitemap_routes)
    return Response(content=xml, media_type="application/xml")


@countdown_router.get("/countdown", response_model=dict)
async def countdown(
    target: datetime = Query(..., description="ISO-8601 target time"),
) -> dict[str, Any]:
    """Time left until `target`; all parts are zero once it has passed."""
    remaining = countdown_to(target)
    return create_success_response(
        data={**remaining.as_dict(), "expired": remaining.expired}
    )
