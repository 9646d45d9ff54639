from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse
from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dbpower.config.logging import get_logger
from dbpower.infra.database import get_session
from dbpower.infra.platform import PlatformAuthClient, get_platform_auth
from dbpower.v1.core.exceptions import DBPowerException
from dbpower.v1.core.security import AdminKeyDep, extract_bearer_token
from dbpower.v1.events.models import Event, UserEvent
from dbpower.v1.events.schemas import TrackEventRequest, UserEventResponse, require_text

logger = get_logger(__name__)
router = APIRouter(tags=["events"])


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": message},
    )


async def resolve_optional_user(
    authorization: str | None, auth_client: PlatformAuthClient
) -> UUID | None:
    """Best-effort user lookup; any failure means the event is anonymous."""
    token = extract_bearer_token(authorization)
    if token is None:
        return None

    try:
        user = await auth_client.get_user(token)
    except DBPowerException as e:
        logger.warning("Could not resolve event user", error=e.message)
        return None

    if user is None:
        return None
    try:
        return UUID(user.id)
    except ValueError:
        return None


@router.post("/events")
async def track_event(
    event_request: TrackEventRequest,
    authorization: str | None = Header(None),
    auth_client: PlatformAuthClient = Depends(get_platform_auth),
    session: AsyncSession = Depends(get_session),
) -> Any:
    """Record an analytics event for a browser session."""
    event_type = require_text(event_request.type)
    if event_type is None:
        return _bad_request("Missing or invalid 'type' field")

    session_id = require_text(event_request.session_id)
    if session_id is None:
        return _bad_request("Missing session_id")

    user_id = await resolve_optional_user(authorization, auth_client)

    event = Event(
        type=event_type,
        session_id=session_id,
        user_id=user_id,
        event_metadata=event_request.metadata or {},
    )

    try:
        session.add(event)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("Failed to insert event", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to track event"},
        )

    logger.info(
        "Event tracked",
        type=event_type,
        session_id=session_id,
        user_id=str(user_id) if user_id else "anonymous",
    )

    return {"success": True}


@router.get("/admin/events/{user_id}", dependencies=[AdminKeyDep])
async def list_user_events(
    user_id: UUID,
    session: AsyncSession = Depends(get_session),
) -> Any:
    """Return a user's audit events, newest first."""
    try:
        result = await session.execute(
            select(UserEvent)
            .where(UserEvent.user_id == user_id)
            .order_by(desc(UserEvent.created_at))
        )
    except SQLAlchemyError as e:
        logger.error("Failed to fetch user events", user_id=str(user_id), error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch events"},
        )

    events = [
        UserEventResponse(
            event=row.event, metadata=row.event_metadata, created_at=row.created_at
        ).model_dump(mode="json")
        for row in result.scalars().all()
    ]

    return {"user_id": str(user_id), "events": events}
