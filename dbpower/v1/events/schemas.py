from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class TrackEventRequest(BaseModel):
    """Event tracking payload. Fields are validated by the route so bad input yields 400."""

    type: Any = None
    session_id: Any = None
    metadata: dict[str, Any] | None = Field(default=None)


class UserEventResponse(BaseModel):
    event: str
    metadata: dict[str, Any] | None = None
    created_at: datetime


def require_text(value: Any) -> str | None:
    """Return the stripped string, or None when missing, blank or not a string."""
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()
