"""
Deletion queue Pydantic schemas.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class JobOutcome(BaseModel):
    """Result of processing one job within a pass."""

    user_id: str
    ok: bool
    data: Any | None = None
    error: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """Successful outcomes carry `data`, failed ones carry `error`."""
        if self.ok:
            return {"user_id": self.user_id, "ok": True, "data": self.data}
        return {"user_id": self.user_id, "ok": False, "error": self.error}


class PassSummary(BaseModel):
    """Summary returned by one processing pass."""

    ok: bool = True
    processed: int = 0
    results: list[JobOutcome] = Field(default_factory=list)

    def to_wire(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "processed": self.processed,
            "results": [outcome.to_wire() for outcome in self.results],
        }


class DeletionJobResponse(BaseModel):
    """Schema for deletion job API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    requested_by: UUID | None = None
    scheduled_for: datetime
    status: str
    error: str | None = None
    claimed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class DeletionJobListResponse(BaseModel):
    """Schema for deletion job list API response."""

    jobs: list[DeletionJobResponse]
    total: int
    limit: int
    offset: int


class DeletionStatsResponse(BaseModel):
    """Counts per status plus the number of jobs currently due."""

    total_jobs: int
    by_status: dict[str, int]
    due_now: int


class RecoverResponse(BaseModel):
    """Schema for the stale-claim sweep."""

    recovered: int
    job_ids: list[UUID]
