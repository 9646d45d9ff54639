"""
Deletion queue endpoints.

`POST /deletion-queue/process` is hit by an external scheduler; the other
endpoints exist for audit and operator recovery.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, status as http_status
from fastapi.responses import JSONResponse

from dbpower.config.logging import get_logger
from dbpower.v1.core.exceptions import create_success_response
from dbpower.v1.core.security import ServiceRoleDep
from dbpower.v1.deletions.models import DeletionStatus
from dbpower.v1.deletions.processor import DeletionQueueProcessor, get_processor
from dbpower.v1.deletions.repository import (
    DeletionQueueRepository,
    QueueUnavailableError,
    get_deletion_queue,
)
from dbpower.v1.deletions.schemas import (
    DeletionJobListResponse,
    DeletionJobResponse,
    DeletionStatsResponse,
    RecoverResponse,
)

logger = get_logger(__name__)
router = APIRouter(
    prefix="/deletion-queue", tags=["deletion-queue"], dependencies=[ServiceRoleDep]
)


@router.post("/process", response_model=dict)
async def process_deletion_queue(
    processor: DeletionQueueProcessor = Depends(get_processor),
) -> Any:
    """Run one pass over the currently eligible deletion jobs."""
    try:
        summary = await processor.run_pass()
    except QueueUnavailableError as e:
        logger.error("Deletion pass aborted, queue unavailable", error=e.message)
        return JSONResponse(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": e.message},
        )
    return summary.to_wire()


@router.post("/recover", response_model=dict)
async def recover_stale_claims(
    older_than_s: int | None = Query(
        default=None, ge=60, description="Override the stale-claim threshold"
    ),
    processor: DeletionQueueProcessor = Depends(get_processor),
) -> dict[str, Any]:
    """Fail jobs left in_progress past the stale-claim threshold."""
    job_ids = await processor.recover_stale_claims(older_than_s)
    response = RecoverResponse(recovered=len(job_ids), job_ids=job_ids)
    return create_success_response(data=response.model_dump(mode="json"))


@router.get("", response_model=dict)
async def list_deletion_jobs(
    status: list[DeletionStatus] | None = Query(
        default=None, description="Filter by status"
    ),
    limit: int = Query(default=50, ge=1, le=1000, description="Maximum results"),
    offset: int = Query(default=0, ge=0, description="Results offset"),
    queue: DeletionQueueRepository = Depends(get_deletion_queue),
) -> dict[str, Any]:
    """List deletion jobs, newest first."""
    statuses = [s.value for s in status] if status else None
    jobs, total = await queue.list_jobs(statuses, limit=limit, offset=offset)

    response = DeletionJobListResponse(
        jobs=[DeletionJobResponse.model_validate(job) for job in jobs],
        total=total,
        limit=limit,
        offset=offset,
    )
    return create_success_response(data=response.model_dump(mode="json"))


@router.get("/stats", response_model=dict)
async def get_deletion_stats(
    queue: DeletionQueueRepository = Depends(get_deletion_queue),
) -> dict[str, Any]:
    """Counts per status and how many pending jobs are already due."""
    by_status, due_now = await queue.count_by_status(datetime.now(UTC))

    response = DeletionStatsResponse(
        total_jobs=sum(by_status.values()),
        by_status=by_status,
        due_now=due_now,
    )
    return create_success_response(data=response.model_dump())
