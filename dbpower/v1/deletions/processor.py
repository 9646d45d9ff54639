"""
Single-pass processor for the deletion queue.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from uuid import UUID

from fastapi import Depends

from dbpower.config.logging import get_logger
from dbpower.config.settings import Settings, get_settings
from dbpower.v1.deletions.models import DeletionJob
from dbpower.v1.deletions.repository import (
    DeletionQueueRepository,
    HardDeleteError,
    get_deletion_queue,
)
from dbpower.v1.deletions.schemas import JobOutcome, PassSummary

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def error_message(exc: BaseException) -> str:
    """Human-readable, never empty."""
    if isinstance(exc, HardDeleteError):
        return exc.message or "perform_hard_delete failed"
    return str(exc) or exc.__class__.__name__


class DeletionQueueProcessor:
    """
    Runs one pass over the deletion queue.

    A pass lists up to `deletion_batch_size` eligible jobs and handles them
    strictly one after another:
    - claim with a conditional update (skipped if another pass won the row)
    - invoke the hard delete for the job's user
    - record completed/failed, retrying the status write with backoff

    One job's failure never aborts the batch. Only a failure to list the
    queue fails the pass as a whole.
    """

    def __init__(
        self,
        queue: DeletionQueueRepository,
        settings: Settings,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.queue = queue
        self.settings = settings
        self.clock = clock
        self.sleep = sleep

    async def run_pass(self) -> PassSummary:
        """Process the currently eligible batch and summarise the outcome."""
        now = self.clock()
        jobs = await self.queue.list_eligible(now, self.settings.deletion_batch_size)

        if not jobs:
            logger.debug("No eligible deletion jobs")
            return PassSummary(ok=True, processed=0, results=[])

        logger.info("Deletion pass started", job_count=len(jobs))

        results: list[JobOutcome] = []
        for job in jobs:
            outcome = await self._process_job(job)
            if outcome is not None:
                results.append(outcome)

        failed = sum(1 for outcome in results if not outcome.ok)
        logger.info(
            "Deletion pass finished",
            processed=len(results),
            failed=failed,
            skipped=len(jobs) - len(results),
        )

        return PassSummary(ok=True, processed=len(results), results=results)

    async def _process_job(self, job: DeletionJob) -> JobOutcome | None:
        """Claim, execute and finalize one job. Returns None if it was not claimed."""
        job_logger = logger.bind(job_id=str(job.id), user_id=str(job.user_id))

        try:
            claimed = await self.queue.claim(job.id, self.clock())
        except Exception:
            # Nothing ran and the row is still pending; the next pass picks it up
            job_logger.exception("Failed to claim deletion job")
            return None

        if not claimed:
            job_logger.info("Deletion job already claimed by another pass")
            return None

        try:
            data = await self.queue.hard_delete(job.user_id, job.requested_by)
            outcome = JobOutcome(user_id=str(job.user_id), ok=True, data=data)
            job_logger.info("Hard delete completed")
        except HardDeleteError as e:
            job_logger.error("perform_hard_delete error", error=e.message)
            outcome = JobOutcome(user_id=str(job.user_id), ok=False, error=error_message(e))
        except Exception as e:
            job_logger.exception("Processing error")
            outcome = JobOutcome(user_id=str(job.user_id), ok=False, error=error_message(e))

        await self._finalize(job, outcome)
        return outcome

    async def _finalize(self, job: DeletionJob, outcome: JobOutcome) -> bool:
        """Write the terminal status, retrying transient store failures."""
        attempts = self.settings.deletion_finalize_attempts
        job_logger = logger.bind(job_id=str(job.id), ok=outcome.ok)

        for attempt in range(1, attempts + 1):
            try:
                if outcome.ok:
                    written = await self.queue.mark_completed(job.id, self.clock())
                else:
                    written = await self.queue.mark_failed(
                        job.id, outcome.error or "Unknown error", self.clock()
                    )
                if not written:
                    job_logger.warning("Deletion job was no longer in_progress")
                return written
            except Exception:
                if attempt == attempts:
                    job_logger.exception(
                        "Giving up on deletion job status write; job left in_progress",
                        attempts=attempts,
                    )
                    return False

                delay = self._backoff_delay(attempt)
                job_logger.warning(
                    "Deletion job status write failed, retrying",
                    attempt=attempt,
                    retry_in_s=delay,
                )
                await self.sleep(delay)

        return False

    def _backoff_delay(self, attempt: int) -> float:
        """Exponential backoff: base * 2^(attempt - 1)."""
        base_delay = self.settings.deletion_finalize_backoff_ms / 1000
        return base_delay * (2 ** (attempt - 1))

    async def recover_stale_claims(self, older_than_s: int | None = None) -> list[UUID]:
        """Fail jobs whose in_progress claim is older than the stale threshold."""
        stale_after_s = older_than_s or self.settings.deletion_stale_claim_s
        now = self.clock()
        cutoff = now - timedelta(seconds=stale_after_s)

        job_ids = await self.queue.fail_stale_claims(
            cutoff,
            f"Processing interrupted: claim expired after {stale_after_s}s",
            now,
        )

        if job_ids:
            logger.warning(
                "Failed stale deletion claims",
                job_count=len(job_ids),
                stale_after_s=stale_after_s,
            )

        return job_ids


def get_processor(
    queue: DeletionQueueRepository = Depends(get_deletion_queue),
    settings: Settings = Depends(get_settings),
) -> DeletionQueueProcessor:
    """Dependency injection for the deletion processor."""
    return DeletionQueueProcessor(queue, settings)
