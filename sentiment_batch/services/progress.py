"""
ProgressTracker -- cumulative progress reporting with milestone logs.

Contract:
    ``report()`` writes processed / failed counters and the current unit
    through ``JobStore.update_progress()`` and appends one INFO JobLog for
    every milestone boundary (every 10% by default) the report crosses.

Invariants enforced:
    - Progress never rewinds and is refused once the job leaves RUNNING
      (enforced by JobStore, surfaced as ProgressRejectedError).
    - Log volume is bounded: at most 100 / step milestone entries per job.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sentiment_kernel.logging_config import get_logger

from sentiment_batch.domain.types import Job, LogLevel
from sentiment_batch.services.job_store import JobStore

logger = get_logger("batch.progress")

DEFAULT_MILESTONE_STEP = 10


def crossed_milestones(before: float, after: float, step: int) -> list[int]:
    """Milestone boundaries in (before, after], ascending."""
    return [
        boundary
        for boundary in range(step, 101, step)
        if before < boundary <= after
    ]


class ProgressTracker:
    """Writes progress for running jobs."""

    def __init__(
        self,
        job_store: JobStore,
        milestone_step: int = DEFAULT_MILESTONE_STEP,
    ):
        self._store = job_store
        self._step = milestone_step

    def report(
        self,
        job_id: UUID,
        processed_items: int,
        failed_items: int,
        current_unit: str | None = None,
        checkpoint: dict[str, Any] | None = None,
    ) -> Job:
        """Persist cumulative counters for a job.

        Raises:
            JobNotFoundError: If job_id does not exist.
            ProgressRejectedError: If the store refuses the update.
        """
        before = self._store.get(job_id)
        job = self._store.update_progress(
            job_id,
            processed_items,
            failed_items,
            current_unit=current_unit,
            checkpoint=checkpoint,
        )

        for milestone in crossed_milestones(
            before.progress_percentage, job.progress_percentage, self._step,
        ):
            self._store.append_log(
                job_id,
                LogLevel.INFO,
                f"Progress: {milestone}% complete",
                {
                    "milestone": milestone,
                    "processedItems": job.processed_items,
                    "failedItems": job.failed_items,
                    "totalItems": job.total_items,
                    "currentUnit": current_unit,
                },
            )
            logger.info(
                "batch_job_milestone",
                extra={
                    "job_id": str(job_id),
                    "milestone": milestone,
                    "processed_items": job.processed_items,
                    "failed_items": job.failed_items,
                },
            )
        return job
