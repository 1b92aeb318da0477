"""
Dispatcher -- priority/age job selection and the atomic claim.

Contract:
    ``next_pending()`` returns the PENDING job with the highest priority,
    oldest first within a tier.  ``claim()`` hands one job to one worker
    with a single conditional UPDATE.  ``queue_position()`` reports how many
    PENDING jobs are at or above a priority.

Architecture: sentiment_batch/services.  Reads JobModel directly; writes
    the claim itself and delegates the JobLog entry to JobStore.

Invariants enforced:
    - At most one worker per job: a claim succeeds only if the row is still
      PENDING (or RUNNING with no worker, for a resumed job) at UPDATE time.
    - Ordering: priority_rank DESC, created_at ASC, seq ASC.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.orm import Session

from sentiment_kernel.domain.clock import Clock, SystemClock
from sentiment_kernel.logging_config import get_logger

from sentiment_batch.domain.types import Job, JobPriority, JobStatus, LogLevel
from sentiment_batch.models.batch import JobModel
from sentiment_batch.services.job_store import JobStore

logger = get_logger("batch.dispatcher")

_DISPATCH_ORDER = (
    JobModel.priority_rank.desc(),
    JobModel.created_at.asc(),
    JobModel.seq.asc(),
)

# Candidates examined per claim_next() before giving up for this tick.
CLAIM_CANDIDATES = 5


class Dispatcher:
    """Selects and claims the next job to run.

    Non-goals:
        - Does NOT execute jobs -- that is the worker loop's job.
        - Does NOT call ``session.commit()``.
    """

    def __init__(
        self,
        session: Session,
        job_store: JobStore | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._store = job_store or JobStore(session, clock=self._clock)

    def next_pending(self) -> Job | None:
        """The PENDING job that should start next, or None."""
        model = self._session.execute(
            select(JobModel)
            .where(JobModel.status == JobStatus.PENDING.value)
            .order_by(*_DISPATCH_ORDER)
            .limit(1)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def queue_position(self, priority: JobPriority) -> int:
        """Number of PENDING jobs whose priority is >= ``priority``."""
        return self._session.execute(
            select(func.count())
            .select_from(JobModel)
            .where(
                JobModel.status == JobStatus.PENDING.value,
                JobModel.priority_rank >= priority.rank,
            )
        ).scalar_one()

    def claim(self, job_id: UUID, worker_id: str) -> Job | None:
        """Atomically hand ``job_id`` to ``worker_id``.

        A PENDING job moves to RUNNING and gets ``started_at``.  A RUNNING
        job with no worker (resumed or started by a caller) is adopted.

        Returns:
            The claimed job, or None if another worker got there first or
            the job is no longer claimable.
        """
        now = self._clock.now()

        claimed_pending = self._session.execute(
            update(JobModel)
            .where(
                JobModel.id == job_id,
                JobModel.status == JobStatus.PENDING.value,
            )
            .values(
                status=JobStatus.RUNNING.value,
                worker_id=worker_id,
                started_at=func.coalesce(JobModel.started_at, now),
            )
            .execution_options(synchronize_session=False)
        ).rowcount == 1

        if claimed_pending:
            self._store.append_log(
                job_id,
                LogLevel.INFO,
                "Status changed from PENDING to RUNNING",
                {
                    "previousStatus": JobStatus.PENDING.value,
                    "newStatus": JobStatus.RUNNING.value,
                    "workerId": worker_id,
                },
            )
        else:
            adopted = self._session.execute(
                update(JobModel)
                .where(
                    JobModel.id == job_id,
                    JobModel.status == JobStatus.RUNNING.value,
                    JobModel.worker_id.is_(None),
                )
                .values(
                    worker_id=worker_id,
                    started_at=func.coalesce(JobModel.started_at, now),
                )
                .execution_options(synchronize_session=False)
            ).rowcount == 1
            if not adopted:
                logger.debug(
                    "batch_job_claim_lost",
                    extra={"job_id": str(job_id), "worker_id": worker_id},
                )
                return None
            self._store.append_log(
                job_id,
                LogLevel.INFO,
                f"Job resumed by worker {worker_id}",
                {"workerId": worker_id},
            )

        job = self._store.get(job_id)
        logger.info(
            "batch_job_claimed",
            extra={
                "job_id": str(job_id),
                "worker_id": worker_id,
                "job_type": job.job_type.value,
                "priority": job.priority.value,
            },
        )
        return job

    def claim_next(self, worker_id: str) -> Job | None:
        """Claim the best available job, skipping ones lost to other workers."""
        candidates = self._session.execute(
            select(JobModel.id)
            .where(
                or_(
                    JobModel.status == JobStatus.PENDING.value,
                    and_(
                        JobModel.status == JobStatus.RUNNING.value,
                        JobModel.worker_id.is_(None),
                    ),
                )
            )
            .order_by(*_DISPATCH_ORDER)
            .limit(CLAIM_CANDIDATES)
        ).scalars().all()

        for job_id in candidates:
            job = self.claim(job_id, worker_id)
            if job is not None:
                return job
        return None
