"""
JobStore -- durable job state, state machine, logs, and results.

Contract:
    ``create()`` persists a PENDING job with deterministic totals and
    estimate; ``transition()`` applies one edge of the state machine;
    ``update_progress()`` writes counters; ``append_log()`` and
    ``store_result()`` write the per-job audit trail and final payload.

Architecture: sentiment_batch/services.  Imports from sentiment_batch.domain,
    sentiment_batch.models, and kernel exceptions / clock / logging.

Invariants enforced:
    - Only edges in ``ALLOWED_TRANSITIONS`` are written, each as a single
      conditional UPDATE on the status the caller observed.
    - Every transition writes one INFO JobLog with old/new status.
    - processed + failed <= total; counters never rewind; progress is only
      accepted while RUNNING.
    - Job ``seq`` values come from a SequenceAllocator counter row.
    - All timestamps come from the injected Clock.

Non-goals:
    - Does NOT call ``session.commit()`` -- caller controls boundaries.
    - Does NOT delete jobs; retention is an external concern.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from sentiment_config.schema import EstimationSettings
from sentiment_kernel.domain.clock import Clock, SystemClock
from sentiment_kernel.exceptions import (
    InvalidTransitionError,
    JobNotFoundError,
    ProgressRejectedError,
)
from sentiment_kernel.logging_config import get_logger

from sentiment_batch.domain.parameters import JobParameters, plan_job
from sentiment_batch.domain.types import (
    Job,
    JobFilters,
    JobLogEntry,
    JobPage,
    JobPriority,
    JobResultRecord,
    JobStatus,
    JobType,
    LogLevel,
    Pagination,
    ResultType,
    TERMINAL_STATUSES,
    can_transition,
    compute_progress_percentage,
)
from sentiment_batch.models.batch import JobLogModel, JobModel, JobResultModel
from sentiment_batch.services.sequence import JOB_SEQUENCE, SequenceAllocator

logger = get_logger("batch.job_store")


class JobStore:
    """Persistence and state machine for batch jobs.

    Contract:
        - ``create()`` / ``get()`` / ``list()`` for submission and queries.
        - ``transition()`` for every status change.
        - ``update_progress()`` for counters (see ProgressTracker for
          milestone logging on top of it).
        - ``append_log()`` / ``get_logs()`` for the per-job trail.
        - ``store_result()`` / ``get_result()`` for the completion payload.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        estimation: EstimationSettings | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._estimation = estimation or EstimationSettings()
        self._sequences = SequenceAllocator(session)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def clock(self) -> Clock:
        return self._clock

    # -------------------------------------------------------------------------
    # Create / read
    # -------------------------------------------------------------------------

    def create(
        self,
        job_type: JobType,
        parameters: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
        submitter: str | None = None,
        priority: JobPriority | None = None,
    ) -> Job:
        """Persist a new PENDING job.

        ``total_items`` and ``estimated_duration`` are derived from the
        parameters; priority defaults to ``parameters.priority``.

        Raises:
            ValidationError: If the parameters cannot be parsed.
        """
        parsed = JobParameters.from_payload(parameters)
        plan = plan_job(job_type, parsed, self._estimation)
        effective_priority = priority or parsed.priority

        seq = self._sequences.next_value(JOB_SEQUENCE)

        model = JobModel(
            id=uuid4(),
            job_type=job_type.value,
            status=JobStatus.PENDING.value,
            priority=effective_priority.value,
            priority_rank=effective_priority.rank,
            parameters=dict(parameters or {}),
            job_metadata=dict(metadata or {}),
            total_items=plan.total_items,
            processed_items=0,
            failed_items=0,
            progress_percentage=0.0,
            estimated_duration=plan.estimated_duration,
            seq=seq,
            created_at=self._clock.now(),
            created_by=submitter,
        )
        self._session.add(model)
        self._session.flush()

        self.append_log(
            model.id,
            LogLevel.INFO,
            f"Job created: {job_type.value}",
            {
                "priority": effective_priority.value,
                "totalItems": plan.total_items,
                "estimatedDuration": plan.estimated_duration,
            },
        )

        logger.info(
            "batch_job_created",
            extra={
                "job_id": str(model.id),
                "job_type": job_type.value,
                "priority": effective_priority.value,
                "total_items": plan.total_items,
                "seq": seq,
            },
        )
        return model.to_dto()

    def get(self, job_id: UUID) -> Job:
        """Return the current state of a job.

        Raises:
            JobNotFoundError: If job_id does not exist.
        """
        return self._load(job_id).to_dto()

    def list(
        self,
        filters: JobFilters | None = None,
        pagination: Pagination | None = None,
    ) -> JobPage:
        """Page through jobs, highest priority first, newest first within a tier."""
        filters = filters or JobFilters()
        pagination = pagination or Pagination()

        conditions = []
        if filters.status is not None:
            conditions.append(JobModel.status == filters.status.value)
        if filters.job_type is not None:
            conditions.append(JobModel.job_type == filters.job_type.value)
        if filters.created_by is not None:
            conditions.append(JobModel.created_by == filters.created_by)

        total = self._session.execute(
            select(func.count()).select_from(JobModel).where(*conditions)
        ).scalar_one()

        models = self._session.execute(
            select(JobModel)
            .where(*conditions)
            .order_by(
                JobModel.priority_rank.desc(),
                JobModel.created_at.desc(),
                JobModel.seq.desc(),
            )
            .offset(pagination.offset)
            .limit(pagination.limit)
        ).scalars().all()

        return JobPage(
            jobs=tuple(m.to_dto() for m in models),
            total=total,
            page=pagination.page,
            limit=pagination.limit,
        )

    # -------------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------------

    def transition(
        self,
        job_id: UUID,
        new_status: JobStatus,
        reason: str | None = None,
    ) -> Job:
        """Move a job along one allowed edge.

        Entering RUNNING the first time sets ``started_at``; entering a
        terminal status sets ``completed_at``.  Leaving RUNNING for PAUSED
        releases the worker so that a resumed job can be claimed again.

        Raises:
            JobNotFoundError: If job_id does not exist.
            InvalidTransitionError: If the edge is not allowed, or the job
                changed status concurrently.
        """
        model = self._load(job_id)
        current = JobStatus(model.status)
        if not can_transition(current, new_status):
            raise InvalidTransitionError(
                str(job_id), current.value, new_status.value,
            )

        now = self._clock.now()
        values: dict[str, Any] = {"status": new_status.value}
        if new_status == JobStatus.RUNNING and model.started_at is None:
            values["started_at"] = now
        if new_status == JobStatus.PAUSED:
            values["worker_id"] = None
        if new_status in TERMINAL_STATUSES:
            values["completed_at"] = now

        result = self._session.execute(
            update(JobModel)
            .where(JobModel.id == job_id, JobModel.status == current.value)
            .values(**values)
        )
        if result.rowcount != 1:
            latest = self._load(job_id)
            raise InvalidTransitionError(
                str(job_id), latest.status, new_status.value,
            )

        context: dict[str, Any] = {
            "previousStatus": current.value,
            "newStatus": new_status.value,
        }
        if reason:
            context["reason"] = reason
        message = f"Status changed from {current.value} to {new_status.value}"
        if reason:
            message = f"{message}: {reason}"
        self.append_log(job_id, LogLevel.INFO, message, context)

        logger.info(
            "batch_job_transition",
            extra={
                "job_id": str(job_id),
                "from_status": current.value,
                "to_status": new_status.value,
                "reason": reason,
            },
        )
        return self.get(job_id)

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    def update_progress(
        self,
        job_id: UUID,
        processed: int,
        failed: int,
        current_unit: str | None = None,
        checkpoint: dict[str, Any] | None = None,
    ) -> Job:
        """Write cumulative counters for a RUNNING job.

        The write is conditional on the counters the store read, so a
        concurrent cancel or a second writer cannot be overwritten.

        Raises:
            JobNotFoundError: If job_id does not exist.
            ProgressRejectedError: If the job is not RUNNING, the counters
                would rewind, or processed + failed would exceed total.
        """
        model = self._load(job_id)
        if model.status != JobStatus.RUNNING.value:
            raise ProgressRejectedError(
                str(job_id), f"job is {model.status}, not RUNNING",
            )
        if processed < 0 or failed < 0:
            raise ProgressRejectedError(str(job_id), "counters must be non-negative")
        if processed < model.processed_items or failed < model.failed_items:
            raise ProgressRejectedError(
                str(job_id),
                f"counters cannot rewind ({model.processed_items}/"
                f"{model.failed_items} -> {processed}/{failed})",
            )
        if processed + failed > model.total_items:
            raise ProgressRejectedError(
                str(job_id),
                f"processed + failed ({processed + failed}) exceeds "
                f"total ({model.total_items})",
            )

        percentage = max(
            model.progress_percentage,
            compute_progress_percentage(model.total_items, processed),
        )
        values: dict[str, Any] = {
            "processed_items": processed,
            "failed_items": failed,
            "progress_percentage": percentage,
            "current_unit": current_unit,
        }
        if checkpoint is not None:
            values["checkpoint"] = checkpoint

        result = self._session.execute(
            update(JobModel)
            .where(
                JobModel.id == job_id,
                JobModel.status == JobStatus.RUNNING.value,
                JobModel.processed_items == model.processed_items,
                JobModel.failed_items == model.failed_items,
            )
            .values(**values)
        )
        if result.rowcount != 1:
            raise ProgressRejectedError(str(job_id), "job changed concurrently")
        return self.get(job_id)

    def set_total_items(self, job_id: UUID, total_items: int) -> Job:
        """Re-plan the unit count once a handler has enumerated its units.

        Raises:
            JobNotFoundError: If job_id does not exist.
            ProgressRejectedError: If counters already exceed the new total.
        """
        model = self._load(job_id)
        if model.processed_items + model.failed_items > total_items:
            raise ProgressRejectedError(
                str(job_id),
                f"cannot shrink total below {model.processed_items + model.failed_items}",
            )
        model.total_items = total_items
        model.progress_percentage = max(
            model.progress_percentage,
            compute_progress_percentage(total_items, model.processed_items),
        )
        self._session.flush()
        return model.to_dto()

    # -------------------------------------------------------------------------
    # Logs
    # -------------------------------------------------------------------------

    def append_log(
        self,
        job_id: UUID,
        level: LogLevel,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> JobLogEntry:
        # Per-job ordering only; not unique, so concurrent writers may tie.
        seq = self._session.execute(
            select(func.coalesce(func.max(JobLogModel.seq), 0)).where(
                JobLogModel.job_id == job_id,
            )
        ).scalar_one() + 1
        model = JobLogModel(
            id=uuid4(),
            job_id=job_id,
            level=level.value,
            message=message,
            context=context,
            timestamp=self._clock.now(),
            seq=seq,
        )
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def get_logs(
        self,
        job_id: UUID,
        level: LogLevel | None = None,
        limit: int | None = None,
        newest_first: bool = False,
    ) -> tuple[JobLogEntry, ...]:
        stmt = select(JobLogModel).where(JobLogModel.job_id == job_id)
        if level is not None:
            stmt = stmt.where(JobLogModel.level == level.value)
        if newest_first:
            stmt = stmt.order_by(JobLogModel.seq.desc())
        else:
            stmt = stmt.order_by(JobLogModel.seq)
        if limit is not None:
            stmt = stmt.limit(limit)
        return tuple(m.to_dto() for m in self._session.execute(stmt).scalars())

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def store_result(
        self,
        job_id: UUID,
        result_type: ResultType,
        result_data: dict[str, Any],
        file_path: str | None = None,
    ) -> JobResultRecord:
        """Write the single result of a job.

        Raises:
            JobNotFoundError: If job_id does not exist.
            ValueError: If the job already has a result.
        """
        self._load(job_id)
        if self.get_result(job_id) is not None:
            raise ValueError(f"Job {job_id} already has a result")
        model = JobResultModel(
            id=uuid4(),
            job_id=job_id,
            result_type=result_type.value,
            result_data=result_data,
            file_path=file_path,
            created_at=self._clock.now(),
        )
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def get_result(self, job_id: UUID) -> JobResultRecord | None:
        model = self._session.execute(
            select(JobResultModel).where(JobResultModel.job_id == job_id)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _load(self, job_id: UUID) -> JobModel:
        """Read the job row, refreshing any stale copy in the session."""
        model = self._session.execute(
            select(JobModel)
            .where(JobModel.id == job_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise JobNotFoundError(str(job_id))
        return model
