"""
SubmissionGateway -- validated job submission, status queries, controls.

Contract:
    ``submit()`` validates a wire request and creates a PENDING job,
    returning its id, estimate, and queue position.  ``status()`` and
    ``list_jobs()`` answer queries.  ``start()`` / ``pause()`` / ``cancel()``
    are named transition requests that are idempotent on terminal jobs.

Architecture: sentiment_batch/services.  The thin boundary in front of
    JobStore and Dispatcher; authentication and routing live outside.

Invariants enforced:
    - A malformed request raises ValidationError and writes nothing.
    - Control operations on COMPLETED / FAILED jobs return the current
      state without error.
    - Cancellation is RUNNING -> FAILED with reason "Job cancelled by user".

Non-goals:
    - Does NOT call ``session.commit()`` -- caller controls boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from sentiment_config.schema import EstimationSettings
from sentiment_kernel.domain.clock import Clock, SystemClock, elapsed_seconds
from sentiment_kernel.exceptions import ValidationError
from sentiment_kernel.logging_config import get_logger

from sentiment_batch.domain.parameters import (
    RANGE_REQUIRED_TYPES,
    JobParameters,
    unknown_parameter_keys,
)
from sentiment_batch.domain.types import (
    TERMINAL_STATUSES,
    Job,
    JobFilters,
    JobPage,
    JobStatus,
    JobType,
    LogLevel,
    Pagination,
)
from sentiment_batch.services.dispatcher import Dispatcher
from sentiment_batch.services.job_store import JobStore

logger = get_logger("batch.gateway")

CANCEL_REASON = "Job cancelled by user"
RECENT_ERROR_LIMIT = 10
MAX_PAGE_SIZE = 100

_METADATA_KEYS = frozenset({"description", "tags", "requestedBy"})


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# =============================================================================
# Response DTOs
# =============================================================================


@dataclass(frozen=True)
class SubmissionReceipt:
    job_id: UUID
    status: JobStatus
    estimated_duration: int | None
    created_at: datetime | None
    queue_position: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "jobId": str(self.job_id),
            "status": self.status.value,
            "estimatedDuration": self.estimated_duration,
            "createdAt": _iso(self.created_at),
            "queuePosition": self.queue_position,
        }


@dataclass(frozen=True)
class ControlResponse:
    job_id: UUID
    previous_status: JobStatus
    new_status: JobStatus
    message: str
    timestamp: datetime

    def to_payload(self) -> dict[str, Any]:
        return {
            "jobId": str(self.job_id),
            "previousStatus": self.previous_status.value,
            "newStatus": self.new_status.value,
            "message": self.message,
            "timestamp": _iso(self.timestamp),
        }


# =============================================================================
# Gateway
# =============================================================================


class SubmissionGateway:
    """Validated entry point for submitting and controlling jobs."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        estimation: EstimationSettings | None = None,
        job_store: JobStore | None = None,
        dispatcher: Dispatcher | None = None,
    ):
        self._clock = clock or SystemClock()
        self._store = job_store or JobStore(
            session, clock=self._clock, estimation=estimation,
        )
        self._dispatcher = dispatcher or Dispatcher(
            session, job_store=self._store, clock=self._clock,
        )

    @property
    def job_store(self) -> JobStore:
        return self._store

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def validate(
        self, request: Mapping[str, Any],
    ) -> tuple[JobType, JobParameters, dict[str, Any]]:
        """Check a submission request without writing anything.

        Raises:
            ValidationError: With the offending wire field.
        """
        if not isinstance(request, Mapping):
            raise ValidationError("Request body must be an object")

        raw_type = request.get("type")
        try:
            job_type = JobType(raw_type)
        except ValueError:
            raise ValidationError(
                f"'type' must be one of {[t.value for t in JobType]}, got {raw_type!r}",
                field="type",
            ) from None

        raw_parameters = request.get("parameters")
        if raw_parameters is None:
            raise ValidationError("'parameters' is required", field="parameters")
        parameters = JobParameters.from_payload(raw_parameters)
        if job_type in RANGE_REQUIRED_TYPES and parameters.date_range is None:
            raise ValidationError(
                f"'dateRange' is required for {job_type.value}", field="dateRange",
            )

        metadata = request.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            raise ValidationError("'metadata' must be an object", field="metadata")
        unknown_meta = sorted(set(metadata) - _METADATA_KEYS)
        if unknown_meta:
            raise ValidationError(
                f"Unknown metadata keys: {unknown_meta}", field=f"metadata.{unknown_meta[0]}",
            )
        tags = metadata.get("tags")
        if tags is not None and (
            not isinstance(tags, list) or not all(isinstance(t, str) for t in tags)
        ):
            raise ValidationError("'metadata.tags' must be a list of strings", field="metadata.tags")
        for key in ("description", "requestedBy"):
            if metadata.get(key) is not None and not isinstance(metadata[key], str):
                raise ValidationError(f"'metadata.{key}' must be a string", field=f"metadata.{key}")

        return job_type, parameters, dict(metadata)

    def submit(
        self, request: Mapping[str, Any], submitter: str | None = None,
    ) -> SubmissionReceipt:
        """Validate and persist a new PENDING job.

        Raises:
            ValidationError: If the request is malformed.
        """
        job_type, parameters, metadata = self.validate(request)
        extra_keys = unknown_parameter_keys(request["parameters"])
        if extra_keys:
            logger.warning(
                "batch_job_unknown_parameters",
                extra={"job_type": job_type.value, "keys": extra_keys},
            )

        job = self._store.create(
            job_type,
            parameters=dict(request["parameters"]),
            metadata=metadata,
            submitter=submitter,
            priority=parameters.priority,
        )
        position = self._dispatcher.queue_position(job.priority)

        logger.info(
            "batch_job_submitted",
            extra={
                "job_id": str(job.job_id),
                "job_type": job_type.value,
                "submitter": submitter,
                "queue_position": position,
            },
        )
        return SubmissionReceipt(
            job_id=job.job_id,
            status=job.status,
            estimated_duration=job.estimated_duration,
            created_at=job.created_at,
            queue_position=position,
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def status(self, job_id: UUID) -> dict[str, Any]:
        """Status query payload for one job.

        Raises:
            JobNotFoundError: If job_id does not exist.
        """
        job = self._store.get(job_id)
        result = self._store.get_result(job_id)
        errors = self._store.get_logs(
            job_id, level=LogLevel.ERROR, limit=RECENT_ERROR_LIMIT, newest_first=True,
        )
        items_per_second = self._items_per_second(job)
        remaining_ms = self._remaining_ms(job, items_per_second)

        duration_ms = None
        if job.started_at is not None and job.completed_at is not None:
            duration_ms = round(elapsed_seconds(job.started_at, job.completed_at) * 1000)

        return {
            "jobId": str(job.job_id),
            "type": job.job_type.value,
            "status": job.status.value,
            "priority": job.priority.value,
            "progress": {
                "totalItems": job.total_items,
                "processedItems": job.processed_items,
                "failedItems": job.failed_items,
                "progressPercentage": round(job.progress_percentage, 2),
                "itemsPerSecond": round(items_per_second, 4),
                "estimatedTimeRemaining": remaining_ms,
            },
            "execution": {
                "startedAt": _iso(job.started_at),
                "completedAt": _iso(job.completed_at),
                "duration": duration_ms,
            },
            "result": (
                {
                    "resultType": result.result_type.value,
                    "resultData": result.result_data,
                    "filePath": result.file_path,
                    "createdAt": _iso(result.created_at),
                }
                if result is not None
                else None
            ),
            "errors": [
                {
                    "timestamp": _iso(entry.timestamp),
                    "level": entry.level.value,
                    "message": entry.message,
                    "context": entry.context,
                }
                for entry in errors
            ],
        }

    def list_jobs(
        self,
        status: JobStatus | None = None,
        job_type: JobType | None = None,
        created_by: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> JobPage:
        """Filtered page of jobs.

        Raises:
            ValidationError: If page or limit is out of range.
        """
        if page < 1:
            raise ValidationError("'page' must be >= 1", field="page")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"'limit' must be between 1 and {MAX_PAGE_SIZE}", field="limit",
            )
        return self._store.list(
            JobFilters(status=status, job_type=job_type, created_by=created_by),
            Pagination(page=page, limit=limit),
        )

    def _items_per_second(self, job: Job) -> float:
        if job.started_at is None or job.processed_items == 0:
            return 0.0
        end = job.completed_at or self._clock.now()
        elapsed = elapsed_seconds(job.started_at, end)
        return job.processed_items / elapsed if elapsed > 0 else 0.0

    def _remaining_ms(self, job: Job, items_per_second: float) -> int:
        if items_per_second == 0 or job.status in TERMINAL_STATUSES:
            return 0
        remaining = job.total_items - job.processed_items - job.failed_items
        return round(max(remaining, 0) / items_per_second * 1000)

    # -------------------------------------------------------------------------
    # Controls
    # -------------------------------------------------------------------------

    def start(self, job_id: UUID) -> ControlResponse:
        """PENDING or PAUSED -> RUNNING; the next worker tick picks it up.

        Raises:
            JobNotFoundError: If job_id does not exist.
            InvalidTransitionError: If the job is already RUNNING.
        """
        return self._control(job_id, JobStatus.RUNNING, None)

    def pause(self, job_id: UUID) -> ControlResponse:
        """RUNNING -> PAUSED at the next unit boundary.

        Raises:
            JobNotFoundError: If job_id does not exist.
            InvalidTransitionError: If the job is not RUNNING.
        """
        return self._control(job_id, JobStatus.PAUSED, None)

    def cancel(self, job_id: UUID) -> ControlResponse:
        """RUNNING -> FAILED; the worker stops at the next unit boundary.

        Raises:
            JobNotFoundError: If job_id does not exist.
            InvalidTransitionError: If the job is PENDING or PAUSED.
        """
        return self._control(job_id, JobStatus.FAILED, CANCEL_REASON)

    def _control(
        self, job_id: UUID, target: JobStatus, reason: str | None,
    ) -> ControlResponse:
        current = self._store.get(job_id)
        now = self._clock.now()

        if current.is_terminal:
            return ControlResponse(
                job_id=job_id,
                previous_status=current.status,
                new_status=current.status,
                message=f"Job already {current.status.value}; no change",
                timestamp=now,
            )

        job = self._store.transition(job_id, target, reason=reason)
        message = f"Job status changed from {current.status.value} to {job.status.value}"
        if reason:
            message = reason

        logger.info(
            "batch_job_control",
            extra={
                "job_id": str(job_id),
                "from_status": current.status.value,
                "to_status": job.status.value,
                "reason": reason,
            },
        )
        return ControlResponse(
            job_id=job_id,
            previous_status=current.status,
            new_status=job.status,
            message=message,
            timestamp=now,
        )
