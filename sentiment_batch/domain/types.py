"""
sentiment_batch.domain.types -- Pure frozen dataclasses for the batch system.

ZERO I/O.  Status fields are str-valued enums so they persist as plain
strings and serialize without adapters.

Invariants enforced:
    - ``ALLOWED_TRANSITIONS`` is the complete job state machine; nothing
      leaves COMPLETED or FAILED.
    - ``progress_percentage`` = min(100, processed / total * 100), or 0 when
      total is 0.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID


# =============================================================================
# Enums
# =============================================================================


class JobType(str, Enum):
    """Kinds of batch work the engine knows how to run."""

    HISTORICAL_BACKFILL = "HISTORICAL_BACKFILL"
    INDEX_RECALCULATION = "INDEX_RECALCULATION"
    DATA_VALIDATION = "DATA_VALIDATION"
    BULK_REPORT_GENERATION = "BULK_REPORT_GENERATION"


class JobStatus(str, Enum):
    """Job-level lifecycle status."""

    PENDING = "PENDING"  # Submitted, waiting for a worker
    RUNNING = "RUNNING"  # Claimed (or released for resumption)
    PAUSED = "PAUSED"  # Cooperative pause at a unit boundary
    COMPLETED = "COMPLETED"  # Terminal, result stored
    FAILED = "FAILED"  # Terminal, setup failure or cancellation


class JobPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    JobPriority.LOW: 1,
    JobPriority.NORMAL: 2,
    JobPriority.HIGH: 3,
}


class LogLevel(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class ProcessingStrategy(str, Enum):
    """Accepted and recorded; units always run sequentially."""

    CHUNKED = "CHUNKED"
    STREAM = "STREAM"
    PARALLEL = "PARALLEL"


class ValidationLevel(str, Enum):
    BASIC = "BASIC"
    COMPREHENSIVE = "COMPREHENSIVE"


class ReportType(str, Enum):
    MONTHLY_SUMMARY = "MONTHLY_SUMMARY"
    QUARTERLY_ANALYSIS = "QUARTERLY_ANALYSIS"
    YEARLY_TRENDS = "YEARLY_TRENDS"
    CUSTOM = "CUSTOM"


class OutputFormat(str, Enum):
    JSON = "JSON"
    CSV = "CSV"


class ResultType(str, Enum):
    BACKFILL_SUMMARY = "BACKFILL_SUMMARY"
    RECALCULATION_REPORT = "RECALCULATION_REPORT"
    VALIDATION_REPORT = "VALIDATION_REPORT"
    REPORT_ARTIFACT = "REPORT_ARTIFACT"


RESULT_TYPE_BY_JOB_TYPE: dict[JobType, ResultType] = {
    JobType.HISTORICAL_BACKFILL: ResultType.BACKFILL_SUMMARY,
    JobType.INDEX_RECALCULATION: ResultType.RECALCULATION_REPORT,
    JobType.DATA_VALIDATION: ResultType.VALIDATION_REPORT,
    JobType.BULK_REPORT_GENERATION: ResultType.REPORT_ARTIFACT,
}


# =============================================================================
# State machine
# =============================================================================


ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING}),
    JobStatus.RUNNING: frozenset(
        {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.PAUSED}
    ),
    JobStatus.PAUSED: frozenset({JobStatus.RUNNING}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.COMPLETED, JobStatus.FAILED}
)


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def compute_progress_percentage(total_items: int, processed_items: int) -> float:
    if total_items <= 0:
        return 0.0
    return max(0.0, min(100.0, processed_items * 100 / total_items))


# =============================================================================
# Job DTOs
# =============================================================================


@dataclass(frozen=True)
class Job:
    """Immutable snapshot of a batch job."""

    job_id: UUID
    job_type: JobType
    status: JobStatus
    priority: JobPriority
    parameters: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    total_items: int = 0
    processed_items: int = 0
    failed_items: int = 0
    progress_percentage: float = 0.0
    current_unit: str | None = None
    checkpoint: dict[str, Any] | None = None
    estimated_duration: int | None = None  # seconds
    worker_id: str | None = None
    seq: int | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_by: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class JobLogEntry:
    """Append-only event for one job."""

    log_id: UUID
    job_id: UUID
    level: LogLevel
    message: str
    context: dict[str, Any] | None = None
    timestamp: datetime | None = None


@dataclass(frozen=True)
class JobResultRecord:
    """The single result stored when a job completes."""

    result_id: UUID
    job_id: UUID
    result_type: ResultType
    result_data: dict[str, Any]
    file_path: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class SentimentRecord:
    """One calendar date of the sentiment index."""

    record_date: date
    value: int
    level: str
    confidence: int
    components: dict[str, float]
    calculation_method: str | None = None
    calculated_by_job_id: UUID | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class JobFilters:
    status: JobStatus | None = None
    job_type: JobType | None = None
    created_by: str | None = None


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class JobPage:
    jobs: tuple[Job, ...]
    total: int
    page: int
    limit: int

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1
