"""
ORM models for batch job persistence.

Contract:
    JobModel, JobLogModel, and JobResultModel persist job state, the
    append-only per-job log, and the single result of a completed job.
    Each has ``to_dto()`` returning a frozen dataclass from
    ``sentiment_batch.domain.types``.

Architecture: sentiment_batch/models. Imports from sentiment_kernel.db.base
    only.

Invariants enforced:
    - ``job_id`` is UNIQUE on JobResultModel (at most one result per job).
    - ``seq`` is UNIQUE on JobModel (FIFO tie-break within a timestamp).
    - ``seq`` values come from a locked SequenceCounterModel row, never
      from max(seq) + 1.
    - ``priority_rank`` mirrors ``priority`` so ORDER BY needs no CASE.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sentiment_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from sentiment_batch.domain.types import Job, JobLogEntry, JobResultRecord


class JobModel(Base):
    """Persistent batch job record."""

    __tablename__ = "batch_jobs"

    __table_args__ = (
        Index("ix_batch_jobs_status", "status"),
        Index("ix_batch_jobs_job_type", "job_type"),
        Index("ix_batch_jobs_dispatch", "status", "priority_rank", "created_at"),
        Index("ix_batch_jobs_created_by", "created_by"),
    )

    job_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False)
    priority_rank: Mapped[int] = mapped_column(Integer, nullable=False)
    parameters: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    # "metadata" is reserved on declarative classes.
    job_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    total_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    processed_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    progress_percentage: Mapped[float] = mapped_column(
        Float, default=0.0, nullable=False,
    )
    current_unit: Mapped[str | None] = mapped_column(String(100), nullable=True)
    checkpoint: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    estimated_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    worker_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    seq: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_by: Mapped[str | None] = mapped_column(String(200), nullable=True)

    logs: Mapped[list["JobLogModel"]] = relationship(
        "JobLogModel",
        back_populates="job",
        order_by="JobLogModel.seq",
    )
    result: Mapped[Optional["JobResultModel"]] = relationship(
        "JobResultModel",
        back_populates="job",
        uselist=False,
    )

    def to_dto(self) -> Job:
        from sentiment_batch.domain.types import Job, JobPriority, JobStatus, JobType

        return Job(
            job_id=self.id,
            job_type=JobType(self.job_type),
            status=JobStatus(self.status),
            priority=JobPriority(self.priority),
            parameters=dict(self.parameters or {}),
            metadata=dict(self.job_metadata or {}),
            total_items=self.total_items,
            processed_items=self.processed_items,
            failed_items=self.failed_items,
            progress_percentage=self.progress_percentage,
            current_unit=self.current_unit,
            checkpoint=dict(self.checkpoint) if self.checkpoint else None,
            estimated_duration=self.estimated_duration,
            worker_id=self.worker_id,
            seq=self.seq,
            created_at=self.created_at,
            started_at=self.started_at,
            completed_at=self.completed_at,
            created_by=self.created_by,
        )


class JobLogModel(Base):
    """Append-only log entry for one job."""

    __tablename__ = "batch_job_logs"

    __table_args__ = (
        Index("ix_batch_job_logs_job_level", "job_id", "level"),
        Index("ix_batch_job_logs_timestamp", "timestamp"),
    )

    job_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("batch_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    level: Mapped[str] = mapped_column(String(10), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    # Insertion order; timestamps from a fixed clock can tie.
    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    job: Mapped["JobModel"] = relationship(
        "JobModel",
        back_populates="logs",
        foreign_keys=[job_id],
    )

    def to_dto(self) -> JobLogEntry:
        from sentiment_batch.domain.types import JobLogEntry, LogLevel

        return JobLogEntry(
            log_id=self.id,
            job_id=self.job_id,
            level=LogLevel(self.level),
            message=self.message,
            context=self.context,
            timestamp=self.timestamp,
        )


class JobResultModel(Base):
    """The single result written when a job completes."""

    __tablename__ = "batch_job_results"

    job_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("batch_jobs.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    result_type: Mapped[str] = mapped_column(String(50), nullable=False)
    result_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    file_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    job: Mapped["JobModel"] = relationship(
        "JobModel",
        back_populates="result",
        foreign_keys=[job_id],
    )

    def to_dto(self) -> JobResultRecord:
        from sentiment_batch.domain.types import JobResultRecord, ResultType

        return JobResultRecord(
            result_id=self.id,
            job_id=self.job_id,
            result_type=ResultType(self.result_type),
            result_data=dict(self.result_data or {}),
            file_path=self.file_path,
            created_at=self.created_at,
        )


class SequenceCounterModel(Base):
    """Named counter row; locked with SELECT ... FOR UPDATE on allocation."""

    __tablename__ = "batch_sequence_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
