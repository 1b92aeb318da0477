"""
sentiment_batch.domain -- Pure types and value objects for the batch engine.

ZERO I/O.  All types are frozen dataclasses.
"""

from sentiment_batch.domain.parameters import (
    DateRange,
    JobParameters,
    JobPlan,
    plan_job,
)
from sentiment_batch.domain.types import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    Job,
    JobFilters,
    JobLogEntry,
    JobPage,
    JobPriority,
    JobResultRecord,
    JobStatus,
    JobType,
    LogLevel,
    OutputFormat,
    Pagination,
    ProcessingStrategy,
    ReportType,
    ResultType,
    SentimentRecord,
    ValidationLevel,
    can_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "DateRange",
    "Job",
    "JobFilters",
    "JobLogEntry",
    "JobPage",
    "JobParameters",
    "JobPlan",
    "JobPriority",
    "JobResultRecord",
    "JobStatus",
    "JobType",
    "LogLevel",
    "OutputFormat",
    "Pagination",
    "ProcessingStrategy",
    "ReportType",
    "ResultType",
    "SentimentRecord",
    "TERMINAL_STATUSES",
    "ValidationLevel",
    "can_transition",
    "plan_job",
]
