"""
sentiment_batch.tasks -- Handler protocol, registry, and the four job handlers.
"""

from sentiment_batch.tasks.backfill import HistoricalBackfillHandler
from sentiment_batch.tasks.base import (
    HandlerOutcome,
    HandlerRegistry,
    JobContext,
    JobHandler,
    UnitHandler,
    WorkUnit,
)
from sentiment_batch.tasks.recalculation import IndexRecalculationHandler
from sentiment_batch.tasks.report import BulkReportHandler
from sentiment_batch.tasks.validation import DataValidationHandler

__all__ = [
    "BulkReportHandler",
    "DataValidationHandler",
    "HandlerOutcome",
    "HandlerRegistry",
    "HistoricalBackfillHandler",
    "IndexRecalculationHandler",
    "JobContext",
    "JobHandler",
    "UnitHandler",
    "WorkUnit",
]
