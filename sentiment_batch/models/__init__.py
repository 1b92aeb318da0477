"""
sentiment_batch.models -- ORM models for batch and index persistence.

Architecture: sentiment_batch/models. Imports from sentiment_kernel.db.base only.
"""

from sentiment_batch.models.batch import (
    JobLogModel,
    JobModel,
    JobResultModel,
    SequenceCounterModel,
)
from sentiment_batch.models.sentiment import SentimentRecordModel

__all__ = [
    "JobLogModel",
    "JobModel",
    "JobResultModel",
    "SequenceCounterModel",
    "SentimentRecordModel",
]
