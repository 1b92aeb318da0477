"""
sentiment_batch.services -- Job store, dispatcher, progress, worker, gateway.
"""

from sentiment_batch.services.dispatcher import Dispatcher
from sentiment_batch.services.gateway import (
    ControlResponse,
    SubmissionGateway,
    SubmissionReceipt,
)
from sentiment_batch.services.job_store import JobStore
from sentiment_batch.services.progress import ProgressTracker
from sentiment_batch.services.records import SentimentRecordRepository
from sentiment_batch.services.sequence import SequenceAllocator
from sentiment_batch.services.worker import WorkerLoop

__all__ = [
    "ControlResponse",
    "Dispatcher",
    "JobStore",
    "ProgressTracker",
    "SentimentRecordRepository",
    "SequenceAllocator",
    "SubmissionGateway",
    "SubmissionReceipt",
    "WorkerLoop",
]
