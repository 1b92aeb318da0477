"""Plain helpers shared by the test modules (fixtures live in conftest)."""

from datetime import date, timedelta
from typing import Any, Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from sentiment_engines.scoring import ComponentScores

from sentiment_batch.domain.types import Job, JobStatus, JobType
from sentiment_batch.models.batch import JobModel
from sentiment_batch.services.dispatcher import Dispatcher
from sentiment_batch.services.job_store import JobStore
from sentiment_batch.services.progress import ProgressTracker
from sentiment_batch.sources import StaticMarketDataSource
from sentiment_batch.tasks.base import JobContext


def components(value: float = 50.0, **overrides: float) -> ComponentScores:
    """Five components all equal to ``value`` unless overridden."""
    base = {
        "momentum": value,
        "sentiment": value,
        "put_call": value,
        "volatility": value,
        "safe_haven": value,
    }
    base.update(overrides)
    return ComponentScores(**base)


def days(start: date, count: int) -> list[date]:
    return [start + timedelta(days=i) for i in range(count)]


def static_source(
    start: date, count: int, value: float = 60.0,
) -> StaticMarketDataSource:
    return StaticMarketDataSource(
        {day: components(value) for day in days(start, count)}
    )


def backfill_request(
    start: str = "2024-01-01",
    end: str = "2024-01-05",
    **parameters: Any,
) -> dict[str, Any]:
    return {
        "type": "HISTORICAL_BACKFILL",
        "parameters": {"dateRange": {"startDate": start, "endDate": end}, **parameters},
    }


# =============================================================================
# Job harness
# =============================================================================


def start_job(
    session: Session,
    clock,
    job_type: JobType,
    parameters: dict[str, Any],
    worker_id: str = "test-worker",
) -> tuple[JobStore, Job]:
    """Create and claim a job; returns (store, running job)."""
    store = JobStore(session, clock=clock)
    job = store.create(job_type, parameters=parameters)
    job = Dispatcher(session, job_store=store, clock=clock).claim(job.job_id, worker_id)
    session.commit()
    return store, job


def make_context(
    session: Session,
    store: JobStore,
    job: Job,
    clock,
    commit: Callable[[], None] | None = None,
) -> JobContext:
    return JobContext(
        job, session, store, ProgressTracker(store), clock,
        commit=commit or session.commit,
    )


def commit_then(
    session: Session, after_units: int, action: Callable[[UUID], None],
) -> Callable[[], None]:
    """Commit hook that runs ``action(job_id)`` once, after ``after_units``.

    The action runs right after a unit boundary commit, so it lands between
    units the way an external pause or cancel would.
    """
    fired: list[UUID] = []

    def _commit() -> None:
        session.commit()
        if fired:
            return
        row = session.execute(
            select(JobModel.id, JobModel.processed_items, JobModel.failed_items)
            .where(JobModel.status == JobStatus.RUNNING.value)
        ).first()
        if row is not None and row.processed_items + row.failed_items >= after_units:
            fired.append(row.id)
            action(row.id)
            session.commit()

    return _commit
