"""
Pytest fixtures for the sentiment batch test suite.

Provides:
- In-memory SQLite engine shared across threads (StaticPool) with all
  tables created
- Session factory / session fixtures matching the production factory
  (expire_on_commit=False)
- A naive DeterministicClock (SQLite strips tzinfo)
- Stores, gateway, and a record seeder
"""

from datetime import date, datetime
from typing import Any, Callable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sentiment_engines.scoring import ComponentScores, SentimentScorer
from sentiment_kernel.db.base import Base
from sentiment_kernel.domain.clock import DeterministicClock

import sentiment_batch.models  # noqa: F401  (register tables)
from sentiment_batch.services.gateway import SubmissionGateway
from sentiment_batch.services.job_store import JobStore
from sentiment_batch.services.records import SentimentRecordRepository

from tests.helpers import components, days


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    # Use naive datetimes for SQLite compatibility (SQLite strips tzinfo)
    return DeterministicClock(
        fixed_time=datetime(2026, 2, 1, 12, 0, 0),
    )


@pytest.fixture
def job_store(db_session, clock) -> JobStore:
    return JobStore(db_session, clock=clock)


@pytest.fixture
def gateway(db_session, clock) -> SubmissionGateway:
    return SubmissionGateway(db_session, clock=clock)


@pytest.fixture
def seed_records(db_session, clock) -> Callable[..., list[Any]]:
    """Insert scored sentiment records for consecutive days and commit."""

    def _seed(
        start: date,
        count: int,
        component_scores: ComponentScores | None = None,
        scorer: SentimentScorer | None = None,
    ) -> list[Any]:
        repo = SentimentRecordRepository(db_session, clock)
        scorer = scorer or SentimentScorer()
        models = [
            repo.upsert(
                day, scorer.score(component_scores or components(60.0)), "SEED",
            )
            for day in days(start, count)
        ]
        db_session.commit()
        return models

    return _seed
