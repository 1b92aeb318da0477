"""
SentimentRecordRepository -- reads and upserts daily index rows.

Non-goals:
    - Does NOT call ``session.commit()`` -- caller controls boundaries.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from sentiment_engines.scoring import SentimentScore
from sentiment_kernel.domain.clock import Clock, SystemClock

from sentiment_batch.domain.parameters import DateRange
from sentiment_batch.models.sentiment import SentimentRecordModel


class SentimentRecordRepository:

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def get(self, day: date) -> SentimentRecordModel | None:
        return self._session.execute(
            select(SentimentRecordModel).where(
                SentimentRecordModel.record_date == day,
            )
        ).scalar_one_or_none()

    def in_range(self, date_range: DateRange | None = None) -> list[SentimentRecordModel]:
        stmt = select(SentimentRecordModel).order_by(SentimentRecordModel.record_date)
        if date_range is not None:
            stmt = stmt.where(
                SentimentRecordModel.record_date >= date_range.start,
                SentimentRecordModel.record_date <= date_range.end,
            )
        return list(self._session.execute(stmt).scalars())

    def dates_in_range(self, date_range: DateRange | None = None) -> list[date]:
        stmt = select(SentimentRecordModel.record_date).order_by(
            SentimentRecordModel.record_date,
        )
        if date_range is not None:
            stmt = stmt.where(
                SentimentRecordModel.record_date >= date_range.start,
                SentimentRecordModel.record_date <= date_range.end,
            )
        return list(self._session.execute(stmt).scalars())

    def upsert(
        self,
        day: date,
        score: SentimentScore,
        calculation_method: str,
        job_id: UUID | None = None,
    ) -> SentimentRecordModel:
        """Insert or overwrite the row for ``day`` with ``score``."""
        model = self.get(day)
        if model is None:
            model = SentimentRecordModel(id=uuid4(), record_date=day)
            self._session.add(model)
        model.value = score.value
        model.level = score.level.value
        model.confidence = score.confidence
        model.set_components(score.components)
        model.calculation_method = calculation_method
        model.calculated_by_job_id = job_id
        model.updated_at = self._clock.now()
        self._session.flush()
        return model
