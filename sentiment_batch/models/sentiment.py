"""
ORM model for the daily sentiment index.

SentimentRecordModel holds one row per calendar date.  Rows are written by
backfill and recalculation handlers and outlive the jobs that wrote them,
so ``calculated_by_job_id`` is informational and carries no foreign key.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from sentiment_engines.scoring import COMPONENT_NAMES, ComponentScores
from sentiment_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from sentiment_batch.domain.types import SentimentRecord


class SentimentRecordModel(Base):
    """One date of the sentiment index with its five component scores."""

    __tablename__ = "sentiment_records"

    record_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False)
    level: Mapped[str] = mapped_column(String(20), nullable=False)
    confidence: Mapped[int] = mapped_column(Integer, nullable=False)
    momentum: Mapped[float] = mapped_column(Float, nullable=False)
    sentiment: Mapped[float] = mapped_column(Float, nullable=False)
    put_call: Mapped[float] = mapped_column(Float, nullable=False)
    volatility: Mapped[float] = mapped_column(Float, nullable=False)
    safe_haven: Mapped[float] = mapped_column(Float, nullable=False)
    calculation_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    calculated_by_job_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    @property
    def components(self) -> ComponentScores:
        return ComponentScores(
            **{name: getattr(self, name) for name in COMPONENT_NAMES}
        )

    def set_components(self, components: ComponentScores) -> None:
        for name, value in components.as_dict().items():
            setattr(self, name, value)

    def to_dto(self) -> SentimentRecord:
        from sentiment_batch.domain.types import SentimentRecord

        return SentimentRecord(
            record_date=self.record_date,
            value=self.value,
            level=self.level,
            confidence=self.confidence,
            components=self.components.as_dict(),
            calculation_method=self.calculation_method,
            calculated_by_job_id=self.calculated_by_job_id,
            updated_at=self.updated_at,
        )
