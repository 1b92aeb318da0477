"""
Historical backfill -- score every calendar day in a range.

Per day:
    - existing record and overwriteExisting=false  -> duplicateSkipped
    - otherwise components come from the MarketDataSource, are scored, and
      the record is upserted                        -> processedDays
    - DataUnavailableError or any other failure     -> failedDays, dataGaps

Re-running the same range without overwrite touches nothing.  With
overwrite and a ``components`` list, only the listed components are
refreshed; the rest keep their stored values.
"""

from __future__ import annotations

import time
from typing import Any

from sentiment_engines.scoring import SentimentScorer

from sentiment_batch.domain.parameters import JobParameters
from sentiment_batch.domain.types import JobType, ResultType
from sentiment_batch.services.records import SentimentRecordRepository
from sentiment_batch.sources import MarketDataSource
from sentiment_batch.tasks.base import (
    HandlerOutcome,
    JobContext,
    UnitHandler,
    WorkUnit,
    date_units,
)

CALCULATION_METHOD = "BATCH_BACKFILL"


class HistoricalBackfillHandler(UnitHandler[dict]):
    job_type = JobType.HISTORICAL_BACKFILL
    description = "Compute and store the sentiment index for each day in a range"
    result_type = ResultType.BACKFILL_SUMMARY

    def __init__(self, source: MarketDataSource, scorer: SentimentScorer | None = None):
        self._source = source
        self._scorer = scorer or SentimentScorer()

    def prepare_units(
        self, parsed: JobParameters, context: JobContext,
    ) -> tuple[WorkUnit, ...]:
        return date_units(self.require_date_range(parsed))

    def new_state(self, parsed: JobParameters) -> dict[str, Any]:
        return {
            "totalDays": parsed.date_range.day_count if parsed.date_range else 0,
            "processedDays": 0,
            "failedDays": 0,
            "duplicateSkipped": 0,
            "dataGaps": [],
            "earliestDate": None,
            "latestDate": None,
            "computeMs": 0.0,
        }

    def process_unit(
        self,
        unit: WorkUnit,
        parsed: JobParameters,
        state: dict[str, Any],
        context: JobContext,
    ) -> None:
        records = SentimentRecordRepository(context.session, context.clock)
        existing = records.get(unit.day)
        if existing is not None and not parsed.overwrite_existing:
            state["duplicateSkipped"] += 1
            return

        started = time.monotonic()
        snapshot = self._source.components_for(unit.day)
        components = snapshot.components.clamped()
        missing = snapshot.missing
        if existing is not None:
            names = parsed.refresh_components
            refreshed = {name: getattr(components, name) for name in names}
            components = existing.components.replace(**refreshed)
            missing = snapshot.missing & frozenset(names)

        score = self._scorer.score(components, missing)
        records.upsert(unit.day, score, CALCULATION_METHOD, job_id=context.job_id)
        elapsed_ms = (time.monotonic() - started) * 1000

        state["processedDays"] += 1
        state["computeMs"] += elapsed_ms
        if state["earliestDate"] is None or unit.key < state["earliestDate"]:
            state["earliestDate"] = unit.key
        if state["latestDate"] is None or unit.key > state["latestDate"]:
            state["latestDate"] = unit.key

    def on_unit_failed(
        self, unit: WorkUnit, error: Exception, state: dict[str, Any],
    ) -> None:
        state["failedDays"] += 1
        state["dataGaps"].append(unit.key)

    def build_result(
        self, parsed: JobParameters, state: dict[str, Any], context: JobContext,
    ) -> HandlerOutcome:
        computed = state["processedDays"]
        avg_ms = round(state["computeMs"] / computed, 3) if computed else 0.0
        return HandlerOutcome(
            result_data={
                "totalDays": state["totalDays"],
                "processedDays": state["processedDays"],
                "failedDays": state["failedDays"],
                "duplicateSkipped": state["duplicateSkipped"],
                "dataGaps": list(state["dataGaps"]),
                "summary": {
                    "earliestDate": state["earliestDate"],
                    "latestDate": state["latestDate"],
                    "avgProcessingTime": avg_ms,
                },
            }
        )
