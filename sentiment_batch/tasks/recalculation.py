"""
Index recalculation -- re-score stored records with new or configured weights.

Only dates that already have a record are units.  A record whose recomputed
value differs from the stored one is updated (value and level) and listed
in ``changes``; unchanged records are counted only.  Components and
confidence are left as stored.
"""

from __future__ import annotations

from typing import Any

from sentiment_engines.scoring import SentimentScorer, classify_level
from sentiment_kernel.exceptions import UnitError

from sentiment_batch.domain.parameters import JobParameters
from sentiment_batch.domain.types import JobType, ResultType
from sentiment_batch.services.records import SentimentRecordRepository
from sentiment_batch.tasks.base import HandlerOutcome, JobContext, UnitHandler, WorkUnit

CALCULATION_METHOD = "BATCH_RECALCULATION"


class IndexRecalculationHandler(UnitHandler[dict]):
    job_type = JobType.INDEX_RECALCULATION
    description = "Recompute stored index values with a weight set"
    result_type = ResultType.RECALCULATION_REPORT

    def __init__(self, scorer: SentimentScorer | None = None):
        self._scorer = scorer or SentimentScorer()

    def _scorer_for(self, parsed: JobParameters) -> SentimentScorer:
        if parsed.new_weights is not None:
            return self._scorer.with_weights(parsed.new_weights)
        return self._scorer

    def prepare_units(
        self, parsed: JobParameters, context: JobContext,
    ) -> tuple[WorkUnit, ...]:
        date_range = self.require_date_range(parsed)
        days = SentimentRecordRepository(context.session).dates_in_range(date_range)
        return tuple(
            WorkUnit(index=i, key=day.isoformat(), day=day)
            for i, day in enumerate(days)
        )

    def new_state(self, parsed: JobParameters) -> dict[str, Any]:
        return {"totalRecalculated": 0, "changes": []}

    def process_unit(
        self,
        unit: WorkUnit,
        parsed: JobParameters,
        state: dict[str, Any],
        context: JobContext,
    ) -> None:
        records = SentimentRecordRepository(context.session, context.clock)
        record = records.get(unit.day)
        if record is None:
            raise UnitError(unit.key, f"record for {unit.key} no longer exists")

        old_value = record.value
        new_value = self._scorer_for(parsed).compute_value(record.components)
        if new_value != old_value:
            record.value = new_value
            record.level = classify_level(new_value).value
            record.calculation_method = CALCULATION_METHOD
            record.calculated_by_job_id = context.job_id
            record.updated_at = context.clock.now()
            context.session.flush()
            state["changes"].append(
                {
                    "date": unit.key,
                    "oldValue": old_value,
                    "newValue": new_value,
                    "difference": new_value - old_value,
                }
            )
        state["totalRecalculated"] += 1

    def build_result(
        self, parsed: JobParameters, state: dict[str, Any], context: JobContext,
    ) -> HandlerOutcome:
        changes = state["changes"]
        magnitudes = [abs(change["difference"]) for change in changes]
        return HandlerOutcome(
            result_data={
                "totalRecalculated": state["totalRecalculated"],
                "changes": list(changes),
                "summary": {
                    "avgChange": (
                        round(sum(magnitudes) / len(magnitudes), 2) if magnitudes else 0
                    ),
                    "maxChange": max(magnitudes, default=0),
                    "changedDates": len(changes),
                },
                "weights": self._scorer_for(parsed).weights.as_dict(),
            }
        )
