"""
Data validation -- check stored records and group violations into buckets.

BASIC: ``value`` and every component must lie in [0, 100].
COMPREHENSIVE: additionally ``confidence`` in [0, 100] and ``level`` equal
to the threshold-table level for ``value``.

Buckets are keyed by (field, rule) and keep at most MAX_EXAMPLES examples.
"""

from __future__ import annotations

from typing import Any

from sentiment_engines.scoring import COMPONENT_NAMES, classify_level

from sentiment_batch.domain.parameters import JobParameters
from sentiment_batch.domain.types import JobType, ResultType, ValidationLevel
from sentiment_batch.models.sentiment import SentimentRecordModel
from sentiment_batch.services.records import SentimentRecordRepository
from sentiment_batch.tasks.base import HandlerOutcome, JobContext, UnitHandler, WorkUnit

MAX_EXAMPLES = 10

RULE_RANGE = "RANGE_0_100"
RULE_LEVEL = "LEVEL_MATCHES_VALUE"


def _in_range(value: float | int | None) -> bool:
    return value is not None and 0 <= value <= 100


def find_violations(
    record: SentimentRecordModel, level: ValidationLevel,
) -> list[tuple[str, str, Any]]:
    """(field, rule, offending value) for every rule the record breaks."""
    violations: list[tuple[str, str, Any]] = []
    if not _in_range(record.value):
        violations.append(("value", RULE_RANGE, record.value))
    for name in COMPONENT_NAMES:
        component = getattr(record, name)
        if not _in_range(component):
            violations.append((f"components.{name}", RULE_RANGE, component))

    if level == ValidationLevel.COMPREHENSIVE:
        if not _in_range(record.confidence):
            violations.append(("confidence", RULE_RANGE, record.confidence))
        if record.value is not None and record.level != classify_level(record.value).value:
            violations.append(("level", RULE_LEVEL, record.level))
    return violations


class DataValidationHandler(UnitHandler[dict]):
    job_type = JobType.DATA_VALIDATION
    description = "Validate stored sentiment records"
    result_type = ResultType.VALIDATION_REPORT

    def prepare_units(
        self, parsed: JobParameters, context: JobContext,
    ) -> tuple[WorkUnit, ...]:
        days = SentimentRecordRepository(context.session).dates_in_range(
            parsed.date_range,
        )
        return tuple(
            WorkUnit(index=i, key=day.isoformat(), day=day)
            for i, day in enumerate(days)
        )

    def new_state(self, parsed: JobParameters) -> dict[str, Any]:
        return {
            "totalRecords": 0,
            "validRecords": 0,
            "invalidRecords": 0,
            "buckets": {},
        }

    def process_unit(
        self,
        unit: WorkUnit,
        parsed: JobParameters,
        state: dict[str, Any],
        context: JobContext,
    ) -> None:
        record = SentimentRecordRepository(context.session).get(unit.day)
        if record is None:
            # Deleted since the units were enumerated; nothing to validate.
            return
        violations = find_violations(record, parsed.validation_level)

        state["totalRecords"] += 1
        if not violations:
            state["validRecords"] += 1
            return
        state["invalidRecords"] += 1
        for field, rule, value in violations:
            bucket = state["buckets"].setdefault(
                f"{field}|{rule}",
                {"field": field, "rule": rule, "count": 0, "examples": []},
            )
            bucket["count"] += 1
            if len(bucket["examples"]) < MAX_EXAMPLES:
                bucket["examples"].append({"date": unit.key, "value": value})

    def build_result(
        self, parsed: JobParameters, state: dict[str, Any], context: JobContext,
    ) -> HandlerOutcome:
        errors = [state["buckets"][key] for key in sorted(state["buckets"])]
        return HandlerOutcome(
            result_data={
                "validationLevel": parsed.validation_level.value,
                "totalRecords": state["totalRecords"],
                "validRecords": state["validRecords"],
                "invalidRecords": state["invalidRecords"],
                "errors": errors,
            }
        )
