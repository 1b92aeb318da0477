"""
sentiment_batch.domain.parameters -- Parsing and planning of job parameters.

Contract:
    ``JobParameters.from_payload()`` turns the submitted ``parameters``
    mapping (camelCase wire keys) into a frozen, typed value.  ``plan_job()``
    derives ``total_items`` and ``estimated_duration`` deterministically
    from a job type and its parameters.

Architecture: sentiment_batch/domain.  ZERO I/O, no clock access.

Failure modes:
    - ValidationError on any malformed field, carrying the wire field name.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterator, Mapping

from sentiment_config.schema import EstimationSettings
from sentiment_engines.scoring import (
    COMPONENT_NAMES,
    WIRE_COMPONENT_NAMES,
    ScoringWeights,
)
from sentiment_kernel.exceptions import ConfigurationError, ValidationError

from sentiment_batch.domain.types import (
    JobPriority,
    JobType,
    OutputFormat,
    ProcessingStrategy,
    ReportType,
    ValidationLevel,
)

MIN_CHUNK_SIZE = 1
MAX_CHUNK_SIZE = 1000

# Job types whose handler cannot start without a date range.
RANGE_REQUIRED_TYPES = frozenset(
    {JobType.HISTORICAL_BACKFILL, JobType.INDEX_RECALCULATION}
)

# Upstream enum spelling of the component names.
_LEGACY_COMPONENT_NAMES = {
    "PRICE_MOMENTUM": "momentum",
    "INVESTOR_SENTIMENT": "sentiment",
    "PUT_CALL_RATIO": "put_call",
    "VOLATILITY": "volatility",
    "SAFE_HAVEN": "safe_haven",
}

_KNOWN_KEYS = frozenset(
    {
        "dateRange",
        "components",
        "overwriteExisting",
        "validationLevel",
        "processingStrategy",
        "chunkSize",
        "priority",
        "newWeights",
        "reportType",
        "outputFormat",
    }
)


# =============================================================================
# Date ranges
# =============================================================================


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValidationError(
                f"startDate {self.start} is after endDate {self.end}",
                field="dateRange",
            )

    @property
    def day_count(self) -> int:
        return (self.end - self.start).days + 1

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def to_payload(self) -> dict[str, str]:
        return {"startDate": self.start.isoformat(), "endDate": self.end.isoformat()}


def parse_iso_date(value: Any, field: str) -> date:
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"'{field}' must be an ISO date string", field=field)
    try:
        # Accept full timestamps as well; only the calendar date is kept.
        return date.fromisoformat(value[:10])
    except ValueError:
        raise ValidationError(
            f"'{field}' is not a valid ISO date: {value!r}", field=field,
        ) from None


def parse_date_range(value: Any) -> DateRange:
    if not isinstance(value, Mapping):
        raise ValidationError(
            "'dateRange' must be an object with startDate and endDate",
            field="dateRange",
        )
    for key in ("startDate", "endDate"):
        if value.get(key) in (None, ""):
            raise ValidationError(
                f"'dateRange.{key}' is required", field=f"dateRange.{key}",
            )
    return DateRange(
        start=parse_iso_date(value["startDate"], "dateRange.startDate"),
        end=parse_iso_date(value["endDate"], "dateRange.endDate"),
    )


# =============================================================================
# Parameters
# =============================================================================


def _parse_enum(enum_cls, value: Any, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise ValidationError(
            f"'{field}' must be one of {allowed}, got {value!r}", field=field,
        ) from None


def _parse_components(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise ValidationError("'components' must be a list", field="components")
    names: list[str] = []
    for raw in value:
        name = WIRE_COMPONENT_NAMES.get(raw) or _LEGACY_COMPONENT_NAMES.get(raw) or raw
        if name not in COMPONENT_NAMES:
            raise ValidationError(
                f"Unknown component {raw!r}", field="components",
            )
        if name not in names:
            names.append(name)
    return tuple(names)


def _parse_weights(value: Any) -> ScoringWeights:
    if not isinstance(value, Mapping):
        raise ValidationError("'newWeights' must be an object", field="newWeights")
    for key, raw in value.items():
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValidationError(
                f"'newWeights.{key}' must be a number", field=f"newWeights.{key}",
            )
        if not 0 <= raw <= 1:
            raise ValidationError(
                f"'newWeights.{key}' must be between 0 and 1",
                field=f"newWeights.{key}",
            )
    try:
        return ScoringWeights.from_mapping(value)
    except ConfigurationError as exc:
        raise ValidationError(str(exc), field="newWeights") from exc


def _parse_chunk_size(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("'chunkSize' must be an integer", field="chunkSize")
    if not MIN_CHUNK_SIZE <= value <= MAX_CHUNK_SIZE:
        raise ValidationError(
            f"'chunkSize' must be between {MIN_CHUNK_SIZE} and {MAX_CHUNK_SIZE}",
            field="chunkSize",
        )
    return value


@dataclass(frozen=True)
class JobParameters:
    """Typed view of a job's ``parameters`` payload."""

    date_range: DateRange | None = None
    components: tuple[str, ...] = ()
    overwrite_existing: bool = False
    validation_level: ValidationLevel = ValidationLevel.BASIC
    processing_strategy: ProcessingStrategy = ProcessingStrategy.CHUNKED
    chunk_size: int | None = None
    priority: JobPriority = JobPriority.NORMAL
    new_weights: ScoringWeights | None = None
    report_type: ReportType = ReportType.CUSTOM
    output_format: OutputFormat = OutputFormat.JSON

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> JobParameters:
        """Parse a wire ``parameters`` object.

        Unknown keys are ignored.

        Raises:
            ValidationError: If any known field is malformed.
        """
        if payload is None:
            return cls()
        if not isinstance(payload, Mapping):
            raise ValidationError("'parameters' must be an object", field="parameters")

        values: dict[str, Any] = {}
        if payload.get("dateRange") is not None:
            values["date_range"] = parse_date_range(payload["dateRange"])
        if payload.get("components") is not None:
            values["components"] = _parse_components(payload["components"])
        if payload.get("overwriteExisting") is not None:
            if not isinstance(payload["overwriteExisting"], bool):
                raise ValidationError(
                    "'overwriteExisting' must be a boolean",
                    field="overwriteExisting",
                )
            values["overwrite_existing"] = payload["overwriteExisting"]
        if payload.get("validationLevel") is not None:
            values["validation_level"] = _parse_enum(
                ValidationLevel, payload["validationLevel"], "validationLevel",
            )
        if payload.get("processingStrategy") is not None:
            values["processing_strategy"] = _parse_enum(
                ProcessingStrategy, payload["processingStrategy"], "processingStrategy",
            )
        if payload.get("chunkSize") is not None:
            values["chunk_size"] = _parse_chunk_size(payload["chunkSize"])
        if payload.get("priority") is not None:
            values["priority"] = _parse_enum(JobPriority, payload["priority"], "priority")
        if payload.get("newWeights") is not None:
            values["new_weights"] = _parse_weights(payload["newWeights"])
        if payload.get("reportType") is not None:
            values["report_type"] = _parse_enum(
                ReportType, payload["reportType"], "reportType",
            )
        if payload.get("outputFormat") is not None:
            values["output_format"] = _parse_enum(
                OutputFormat, payload["outputFormat"], "outputFormat",
            )
        return cls(**values)

    @property
    def refresh_components(self) -> tuple[str, ...]:
        """Components a backfill overwrite refreshes; empty means all."""
        return self.components or COMPONENT_NAMES


def unknown_parameter_keys(payload: Mapping[str, Any]) -> list[str]:
    return sorted(set(payload) - _KNOWN_KEYS)


# =============================================================================
# Planning
# =============================================================================


@dataclass(frozen=True)
class JobPlan:
    total_items: int
    estimated_duration: int  # seconds


def plan_job(
    job_type: JobType,
    parameters: JobParameters,
    estimation: EstimationSettings | None = None,
) -> JobPlan:
    """Derive the unit count and duration estimate for a new job."""
    estimation = estimation or EstimationSettings()
    date_range = parameters.date_range

    if job_type == JobType.BULK_REPORT_GENERATION:
        total_items = 1
    elif date_range is not None:
        total_items = date_range.day_count
    elif job_type == JobType.DATA_VALIDATION:
        total_items = 1
    else:
        total_items = 0

    if job_type == JobType.HISTORICAL_BACKFILL:
        if date_range is not None:
            estimated = (
                (date_range.end - date_range.start).days
                * estimation.backfill_seconds_per_day
            )
        else:
            estimated = estimation.backfill_default_seconds
    elif job_type == JobType.INDEX_RECALCULATION:
        estimated = estimation.recalculation_seconds
    else:
        estimated = estimation.default_seconds

    return JobPlan(total_items=total_items, estimated_duration=estimated)
