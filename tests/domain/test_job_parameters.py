"""
Tests for sentiment_batch.domain.parameters -- parameter parsing and plan_job.
"""

from datetime import date

import pytest

from sentiment_config.schema import EstimationSettings
from sentiment_kernel.exceptions import ValidationError

from sentiment_batch.domain.parameters import (
    DateRange,
    JobParameters,
    parse_date_range,
    plan_job,
    unknown_parameter_keys,
)
from sentiment_batch.domain.types import (
    JobPriority,
    JobType,
    OutputFormat,
    ProcessingStrategy,
    ReportType,
    ValidationLevel,
)


# =============================================================================
# DateRange
# =============================================================================


class TestDateRange:
    def test_day_count_inclusive(self):
        assert DateRange(date(2024, 1, 1), date(2024, 1, 5)).day_count == 5

    def test_single_day(self):
        rng = DateRange(date(2024, 1, 1), date(2024, 1, 1))
        assert list(rng.days()) == [date(2024, 1, 1)]

    def test_start_after_end_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            DateRange(date(2024, 1, 5), date(2024, 1, 1))
        assert exc_info.value.field == "dateRange"

    def test_contains(self):
        rng = DateRange(date(2024, 1, 1), date(2024, 1, 31))
        assert rng.contains(date(2024, 1, 15))
        assert not rng.contains(date(2024, 2, 1))

    def test_parse_accepts_timestamps(self):
        rng = parse_date_range(
            {"startDate": "2024-01-01T00:00:00Z", "endDate": "2024-01-02"}
        )
        assert rng == DateRange(date(2024, 1, 1), date(2024, 1, 2))

    def test_parse_missing_end(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_date_range({"startDate": "2024-01-01"})
        assert exc_info.value.field == "dateRange.endDate"

    def test_parse_bad_date(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_date_range({"startDate": "2024-13-01", "endDate": "2024-12-01"})
        assert exc_info.value.field == "dateRange.startDate"

    def test_to_payload(self):
        rng = DateRange(date(2024, 1, 1), date(2024, 1, 2))
        assert rng.to_payload() == {"startDate": "2024-01-01", "endDate": "2024-01-02"}


# =============================================================================
# JobParameters.from_payload
# =============================================================================


class TestJobParameters:
    def test_defaults(self):
        parsed = JobParameters.from_payload({})
        assert parsed.date_range is None
        assert parsed.overwrite_existing is False
        assert parsed.validation_level == ValidationLevel.BASIC
        assert parsed.processing_strategy == ProcessingStrategy.CHUNKED
        assert parsed.priority == JobPriority.NORMAL
        assert parsed.report_type == ReportType.CUSTOM
        assert parsed.output_format == OutputFormat.JSON

    def test_full_payload(self):
        parsed = JobParameters.from_payload(
            {
                "dateRange": {"startDate": "2024-01-01", "endDate": "2024-01-31"},
                "components": ["momentum", "putCall", "SAFE_HAVEN"],
                "overwriteExisting": True,
                "validationLevel": "COMPREHENSIVE",
                "processingStrategy": "PARALLEL",
                "chunkSize": 50,
                "priority": "HIGH",
                "reportType": "MONTHLY_SUMMARY",
                "outputFormat": "CSV",
            }
        )
        assert parsed.date_range.day_count == 31
        assert parsed.components == ("momentum", "put_call", "safe_haven")
        assert parsed.overwrite_existing is True
        assert parsed.validation_level == ValidationLevel.COMPREHENSIVE
        assert parsed.processing_strategy == ProcessingStrategy.PARALLEL
        assert parsed.chunk_size == 50
        assert parsed.priority == JobPriority.HIGH
        assert parsed.output_format == OutputFormat.CSV

    def test_legacy_component_names(self):
        parsed = JobParameters.from_payload(
            {"components": ["PRICE_MOMENTUM", "INVESTOR_SENTIMENT", "PUT_CALL_RATIO"]}
        )
        assert parsed.components == ("momentum", "sentiment", "put_call")

    def test_refresh_components_defaults_to_all(self):
        assert len(JobParameters().refresh_components) == 5

    @pytest.mark.parametrize(
        "payload,field",
        [
            ({"priority": "URGENT"}, "priority"),
            ({"chunkSize": 0}, "chunkSize"),
            ({"chunkSize": 1001}, "chunkSize"),
            ({"chunkSize": "10"}, "chunkSize"),
            ({"overwriteExisting": "yes"}, "overwriteExisting"),
            ({"components": ["breadth"]}, "components"),
            ({"components": "momentum"}, "components"),
            ({"outputFormat": "XML"}, "outputFormat"),
            ({"newWeights": {"momentum": 1.5}}, "newWeights.momentum"),
            ({"newWeights": {"momentum": "x"}}, "newWeights.momentum"),
        ],
    )
    def test_invalid_fields(self, payload, field):
        with pytest.raises(ValidationError) as exc_info:
            JobParameters.from_payload(payload)
        assert exc_info.value.field == field

    def test_new_weights_must_sum_to_one(self):
        with pytest.raises(ValidationError) as exc_info:
            JobParameters.from_payload(
                {
                    "newWeights": {
                        "momentum": 0.25,
                        "sentiment": 0.25,
                        "putCall": 0.20,
                        "volatility": 0.15,
                        "safeHaven": 0.12,
                    }
                }
            )
        assert exc_info.value.field == "newWeights"

    def test_new_weights_parsed(self):
        parsed = JobParameters.from_payload(
            {
                "newWeights": {
                    "momentum": 0.3,
                    "sentiment": 0.2,
                    "putCall": 0.2,
                    "volatility": 0.15,
                    "safeHaven": 0.15,
                }
            }
        )
        assert parsed.new_weights.momentum == 0.3

    def test_unknown_keys_reported(self):
        assert unknown_parameter_keys({"dateRange": {}, "foo": 1, "bar": 2}) == ["bar", "foo"]


# =============================================================================
# plan_job
# =============================================================================


def _params(**payload) -> JobParameters:
    return JobParameters.from_payload(payload)


class TestPlanJob:
    def test_backfill_january(self):
        plan = plan_job(
            JobType.HISTORICAL_BACKFILL,
            _params(dateRange={"startDate": "2024-01-01", "endDate": "2024-01-31"}),
        )
        assert plan.total_items == 31
        # 30 day-diff * 30 seconds
        assert plan.estimated_duration == 900

    def test_backfill_without_range(self):
        plan = plan_job(JobType.HISTORICAL_BACKFILL, _params())
        assert plan.total_items == 0
        assert plan.estimated_duration == 3600

    def test_recalculation(self):
        plan = plan_job(
            JobType.INDEX_RECALCULATION,
            _params(dateRange={"startDate": "2024-01-01", "endDate": "2024-01-10"}),
        )
        assert plan.total_items == 10
        assert plan.estimated_duration == 1800

    def test_validation_without_range(self):
        plan = plan_job(JobType.DATA_VALIDATION, _params())
        assert plan.total_items == 1
        assert plan.estimated_duration == 600

    def test_report_is_single_unit(self):
        plan = plan_job(
            JobType.BULK_REPORT_GENERATION,
            _params(dateRange={"startDate": "2024-01-01", "endDate": "2024-12-31"}),
        )
        assert plan.total_items == 1

    def test_custom_estimation(self):
        plan = plan_job(
            JobType.HISTORICAL_BACKFILL,
            _params(dateRange={"startDate": "2024-01-01", "endDate": "2024-01-11"}),
            EstimationSettings(backfill_seconds_per_day=2),
        )
        assert plan.estimated_duration == 20

    def test_deterministic(self):
        params = _params(dateRange={"startDate": "2024-03-01", "endDate": "2024-03-09"})
        assert plan_job(JobType.HISTORICAL_BACKFILL, params) == plan_job(
            JobType.HISTORICAL_BACKFILL, params,
        )
