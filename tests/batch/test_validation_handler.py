"""
Tests for sentiment_batch.tasks.validation -- BASIC / COMPREHENSIVE rules
and violation buckets.
"""

from datetime import date, timedelta

from sentiment_batch.domain.types import JobType, ValidationLevel
from sentiment_batch.services.records import SentimentRecordRepository
from sentiment_batch.tasks.validation import (
    MAX_EXAMPLES,
    RULE_LEVEL,
    RULE_RANGE,
    DataValidationHandler,
    find_violations,
)

from tests.helpers import make_context, start_job

JAN_1 = date(2024, 1, 1)


def _corrupt(db_session, day, **fields):
    record = SentimentRecordRepository(db_session).get(day)
    for name, value in fields.items():
        setattr(record, name, value)
    db_session.commit()
    return record


def _run(db_session, clock, parameters):
    store, job = start_job(db_session, clock, JobType.DATA_VALIDATION, parameters)
    outcome = DataValidationHandler().run(
        make_context(db_session, store, job, clock), parameters,
    )
    return store, job, outcome.result_data


class TestFindViolations:
    def test_clean_record(self, db_session, seed_records):
        record = seed_records(JAN_1, 1)[0]
        assert find_violations(record, ValidationLevel.COMPREHENSIVE) == []

    def test_basic_ignores_level_and_confidence(self, db_session, seed_records):
        seed_records(JAN_1, 1)
        record = _corrupt(db_session, JAN_1, level="FEAR", confidence=150)
        assert find_violations(record, ValidationLevel.BASIC) == []

    def test_comprehensive_checks_level_and_confidence(self, db_session, seed_records):
        seed_records(JAN_1, 1)
        record = _corrupt(db_session, JAN_1, level="FEAR", confidence=150)
        assert find_violations(record, ValidationLevel.COMPREHENSIVE) == [
            ("confidence", RULE_RANGE, 150),
            ("level", RULE_LEVEL, "FEAR"),
        ]

    def test_component_out_of_range(self, db_session, seed_records):
        seed_records(JAN_1, 1)
        record = _corrupt(db_session, JAN_1, put_call=-3.0)
        assert find_violations(record, ValidationLevel.BASIC) == [
            ("components.put_call", RULE_RANGE, -3.0),
        ]


class TestValidationHandler:
    def test_all_valid(self, db_session, clock, seed_records):
        seed_records(JAN_1, 4)
        _, _, data = _run(db_session, clock, {})
        assert data == {
            "validationLevel": "BASIC",
            "totalRecords": 4,
            "validRecords": 4,
            "invalidRecords": 0,
            "errors": [],
        }

    def test_buckets_by_field_and_rule(self, db_session, clock, seed_records):
        seed_records(JAN_1, 5)
        _corrupt(db_session, JAN_1, value=120)
        _corrupt(db_session, JAN_1 + timedelta(days=1), value=-1)
        _corrupt(db_session, JAN_1 + timedelta(days=2), momentum=101.0)

        _, _, data = _run(db_session, clock, {"validationLevel": "BASIC"})

        assert data["totalRecords"] == 5
        assert data["invalidRecords"] == 3
        assert data["validRecords"] == 2
        buckets = {(b["field"], b["rule"]): b for b in data["errors"]}
        assert buckets[("value", RULE_RANGE)]["count"] == 2
        assert buckets[("value", RULE_RANGE)]["examples"] == [
            {"date": "2024-01-01", "value": 120},
            {"date": "2024-01-02", "value": -1},
        ]
        assert buckets[("components.momentum", RULE_RANGE)]["count"] == 1

    def test_examples_capped(self, db_session, clock, seed_records):
        seed_records(JAN_1, MAX_EXAMPLES + 3)
        for i in range(MAX_EXAMPLES + 3):
            _corrupt(db_session, JAN_1 + timedelta(days=i), value=200)

        _, _, data = _run(db_session, clock, {})
        bucket = data["errors"][0]
        assert bucket["count"] == MAX_EXAMPLES + 3
        assert len(bucket["examples"]) == MAX_EXAMPLES

    def test_range_limits_records(self, db_session, clock, seed_records):
        seed_records(JAN_1, 10)
        store, job, data = _run(
            db_session,
            clock,
            {"dateRange": {"startDate": "2024-01-03", "endDate": "2024-01-05"}},
        )
        assert data["totalRecords"] == 3
        assert store.get(job.job_id).total_items == 3

    def test_no_records(self, db_session, clock):
        store, job, data = _run(db_session, clock, {})
        assert data["totalRecords"] == 0
        assert store.get(job.job_id).total_items == 0
