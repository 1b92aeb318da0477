"""Tests for the structured logging system (sentiment_kernel/logging_config.py)."""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from sentiment_kernel.exceptions import InvalidTransitionError
from sentiment_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "sentiment_batch.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("batch_job_claimed", extra={"seq": 42, "worker_id": "w1"})

        record = _parse_log(stream)
        assert record["seq"] == 42
        assert record["worker_id"] == "w1"

    def test_uuid_extra_serialized_as_string(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        job_id = uuid4()
        get_logger("test").info("x", extra={"job_id": job_id})

        assert _parse_log(stream)["job_id"] == str(job_id)

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InvalidTransitionError("job-1", "COMPLETED", "RUNNING")
        except InvalidTransitionError:
            get_logger("test").exception("transition_failed")

        record = _parse_log(stream)
        assert record["exc_type"] == "InvalidTransitionError"
        assert record["exc_code"] == "INVALID_TRANSITION"
        assert record["exc_current_status"] == "COMPLETED"
        assert "traceback" in record


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(job_id="job-1", worker_id="w1")
        get_logger("test").info("msg")

        record = _parse_log(stream)
        assert record["job_id"] == "job-1"
        assert record["worker_id"] == "w1"

    def test_bind_restores_previous_values(self):
        LogContext.set(job_id="outer")
        with LogContext.bind(job_id="inner", worker_id="w2"):
            assert LogContext.get_all() == {"job_id": "inner", "worker_id": "w2"}
        assert LogContext.get_all() == {"job_id": "outer"}

    def test_clear(self):
        LogContext.set(correlation_id="c", actor_id="a")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_explicit_extra_does_not_override_context(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(job_id="ctx"):
            get_logger("test").info("msg", extra={"job_id": "extra"})

        assert _parse_log(stream)["job_id"] == "ctx"


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)
        get_logger("test").info("once")

        assert len(_parse_all_logs(stream)) == 1

    def test_level_filters_debug(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.INFO)
        logger = get_logger("test")
        logger.debug("hidden")
        logger.info("shown")

        messages = [r["message"] for r in _parse_all_logs(stream)]
        assert messages == ["shown"]

    def test_reset_allows_reconfigure(self):
        first, _ = _make_handler()
        configure_logging(handler=first)
        reset_logging()
        second, stream = _make_handler()
        configure_logging(handler=second)
        get_logger("test").info("after_reset")

        assert _parse_log(stream)["message"] == "after_reset"
