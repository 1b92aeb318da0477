"""
Tests for sentiment_batch.orchestrator -- wiring from configuration.
"""

from datetime import date

import pytest

from sentiment_config.schema import (
    BatchEngineConfig,
    DatabaseSettings,
    ReportSettings,
    WorkerSettings,
)
from sentiment_engines.scoring import ScoringWeights
from sentiment_kernel.db.engine import create_tables, reset_engine

from sentiment_batch.domain.types import JobStatus, JobType
from sentiment_batch.orchestrator import BatchOrchestrator
from sentiment_batch.services.records import SentimentRecordRepository

from tests.helpers import backfill_request, static_source

JAN_1 = date(2024, 1, 1)


@pytest.fixture
def in_memory_engine():
    yield
    reset_engine()


class TestWiring:
    def test_registry_has_all_job_types(self, session_factory, clock):
        orchestrator = BatchOrchestrator.from_config(
            BatchEngineConfig(), session_factory=session_factory, clock=clock,
        )
        for job_type in JobType:
            assert job_type in orchestrator.handler_registry
        assert orchestrator.clock is clock
        assert orchestrator.session_factory is session_factory

    def test_scorer_uses_configured_weights(self, session_factory):
        weights = ScoringWeights(0.2, 0.2, 0.2, 0.2, 0.2)
        orchestrator = BatchOrchestrator.from_config(
            BatchEngineConfig(weights=weights), session_factory=session_factory,
        )
        assert orchestrator.scorer.weights == weights

    def test_worker_defaults_from_config(self, session_factory):
        config = BatchEngineConfig(
            worker=WorkerSettings(poll_interval_seconds=0.5, worker_id="cfg-worker"),
        )
        orchestrator = BatchOrchestrator.from_config(config, session_factory=session_factory)

        assert orchestrator.create_worker().worker_id == "cfg-worker"
        assert orchestrator.create_worker(worker_id="override").worker_id == "override"

    def test_generated_worker_id(self, session_factory):
        orchestrator = BatchOrchestrator.from_config(
            BatchEngineConfig(), session_factory=session_factory,
        )
        assert orchestrator.create_worker().worker_id


class TestEndToEnd:
    def test_backfill_through_orchestrator(self, in_memory_engine, clock, tmp_path):
        config = BatchEngineConfig(
            database=DatabaseSettings(url="sqlite://"),
            reports=ReportSettings(output_dir=tmp_path),
        )
        orchestrator = BatchOrchestrator.from_config(
            config, clock=clock, market_data=static_source(JAN_1, 3),
        )
        create_tables()

        with orchestrator.session_factory() as session:
            receipt = orchestrator.create_gateway(session).submit(
                backfill_request("2024-01-01", "2024-01-03"),
            )
            session.commit()

        finished = orchestrator.create_worker(worker_id="w-orch").tick()
        assert finished.job_id == receipt.job_id
        assert finished.status == JobStatus.COMPLETED
        assert finished.processed_items == 3

        with orchestrator.session_factory() as session:
            records = SentimentRecordRepository(session).in_range()
            assert [r.value for r in records] == [60, 60, 60]
            status = orchestrator.create_gateway(session).status(receipt.job_id)
            assert status["result"]["resultType"] == "BACKFILL_SUMMARY"

    def test_report_lands_in_configured_dir(self, session_factory, clock, tmp_path):
        config = BatchEngineConfig(reports=ReportSettings(output_dir=tmp_path))
        orchestrator = BatchOrchestrator.from_config(
            config, session_factory=session_factory, clock=clock,
        )
        with session_factory() as session:
            receipt = orchestrator.create_gateway(session).submit(
                {"type": "BULK_REPORT_GENERATION", "parameters": {}},
            )
            session.commit()

        orchestrator.create_worker().tick()
        assert (tmp_path / f"batch-report-{receipt.job_id}.json").exists()
