"""
BatchOrchestrator -- DI container for the batch engine.

Contract:
    Wires configuration, clock, scorer, market-data source, and the
    HandlerRegistry, and creates gateways, job stores, and workers from
    them.  Single place where all batch dependencies are composed; there
    are no module-level service singletons.

Architecture: sentiment_batch (top-level).  The canonical entry point for
    scripts and embedding applications.

Invariants enforced:
    - Clock injection: every service receives the same Clock.
    - Scoring weights come from the validated configuration only.
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy.orm import Session

from sentiment_config import BatchEngineConfig, get_active_config
from sentiment_engines.scoring import SentimentScorer
from sentiment_kernel.db.engine import get_session_factory, init_engine_from_url
from sentiment_kernel.domain.clock import Clock, SystemClock
from sentiment_kernel.logging_config import get_logger

from sentiment_batch.services.dispatcher import Dispatcher
from sentiment_batch.services.gateway import SubmissionGateway
from sentiment_batch.services.job_store import JobStore
from sentiment_batch.services.worker import WorkerLoop
from sentiment_batch.sources import MarketDataSource, StaticMarketDataSource
from sentiment_batch.tasks.backfill import HistoricalBackfillHandler
from sentiment_batch.tasks.base import HandlerRegistry
from sentiment_batch.tasks.recalculation import IndexRecalculationHandler
from sentiment_batch.tasks.report import BulkReportHandler
from sentiment_batch.tasks.validation import DataValidationHandler

logger = get_logger("batch.orchestrator")


def default_handler_registry(
    config: BatchEngineConfig,
    market_data: MarketDataSource,
    scorer: SentimentScorer,
) -> HandlerRegistry:
    """Create a HandlerRegistry loaded with the four job handlers."""
    registry = HandlerRegistry()
    registry.register(HistoricalBackfillHandler(market_data, scorer))
    registry.register(IndexRecalculationHandler(scorer))
    registry.register(DataValidationHandler())
    registry.register(BulkReportHandler(config.reports.output_dir))
    return registry


class BatchOrchestrator:
    """DI container for the batch engine.

    Contract:
        - ``from_config()`` factory creates a fully wired orchestrator.
        - ``create_gateway()`` / ``create_job_store()`` /
          ``create_dispatcher()`` take the caller's session.
        - ``create_worker()`` returns a WorkerLoop over the session factory.

    Non-goals:
        - Does NOT start workers automatically -- caller decides.
        - Does NOT manage session lifecycle -- caller controls commits.
    """

    def __init__(
        self,
        config: BatchEngineConfig,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        market_data: MarketDataSource | None = None,
        handler_registry: HandlerRegistry | None = None,
    ) -> None:
        self._config = config
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._scorer = SentimentScorer(config.weights)
        if market_data is None:
            logger.warning("market_data_source_missing")
            market_data = StaticMarketDataSource()
        self._market_data = market_data
        self._registry = (
            handler_registry
            if handler_registry is not None
            else default_handler_registry(config, market_data, self._scorer)
        )

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: BatchEngineConfig | None = None,
        session_factory: Callable[[], Session] | None = None,
        clock: Clock | None = None,
        market_data: MarketDataSource | None = None,
    ) -> BatchOrchestrator:
        """Create a fully wired orchestrator.

        Args:
            config: Engine configuration; defaults to ``get_active_config()``.
            session_factory: Optional factory; if None the engine is
                initialized from ``config.database.url``.
            clock: Optional clock for deterministic testing.
            market_data: Source of daily components for backfills.
        """
        effective_config = config or get_active_config()
        if session_factory is None:
            init_engine_from_url(effective_config.database.url)
            session_factory = get_session_factory()
        return cls(
            config=effective_config,
            session_factory=session_factory,
            clock=clock,
            market_data=market_data,
        )

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    def create_job_store(self, session: Session) -> JobStore:
        return JobStore(session, clock=self._clock, estimation=self._config.estimation)

    def create_dispatcher(self, session: Session) -> Dispatcher:
        return Dispatcher(
            session, job_store=self.create_job_store(session), clock=self._clock,
        )

    def create_gateway(self, session: Session) -> SubmissionGateway:
        store = self.create_job_store(session)
        return SubmissionGateway(
            session,
            clock=self._clock,
            job_store=store,
            dispatcher=Dispatcher(session, job_store=store, clock=self._clock),
        )

    def create_worker(
        self,
        worker_id: str | None = None,
        poll_interval_seconds: float | None = None,
    ) -> WorkerLoop:
        """Create a WorkerLoop wired with the orchestrator's dependencies.

        Args:
            worker_id: Defaults to ``worker.worker_id`` from config, then a
                host/pid-derived id.
            poll_interval_seconds: Defaults to the configured interval.
        """
        return WorkerLoop(
            session_factory=self._session_factory,
            handler_registry=self._registry,
            clock=self._clock,
            worker_id=worker_id or self._config.worker.worker_id,
            poll_interval_seconds=(
                poll_interval_seconds
                if poll_interval_seconds is not None
                else self._config.worker.poll_interval_seconds
            ),
            estimation=self._config.estimation,
            milestone_step=self._config.progress.milestone_step_percent,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> BatchEngineConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def scorer(self) -> SentimentScorer:
        return self._scorer

    @property
    def handler_registry(self) -> HandlerRegistry:
        return self._registry

    @property
    def session_factory(self) -> Callable[[], Session]:
        return self._session_factory
