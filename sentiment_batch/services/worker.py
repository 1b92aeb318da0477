"""
WorkerLoop -- polls for jobs, claims one per tick, runs its handler.

Contract:
    Each ``tick()`` claims at most one job through the Dispatcher, resolves
    its handler from the HandlerRegistry, runs it, and finalizes the job:
    COMPLETED with a stored JobResult on success, FAILED with one ERROR
    JobLog when the handler cannot start.  A job paused or cancelled while
    running is left as the control operation put it.

Architecture: sentiment_batch/services.  Uses the Dispatcher, JobStore,
    ProgressTracker, and sentiment_batch.tasks.

Invariants enforced:
    - One job per tick; units within a job run strictly sequentially.
    - Unit boundaries are commit points; already committed units are never
      rolled back by a later failure or cancellation.
    - Graceful shutdown: ``stop()`` lets the current unit finish.
    - All timestamps from the injected Clock.
"""

from __future__ import annotations

import os
import socket
import threading
from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from sentiment_config.schema import EstimationSettings
from sentiment_kernel.domain.clock import Clock, SystemClock
from sentiment_kernel.exceptions import InvalidTransitionError
from sentiment_kernel.logging_config import LogContext, get_logger

from sentiment_batch.domain.types import Job, JobStatus, LogLevel
from sentiment_batch.services.dispatcher import Dispatcher
from sentiment_batch.services.job_store import JobStore
from sentiment_batch.services.progress import DEFAULT_MILESTONE_STEP, ProgressTracker
from sentiment_batch.tasks.base import HandlerOutcome, HandlerRegistry, JobContext, JobHandler

logger = get_logger("batch.worker")


def default_worker_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}-{uuid4().hex[:6]}"


class WorkerLoop:
    """Cooperative polling worker.

    Contract:
        - ``tick()`` processes at most one job (public for testing).
        - ``start()`` / ``stop()`` for background thread operation.
        - ``run_forever()`` blocks the calling thread until ``stop()``.

    Non-goals:
        - No intra-job parallelism.
        - NOT a distributed scheduler; several workers may share one store
          and rely on the atomic claim.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        handler_registry: HandlerRegistry,
        clock: Clock | None = None,
        worker_id: str | None = None,
        poll_interval_seconds: float = 5.0,
        estimation: EstimationSettings | None = None,
        milestone_step: int = DEFAULT_MILESTONE_STEP,
    ):
        self._session_factory = session_factory
        self._registry = handler_registry
        self._clock = clock or SystemClock()
        self._worker_id = worker_id or default_worker_id()
        self._poll_interval = poll_interval_seconds
        self._estimation = estimation
        self._milestone_step = milestone_step
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def worker_id(self) -> str:
        return self._worker_id

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> Job | None:
        """Claim and run one job.

        Returns the job as it stands after this tick, or None when there
        was nothing to claim.
        """
        session = self._session_factory()
        try:
            store = JobStore(session, clock=self._clock, estimation=self._estimation)
            dispatcher = Dispatcher(session, job_store=store, clock=self._clock)
            job = dispatcher.claim_next(self._worker_id)
            if job is None:
                session.rollback()
                return None
            session.commit()

            with LogContext.bind(job_id=str(job.job_id), worker_id=self._worker_id):
                return self._execute(session, store, job)
        except Exception:
            session.rollback()
            logger.exception("worker_tick_failed", extra={"worker_id": self._worker_id})
            return None
        finally:
            session.close()

    def start(self) -> None:
        """Start the loop in a background thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name=f"batch-worker-{self._worker_id}",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "worker_started",
            extra={"worker_id": self._worker_id, "poll_interval": self._poll_interval},
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the current unit to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("worker_stopped", extra={"worker_id": self._worker_id})

    def run_forever(self) -> None:
        """Run the loop in the calling thread until ``stop()`` is called."""
        self._stop_event.clear()
        logger.info(
            "worker_started",
            extra={"worker_id": self._worker_id, "poll_interval": self._poll_interval},
        )
        self._run_loop()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("worker_tick_exception")
            self._stop_event.wait(timeout=self._poll_interval)

    def _execute(self, session: Session, store: JobStore, job: Job) -> Job:
        progress = ProgressTracker(store, milestone_step=self._milestone_step)
        context = JobContext(
            job, session, store, progress, self._clock, commit=session.commit,
        )

        logger.info(
            "batch_job_started",
            extra={
                "job_id": str(job.job_id),
                "job_type": job.job_type.value,
                "worker_id": self._worker_id,
            },
        )

        try:
            handler = self._registry.get(job.job_type)
            outcome = handler.run(context, job.parameters)
        except Exception as exc:
            session.rollback()
            return self._fail(session, store, job.job_id, exc)

        if outcome is None:
            session.commit()
            latest = store.get(job.job_id)
            logger.info(
                "batch_job_yielded",
                extra={"job_id": str(job.job_id), "status": latest.status.value},
            )
            return latest

        return self._complete(session, store, job.job_id, handler, outcome)

    def _complete(
        self,
        session: Session,
        store: JobStore,
        job_id: UUID,
        handler: JobHandler,
        outcome: HandlerOutcome,
    ) -> Job:
        try:
            job = store.transition(job_id, JobStatus.COMPLETED)
        except InvalidTransitionError as exc:
            # Paused or cancelled after the last unit; the result is dropped.
            session.rollback()
            logger.info(
                "batch_job_completion_skipped",
                extra={"job_id": str(job_id), "status": exc.current_status},
            )
            return store.get(job_id)

        store.store_result(
            job_id, handler.result_type, outcome.result_data, outcome.file_path,
        )
        store.append_log(
            job_id,
            LogLevel.INFO,
            f"Job completed: {job.processed_items} processed, "
            f"{job.failed_items} failed of {job.total_items}",
            {
                "processedItems": job.processed_items,
                "failedItems": job.failed_items,
                "totalItems": job.total_items,
                "resultType": handler.result_type.value,
            },
        )
        session.commit()

        logger.info(
            "batch_job_completed",
            extra={
                "job_id": str(job_id),
                "processed_items": job.processed_items,
                "failed_items": job.failed_items,
                "total_items": job.total_items,
            },
        )
        return store.get(job_id)

    def _fail(
        self, session: Session, store: JobStore, job_id: UUID, exc: Exception,
    ) -> Job:
        current = store.get(job_id)
        if current.status != JobStatus.RUNNING:
            logger.info(
                "batch_job_failure_after_interrupt",
                extra={"job_id": str(job_id), "status": current.status.value},
            )
            return current

        code = getattr(exc, "code", type(exc).__name__)
        store.append_log(job_id, LogLevel.ERROR, str(exc), {"error": code})
        job = store.transition(job_id, JobStatus.FAILED, reason=code)
        session.commit()

        logger.error(
            "batch_job_failed",
            extra={"job_id": str(job_id), "error_code": code, "error": str(exc)},
        )
        return job
