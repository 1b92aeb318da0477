"""
JobHandler protocol, per-job context, HandlerRegistry, and the unit loop.

Contract:
    ``JobHandler`` defines the interface every job-type handler implements.
    ``HandlerRegistry`` stores handlers keyed by ``JobType``.
    ``UnitHandler`` is the template most handlers extend: it enumerates
    units, runs each one in its own SAVEPOINT, reports progress after every
    unit, checkpoints for resumption, and stops cooperatively when the job
    leaves RUNNING.

Architecture:
    sentiment_batch/tasks.  Imports from sentiment_batch.domain and the
    batch services only through JobContext.

Invariants enforced:
    - One handler per job type.
    - A unit failure is caught, counted, logged at ERROR, and the loop
      continues; only SetupError (raised before the first unit) ends a job.
    - Cancellation is observed at unit boundaries, never mid-unit.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Generic, Protocol, TypeVar, runtime_checkable

from sqlalchemy.orm import Session

from sentiment_kernel.domain.clock import Clock
from sentiment_kernel.exceptions import (
    HandlerNotRegisteredError,
    ProgressRejectedError,
    SetupError,
    UnitError,
    ValidationError,
)
from sentiment_kernel.logging_config import get_logger

from sentiment_batch.domain.parameters import DateRange, JobParameters
from sentiment_batch.domain.types import Job, JobStatus, JobType, LogLevel, ResultType
from sentiment_batch.services.job_store import JobStore
from sentiment_batch.services.progress import ProgressTracker

logger = get_logger("batch.tasks")


# =============================================================================
# Supporting DTOs
# =============================================================================


@dataclass(frozen=True)
class WorkUnit:
    """One individually processable piece of a job, usually one date."""

    index: int
    key: str
    day: date | None = None
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HandlerOutcome:
    """What a handler hands back on success; becomes the JobResult."""

    result_data: dict[str, Any]
    file_path: str | None = None


# =============================================================================
# JobContext
# =============================================================================


class JobContext:
    """Per-job services handed to a handler by the worker.

    ``commit`` is called at every unit boundary so that committed units
    survive a crash or cancellation; it defaults to a flush.
    """

    def __init__(
        self,
        job: Job,
        session: Session,
        job_store: JobStore,
        progress: ProgressTracker,
        clock: Clock,
        commit: Callable[[], None] | None = None,
    ):
        self.job = job
        self.session = session
        self.clock = clock
        self._store = job_store
        self._progress = progress
        self._commit = commit or session.flush
        self._interrupted_status: JobStatus | None = None

    @property
    def job_id(self):
        return self.job.job_id

    @property
    def checkpoint(self) -> dict[str, Any]:
        return dict(self.job.checkpoint or {})

    @property
    def interrupted_status(self) -> JobStatus | None:
        """Status observed when the handler stopped early, if it did."""
        return self._interrupted_status

    def log(
        self,
        level: LogLevel,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        self._store.append_log(self.job_id, level, message, context)

    def plan_units(self, count: int) -> None:
        """Record the real unit count once the handler has enumerated it."""
        if count != self.job.total_items:
            self.job = self._store.set_total_items(self.job_id, count)
            self._commit()

    def report(
        self,
        processed: int,
        failed: int,
        current_unit: str | None = None,
        checkpoint: dict[str, Any] | None = None,
    ) -> None:
        self.job = self._progress.report(
            self.job_id, processed, failed,
            current_unit=current_unit, checkpoint=checkpoint,
        )
        self._commit()

    def should_continue(self) -> bool:
        """Re-read the job; False once it is no longer RUNNING for us."""
        current = self._store.get(self.job_id)
        if current.status == JobStatus.RUNNING and current.worker_id == self.job.worker_id:
            return True
        self._interrupted_status = current.status
        logger.info(
            "batch_job_interrupted",
            extra={"job_id": str(self.job_id), "status": current.status.value},
        )
        return False


# =============================================================================
# JobHandler Protocol
# =============================================================================


@runtime_checkable
class JobHandler(Protocol):
    """Interface for job-type handlers.

    Contract:
        - ``job_type``: the JobType this handler is registered under.
        - ``description``: human-readable label.
        - ``result_type``: type tag of the stored JobResult.
        - ``run()``: executes the job.  Returns a HandlerOutcome on
          completion, or None if the job was paused or cancelled at a unit
          boundary.  Raises SetupError if the job cannot start.

    Non-goals:
        - Does NOT transition the job -- the worker owns terminal states.
    """

    @property
    def job_type(self) -> JobType: ...

    @property
    def description(self) -> str: ...

    @property
    def result_type(self) -> ResultType: ...

    def run(
        self, context: JobContext, parameters: dict[str, Any],
    ) -> HandlerOutcome | None: ...


# =============================================================================
# HandlerRegistry
# =============================================================================


class HandlerRegistry:
    """Registry mapping JobType to JobHandler implementations.

    Contract:
        - ``register()`` adds a handler; raises ValueError on duplicate.
        - ``get()`` retrieves by job type; raises HandlerNotRegisteredError.
        - ``list_job_types()`` returns all registered type names.
    """

    def __init__(self) -> None:
        self._handlers: dict[JobType, JobHandler] = {}

    def register(self, handler: JobHandler) -> None:
        """Register a handler.

        Raises:
            ValueError: If a handler for the same job type is registered.
        """
        if handler.job_type in self._handlers:
            raise ValueError(
                f"Job type '{handler.job_type.value}' is already registered"
            )
        self._handlers[handler.job_type] = handler

    def get(self, job_type: JobType | str) -> JobHandler:
        """Retrieve the handler for a job type.

        Raises:
            HandlerNotRegisteredError: If no handler is registered.
        """
        try:
            return self._handlers[JobType(job_type)]
        except (KeyError, ValueError):
            raise HandlerNotRegisteredError(
                str(getattr(job_type, "value", job_type)), self.list_job_types(),
            ) from None

    def list_job_types(self) -> tuple[str, ...]:
        """Return all registered job type names, sorted."""
        return tuple(sorted(t.value for t in self._handlers))

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, job_type: JobType | str) -> bool:
        try:
            return JobType(job_type) in self._handlers
        except ValueError:
            return False


# =============================================================================
# UnitHandler template
# =============================================================================

StateT = TypeVar("StateT", bound=dict)


class UnitHandler(ABC, Generic[StateT]):
    """Sequential per-unit loop shared by the concrete handlers.

    Subclasses supply ``prepare_units``, ``process_unit``, the state
    accumulator hooks, and ``build_result``.  State must be JSON-serializable
    because it is persisted in the job checkpoint.
    """

    job_type: JobType
    description: str
    result_type: ResultType

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def parse_parameters(self, parameters: dict[str, Any]) -> JobParameters:
        try:
            return JobParameters.from_payload(parameters)
        except ValidationError as exc:
            raise SetupError(str(exc), parameter=exc.field) from exc

    def require_date_range(self, parsed: JobParameters) -> DateRange:
        if parsed.date_range is None:
            raise SetupError(
                f"{self.job_type.value} requires a dateRange", parameter="dateRange",
            )
        return parsed.date_range

    @abstractmethod
    def prepare_units(
        self, parsed: JobParameters, context: JobContext,
    ) -> tuple[WorkUnit, ...]:
        """Enumerate the units of this job; raise SetupError if impossible."""

    @abstractmethod
    def new_state(self, parsed: JobParameters) -> StateT: ...

    @abstractmethod
    def process_unit(
        self, unit: WorkUnit, parsed: JobParameters, state: StateT, context: JobContext,
    ) -> None:
        """Process one unit inside a SAVEPOINT.

        Must only mutate ``state`` after all database work for the unit has
        been issued, so a failure leaves the accumulator untouched.
        """

    def on_unit_failed(
        self, unit: WorkUnit, error: Exception, state: StateT,
    ) -> None:
        """Record a failed unit in the accumulator (optional)."""

    @abstractmethod
    def build_result(
        self, parsed: JobParameters, state: StateT, context: JobContext,
    ) -> HandlerOutcome: ...

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    def run(
        self, context: JobContext, parameters: dict[str, Any],
    ) -> HandlerOutcome | None:
        parsed = self.parse_parameters(parameters)
        units = self.prepare_units(parsed, context)
        context.plan_units(len(units))

        checkpoint = context.checkpoint
        start_index = int(checkpoint.get("next_index", 0))
        state: StateT = checkpoint.get("state") or self.new_state(parsed)
        processed = context.job.processed_items
        failed = context.job.failed_items

        if start_index:
            context.log(
                LogLevel.INFO,
                f"Resuming from unit {start_index} of {len(units)}",
                {"nextIndex": start_index},
            )

        for unit in units[start_index:]:
            if not context.should_continue():
                return None

            started = time.monotonic()
            try:
                with context.session.begin_nested():
                    self.process_unit(unit, parsed, state, context)
            except Exception as exc:
                failed += 1
                self.on_unit_failed(unit, exc, state)
                self._log_unit_failure(context, unit, exc, started)
            else:
                processed += 1

            try:
                context.report(
                    processed,
                    failed,
                    current_unit=unit.key,
                    checkpoint={"next_index": unit.index + 1, "state": state},
                )
            except ProgressRejectedError:
                if not context.should_continue():
                    # The unit is not counted, so its writes must not land.
                    context.session.rollback()
                    return None
                raise

        return self.build_result(parsed, state, context)

    def _log_unit_failure(
        self,
        context: JobContext,
        unit: WorkUnit,
        exc: Exception,
        started: float,
    ) -> None:
        code = getattr(exc, "code", type(exc).__name__)
        context.log(
            LogLevel.ERROR,
            f"Unit {unit.key} failed: {exc}",
            {
                "unit": unit.key,
                "error": code,
                "durationMs": round((time.monotonic() - started) * 1000, 3),
            },
        )
        log = logger.warning if isinstance(exc, UnitError) else logger.exception
        log(
            "batch_unit_failed",
            extra={
                "job_id": str(context.job_id),
                "unit": unit.key,
                "error_code": code,
                "error": str(exc),
            },
        )


def date_units(date_range: DateRange) -> tuple[WorkUnit, ...]:
    return tuple(
        WorkUnit(index=i, key=day.isoformat(), day=day)
        for i, day in enumerate(date_range.days())
    )
