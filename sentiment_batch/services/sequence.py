"""
SequenceAllocator -- monotonic sequence numbers via locked counter rows.

Contract:
    ``next_value(name)`` returns the next value of a named sequence.  The
    increment is transactional: it becomes visible when the caller
    commits, and a rollback returns the value.

Invariants enforced:
    - The counter row is the sole source of the next value; concurrent
      submitters serialize on ``SELECT ... FOR UPDATE`` instead of racing
      on ``max(seq) + 1``.
    - A concurrent first use of a name is resolved inside a SAVEPOINT so
      the caller's other work survives the retry.

Non-goals:
    - Does NOT call ``session.commit()`` -- caller controls boundaries.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sentiment_kernel.logging_config import get_logger

from sentiment_batch.models.batch import SequenceCounterModel

logger = get_logger("batch.sequence")

JOB_SEQUENCE = "batch_job"


class SequenceAllocator:
    """Allocates sequence values inside the caller's transaction."""

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, name: str) -> int:
        counter = self._locked_counter(name)
        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounterModel(name=name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                return 1
            except IntegrityError:
                # Another session created the row first.
                savepoint.rollback()
                logger.debug("sequence_counter_race_retry", extra={"sequence_name": name})
                counter = self._locked_counter(name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        return counter.current_value

    def current_value(self, name: str) -> int | None:
        return self._session.execute(
            select(SequenceCounterModel.current_value)
            .where(SequenceCounterModel.name == name)
        ).scalar_one_or_none()

    def _locked_counter(self, name: str) -> SequenceCounterModel | None:
        return self._session.execute(
            select(SequenceCounterModel)
            .where(SequenceCounterModel.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
