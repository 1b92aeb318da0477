"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock so that the job store, worker loop, and
    handlers never call ``datetime.now()`` directly.

Architecture position:
    Kernel > Domain -- zero I/O (except SystemClock, the one sanctioned
    boundary for time)."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        Every service that needs the current time receives a Clock via
        constructor injection.

    Guarantees:
        - ``now()`` returns a ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...


class SystemClock(Clock):
    """Production clock returning timezone-aware UTC system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._advance_seconds = 0.0

    def now(self) -> datetime:
        return self._fixed_time + timedelta(seconds=self._advance_seconds)

    def advance(self, seconds: float = 1) -> None:
        """Move the clock forward by ``seconds``."""
        self._advance_seconds += seconds


def elapsed_seconds(start: datetime, end: datetime) -> float:
    """Seconds between two datetimes, tolerating naive/aware mixes.

    SQLite drops tzinfo on round-trip, so a value read back from the store
    may be naive while the clock is aware.
    """
    if (start.tzinfo is None) != (end.tzinfo is None):
        start = start.replace(tzinfo=None)
        end = end.replace(tzinfo=None)
    return (end - start).total_seconds()
