"""
Tests for sentiment_kernel.domain.clock.
"""

from datetime import datetime, timezone

from sentiment_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SystemClock,
    elapsed_seconds,
)


class TestDeterministicClock:
    def test_fixed_until_advanced(self):
        clock = DeterministicClock(datetime(2026, 2, 1, 12, 0, 0))
        assert clock.now() == clock.now()

        clock.advance(90)
        assert clock.now() == datetime(2026, 2, 1, 12, 1, 30)

    def test_default_is_aware(self):
        assert DeterministicClock().now().tzinfo is timezone.utc


class TestSystemClock:
    def test_returns_aware_utc(self):
        clock = SystemClock()
        assert isinstance(clock, Clock)
        assert clock.now().tzinfo is timezone.utc


class TestElapsedSeconds:
    def test_naive_pair(self):
        assert elapsed_seconds(datetime(2026, 1, 1), datetime(2026, 1, 1, 0, 0, 5)) == 5.0

    def test_naive_and_aware_mix(self):
        start = datetime(2026, 1, 1, 0, 0, 0)
        end = datetime(2026, 1, 1, 0, 0, 2, tzinfo=timezone.utc)
        assert elapsed_seconds(start, end) == 2.0
