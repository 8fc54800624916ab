"""Tests for the injected clocks."""

from datetime import UTC, datetime, timedelta

import pytest

from booking_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:
    def test_starts_when_the_desk_opens(self):
        assert DeterministicClock().now() == datetime(2025, 1, 1, 9, 0, tzinfo=UTC)

    def test_time_stands_still(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()

    def test_advance(self):
        clock = DeterministicClock()
        assert clock.advance(hours=2, minutes=30) == datetime(2025, 1, 1, 11, 30, tzinfo=UTC)
        assert clock.now() == datetime(2025, 1, 1, 11, 30, tzinfo=UTC)

    def test_cannot_go_backwards(self):
        with pytest.raises(ValueError, match="backwards"):
            DeterministicClock().advance(seconds=-1)

    def test_set_time(self):
        clock = DeterministicClock()
        pickup = datetime(2025, 3, 14, 8, 0, tzinfo=UTC)
        clock.set_time(pickup)
        assert clock.now() == pickup

    def test_naive_times_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            DeterministicClock(datetime(2025, 1, 1))
        with pytest.raises(ValueError, match="timezone-aware"):
            DeterministicClock().set_time(datetime(2025, 1, 1))


class TestSystemClock:
    def test_returns_aware_utc_now(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert abs(datetime.now(UTC) - now) < timedelta(seconds=5)
