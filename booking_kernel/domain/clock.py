"""
Injected time source for the booking services.

Settlement stamps ``processed_at`` on every split-payment row from a Clock
rather than reading the wall clock, so tests can pin the moment a booking
was paid.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta


class Clock(ABC):
    """Source of timezone-aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Clock frozen at a chosen instant.

    Starts at the opening of the booking desk on 2025-01-01 unless told
    otherwise; only ``advance`` and ``set_time`` move it.
    """

    DESK_OPENS = datetime(2025, 1, 1, 9, 0, tzinfo=UTC)

    def __init__(self, current: datetime | None = None):
        self.current = current or self.DESK_OPENS
        if self.current.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware datetime")

    def now(self) -> datetime:
        return self.current

    def set_time(self, current: datetime) -> None:
        if current.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware datetime")
        self.current = current

    def advance(self, **delta: float) -> datetime:
        """Move forward by ``timedelta(**delta)`` and return the new time."""
        step = timedelta(**delta)
        if step < timedelta(0):
            raise ValueError("DeterministicClock cannot move backwards")
        self.current = self.current + step
        return self.current
