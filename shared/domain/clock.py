"""
Clock abstraction

Domain code asks a clock for "now" instead of calling ``datetime.now()``
so that past-date checks and days-before-check-in arithmetic stay
deterministic under test.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

from shared.domain.dates import as_utc_date


class Clock(ABC):
    """Supplies the current instant (timezone-aware, UTC)"""

    @abstractmethod
    def now(self) -> datetime:
        pass

    def today(self) -> date:
        return as_utc_date(self.now())


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """
    Clock frozen at a given instant

    A plain date is pinned to midnight UTC of that day.
    """

    def __init__(self, instant):
        if not isinstance(instant, datetime):
            instant = datetime(instant.year, instant.month, instant.day, tzinfo=timezone.utc)
        elif instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, **delta) -> None:
        self._instant = self._instant + timedelta(**delta)


system_clock = SystemClock()
