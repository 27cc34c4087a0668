"""
Time source for document stamps and document numbers.

Services never read the wall clock themselves.  They take a ``Clock`` and
use it for two things: the ``submitted_at`` / ``executed_at`` /
``confirmed_at`` stamps on documents, and the UTC calendar day embedded in
document numbers (``SRN-20240315-000001``).  Pinning the clock in a test
pins both.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware."""

    def document_date(self) -> date:
        """UTC day that numbers issued now belong to; counters restart on it."""
        return self.now().astimezone(timezone.utc).date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Stands still until moved."""

    def __init__(self, fixed_time: datetime | None = None):
        self._time = fixed_time or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._time

    def set_time(self, time: datetime) -> None:
        self._time = time

    def advance(self, seconds: int = 1) -> datetime:
        self._time += timedelta(seconds=seconds)
        return self._time
