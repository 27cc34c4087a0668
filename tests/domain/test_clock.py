"""Tests for the clock that stamps documents and dates their numbers."""

from datetime import date, datetime, timedelta, timezone

from supply_kernel.domain.clock import DeterministicClock, SystemClock


class TestDocumentDate:

    def test_uses_the_utc_day(self):
        # 23:30 in New York on the 15th is already the 16th in UTC
        eastern = timezone(timedelta(hours=-5))
        clock = DeterministicClock(datetime(2024, 3, 15, 23, 30, tzinfo=eastern))
        assert clock.document_date() == date(2024, 3, 16)

    def test_advance_crosses_midnight(self):
        clock = DeterministicClock(datetime(2024, 3, 15, 23, 59, 59, tzinfo=timezone.utc))
        assert clock.advance() == datetime(2024, 3, 16, tzinfo=timezone.utc)
        assert clock.document_date() == date(2024, 3, 16)

    def test_stands_still(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()


class TestSystemClock:

    def test_timezone_aware(self):
        assert SystemClock().now().tzinfo is not None
