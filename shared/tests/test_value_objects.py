from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from shared.application.message_bus import MessageBus
from shared.domain.base import DomainEvent
from shared.domain.clock import FixedClock
from shared.domain.dates import as_utc_date, days_between
from shared.domain.value_objects import DateRange, Money


class TestMoney:

    def test_arithmetic(self):
        assert Money(100) + Money("50.5") == Money(Decimal("150.5"))
        assert Money(100) - Money(40) == Money(60)
        assert Money(100) * 3 == Money(300)
        assert Money(100) / 4 == Money(25)

    def test_float_input_has_no_binary_artefacts(self):
        assert Money(0.1).amount == Decimal("0.1")

    def test_rejects_negative_and_mixed_currencies(self):
        with pytest.raises(ValueError):
            Money(-1)
        with pytest.raises(ValueError):
            Money(1, "USD") + Money(1, "INR")
        with pytest.raises(ValueError):
            Money(1) - Money(2)

    def test_unsupported_currency(self):
        with pytest.raises(ValueError):
            Money(1, "XYZ")

    def test_percent_rounds_half_up_to_cents(self):
        assert Money("333.33").percent(25) == Money(Decimal("83.33"))
        assert Money("0.10").percent(25) == Money(Decimal("0.03"))

    def test_ordering(self):
        assert Money(1) < Money(2)
        assert Money(2) <= Money(2)

    def test_str(self):
        assert str(Money(Decimal("1234.5"))) == "1,234.50 INR"


class TestDateRange:

    def test_nights(self):
        stay = DateRange(date(2024, 2, 15), date(2024, 2, 18))

        assert stay.nights == 3
        assert len(stay) == 3
        assert str(stay) == "2024-02-15 - 2024-02-18"

    def test_must_be_ordered(self):
        with pytest.raises(ValueError):
            DateRange(date(2024, 2, 15), date(2024, 2, 15))

    def test_half_open_overlap(self):
        stay = DateRange(date(2024, 2, 15), date(2024, 2, 18))

        assert stay.overlaps_with(DateRange(date(2024, 2, 17), date(2024, 2, 20)))
        assert stay.overlaps_with(DateRange(date(2024, 2, 16), date(2024, 2, 17)))
        assert not stay.overlaps_with(DateRange(date(2024, 2, 18), date(2024, 2, 20)))
        assert not stay.overlaps_with(DateRange(date(2024, 2, 10), date(2024, 2, 15)))

    def test_contains_excludes_checkout_day(self):
        stay = DateRange(date(2024, 2, 15), date(2024, 2, 18))

        assert stay.contains(date(2024, 2, 15))
        assert not stay.contains(date(2024, 2, 18))


def test_days_between_uses_utc_calendar_days():
    evening_in_kolkata = datetime(2024, 3, 5, 23, 0, tzinfo=timezone(timedelta(hours=5, minutes=30)))

    assert as_utc_date(evening_in_kolkata) == date(2024, 3, 5)
    assert days_between(date(2024, 3, 10), evening_in_kolkata) == 5
    assert days_between(date(2024, 3, 10), date(2024, 3, 12)) == -2


def test_fixed_clock():
    clock = FixedClock(date(2024, 2, 1))

    assert clock.now() == datetime(2024, 2, 1, tzinfo=timezone.utc)
    clock.advance(days=1, hours=3)
    assert clock.today() == date(2024, 2, 2)


def test_message_bus_isolates_failing_handlers(caplog):
    bus = MessageBus()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    bus.register_event_handler(DomainEvent, broken)
    bus.register_event_handler(DomainEvent, received.append)
    bus.register_event_handler(DomainEvent, received.append)

    event = DomainEvent(aggregate_id="agg-1")
    bus.publish_events([event])

    assert received == [event]
    assert "Error in event handler broken" in caplog.text
