from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from shared.domain.value_objects import DateRange, Money
from apps.bookings.domain.entities import Booking, BookingStatus, HotelPaymentStatus, OwnerPayoutStatus
from apps.bookings.domain.errors import InvalidTransitionError, ValidationError
from apps.bookings.domain.events import (
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingCreated,
    HotelPaymentCollected,
    OwnerPayoutRecorded,
)
from apps.bookings.domain.payments import PaymentSplit

CHECK_IN = date(2024, 3, 10)
NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def booking():
    booking = Booking.create(
        booking_code="AB12CD34",
        property_id="hotel-1",
        dates=DateRange(CHECK_IN, date(2024, 3, 12)),
        rooms=1,
        guests=2,
        total_amount=Money(Decimal("10000")),
        split=PaymentSplit(
            is_partial_payment=True,
            online_amount=Decimal("4000"),
            hotel_amount=Decimal("6000"),
            percent=Decimal("40"),
        ),
        guest_name="Asha Rao",
    )
    booking.clear_events()
    return booking


def test_create_records_split_and_event():
    booking = Booking.create(
        booking_code="AB12CD34",
        property_id="hotel-1",
        dates=DateRange(CHECK_IN, date(2024, 3, 12)),
        rooms=2,
        guests=3,
        total_amount=Money(Decimal("10000")),
        split=PaymentSplit(False, Decimal("10000"), Decimal("0"), Decimal("100")),
    )

    assert booking.status == BookingStatus.PENDING
    assert booking.hotel_payment_amount == Money(Decimal("0"))
    assert booking.nights == 2
    assert booking.blocks_inventory

    [event] = booking.events
    assert isinstance(event, BookingCreated)
    assert event.aggregate_id == booking.id
    assert event.online_payment_amount == Money(Decimal("10000"))
    assert event.to_dict()["event_type"] == "BookingCreated"


def test_split_must_add_up():
    with pytest.raises(ValidationError) as excinfo:
        Booking(
            booking_code="X",
            property_id="hotel-1",
            dates=DateRange(CHECK_IN, date(2024, 3, 12)),
            rooms=1,
            guests=1,
            total_amount=Money(Decimal("100")),
            online_payment_amount=Money(Decimal("60")),
            hotel_payment_amount=Money(Decimal("30")),
        )

    assert excinfo.value.fields == ["hotel_payment_amount"]


def test_confirm_then_complete(booking):
    booking.confirm(NOW)
    booking.complete(NOW)

    assert booking.status == BookingStatus.COMPLETED
    assert booking.completed_at == NOW
    assert not booking.blocks_inventory
    assert [type(event) for event in booking.events] == [BookingConfirmed, BookingCompleted]


def test_complete_requires_confirmation(booking):
    with pytest.raises(InvalidTransitionError):
        booking.complete(NOW)


@pytest.mark.parametrize("terminal", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
def test_terminal_states(booking, terminal):
    booking.status = terminal

    with pytest.raises(InvalidTransitionError):
        booking.confirm(NOW)
    with pytest.raises(InvalidTransitionError):
        booking.cancel("Change of plans", NOW)


def test_cancel_records_refund(booking):
    flagged = booking.cancel("Change of plans", NOW, refund_amount=Money(Decimal("2000")), refund_reason="partial")

    assert flagged is False
    assert booking.status == BookingStatus.CANCELLED
    assert booking.refund_amount == Money(Decimal("2000"))
    [event] = booking.events
    assert isinstance(event, BookingCancelled)
    assert event.old_status == "pending"


def test_cancel_requires_reason(booking):
    with pytest.raises(ValidationError) as excinfo:
        booking.cancel("", NOW)

    assert excinfo.value.fields == ["cancellation_reason"]
    assert booking.status == BookingStatus.PENDING


def test_refund_cannot_exceed_total(booking):
    with pytest.raises(ValidationError):
        booking.cancel("Change of plans", NOW, refund_amount=Money(Decimal("10000.01")))


def test_confirmed_cancellation_on_check_in_day_is_flagged(booking):
    booking.confirm(NOW)
    check_in_morning = datetime(2024, 3, 10, 8, 0, tzinfo=timezone.utc)

    flagged = booking.cancel("No show", check_in_morning)

    assert flagged is True
    assert booking.status == BookingStatus.CANCELLED
    assert booking.requires_manual_approval is True
    assert booking.events[-1].requires_manual_approval is True


def test_nothing_collected_before_online_payment(booking):
    assert booking.online_payment_received is False
    assert booking.amount_collected == Money(Decimal("0"))

    booking.cancel("Change of plans", NOW)

    assert booking.amount_collected == Money(Decimal("0"))


def test_collect_hotel_payment(booking):
    booking.confirm(NOW)
    assert booking.amount_collected == Money(Decimal("4000"))

    booking.collect_hotel_payment("front-desk-7", "cash", NOW)

    assert booking.hotel_payment_status == HotelPaymentStatus.COLLECTED
    assert booking.amount_collected == Money(Decimal("10000"))
    assert isinstance(booking.events[-1], HotelPaymentCollected)

    with pytest.raises(InvalidTransitionError):
        booking.collect_hotel_payment("front-desk-7", "cash", NOW)


def test_full_payment_has_nothing_to_collect():
    booking = Booking.create(
        booking_code="FULL0001",
        property_id="hotel-1",
        dates=DateRange(CHECK_IN, date(2024, 3, 12)),
        rooms=1,
        guests=2,
        total_amount=Money(Decimal("10000")),
        split=PaymentSplit(False, Decimal("10000"), Decimal("0"), Decimal("100")),
    )
    booking.clear_events()

    with pytest.raises(InvalidTransitionError):
        booking.collect_hotel_payment("front-desk-7", "cash", NOW)

    assert booking.hotel_payment_status == HotelPaymentStatus.PENDING
    assert booking.events == []


def test_collect_requires_collector(booking):
    with pytest.raises(ValidationError):
        booking.collect_hotel_payment("  ", "cash", NOW)


def test_owner_payout_only_once(booking):
    booking.confirm(NOW)
    booking.complete(NOW)

    booking.record_owner_payout(Money(Decimal("8000")), "TX-1", NOW)

    assert booking.owner_payout_status == OwnerPayoutStatus.PAID
    assert isinstance(booking.events[-1], OwnerPayoutRecorded)
    with pytest.raises(InvalidTransitionError):
        booking.record_owner_payout(Money(Decimal("8000")), "TX-2", NOW)


def test_equality_is_by_id(booking):
    other = Booking(
        id=booking.id,
        booking_code="OTHER",
        property_id="hotel-2",
        dates=booking.dates,
        rooms=1,
        guests=1,
        total_amount=Money(Decimal("1")),
    )

    assert other == booking
    assert len({other, booking}) == 1
