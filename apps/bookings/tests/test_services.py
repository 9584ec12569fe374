"""Booking workflows against the database."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from shared.domain.clock import FixedClock
from apps.bookings import services
from apps.bookings.domain.entities import BookingStatus, HotelPaymentStatus, OwnerPayoutStatus
from apps.bookings.domain.errors import InvalidTransitionError, ValidationError
from apps.bookings.domain.events import BookingCancelled, BookingCreated
from apps.bookings.domain.validation import BookingRequest
from apps.bookings.models import Booking as BookingModel
from apps.bookings.repositories import DjangoBookingRepository

pytestmark = pytest.mark.django_db


@pytest.fixture
def clock():
    return FixedClock(date(2024, 3, 1))


def _request(hotel, **overrides) -> BookingRequest:
    values = dict(
        property_id=str(hotel.pk),
        date_from=date(2024, 3, 6),
        date_to=date(2024, 3, 8),
        rooms=1,
        guests=2,
        total_amount=Decimal("10000"),
        guest_name="Asha Rao",
        guest_email="asha@example.com",
        partial_payment_percent=Decimal("50"),
    )
    values.update(overrides)
    return BookingRequest(**values)


def test_create_booking_stores_split(hotel, clock, bus, django_capture_on_commit_callbacks):
    published = []
    bus.register_event_handler(BookingCreated, published.append)

    with django_capture_on_commit_callbacks(execute=True):
        booking = services.create_booking(_request(hotel), clock=clock, bus=bus)

    row = BookingModel.objects.get(pk=booking.id)
    assert row.status == BookingStatus.PENDING.value
    assert row.is_partial_payment is True
    assert row.online_payment_amount == Decimal("5000")
    assert row.hotel_payment_amount == Decimal("5000")
    assert row.hotel_payment_status == HotelPaymentStatus.PENDING.value
    assert row.currency == "INR"
    assert len(row.booking_code) == 8
    assert [event.booking_id for event in published] == [booking.id]


def test_events_are_not_published_when_nothing_commits(hotel, clock, bus, django_capture_on_commit_callbacks):
    published = []
    bus.register_event_handler(BookingCreated, published.append)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        with pytest.raises(services.BookingConflictError):
            services.create_booking(_request(hotel, rooms=3), clock=clock, bus=bus)

    assert callbacks == []
    assert published == []
    assert BookingModel.objects.count() == 0


def test_last_room_cannot_be_taken_twice(hotel, clock):
    services.create_booking(_request(hotel, rooms=1), clock=clock)
    services.create_booking(_request(hotel, rooms=1, date_from=date(2024, 3, 7)), clock=clock)

    with pytest.raises(services.BookingConflictError) as excinfo:
        services.create_booking(
            _request(hotel, date_from=date(2024, 3, 7), date_to=date(2024, 3, 9)), clock=clock
        )

    result = excinfo.value.result
    assert result.available is False
    assert result.available_rooms == 0
    assert len(result.conflicts) == 2


def test_cancelled_booking_frees_rooms(hotel, clock):
    first = services.create_booking(_request(hotel, rooms=2), clock=clock)
    services.cancel_booking(first.id, "Plans changed", clock=clock)

    second = services.create_booking(_request(hotel, rooms=2), clock=clock)

    assert second.status == BookingStatus.PENDING


def test_check_availability_reads_database(hotel, clock):
    booking = services.create_booking(_request(hotel, rooms=2), clock=clock)

    busy = services.check_availability(str(hotel.pk), date(2024, 3, 7), date(2024, 3, 10), clock=clock)
    adjacent = services.check_availability(str(hotel.pk), date(2024, 3, 8), date(2024, 3, 10), clock=clock)
    itself = services.check_availability(
        str(hotel.pk), date(2024, 3, 6), date(2024, 3, 8), rooms=2,
        exclude_booking_id=booking.id, clock=clock,
    )

    assert busy.available is False
    assert adjacent.available is True
    assert itself.available is True


def test_requested_percent_outside_bounds(hotel, clock):
    with pytest.raises(ValidationError) as excinfo:
        services.create_booking(_request(hotel, partial_payment_percent=Decimal("20")), clock=clock)

    assert excinfo.value.fields == ["partial_payment_percent"]
    assert BookingModel.objects.count() == 0


def test_full_payment_when_property_disables_partial(hotel, clock):
    hotel.partial_payment_enabled = False
    hotel.save()

    booking = services.create_booking(_request(hotel), clock=clock)

    assert booking.is_partial_payment is False
    assert booking.online_payment_amount.amount == Decimal("10000")


def test_booking_takes_property_currency(hotel, clock):
    hotel.currency = "USD"
    hotel.save()

    booking = services.create_booking(_request(hotel), clock=clock)

    assert booking.total_amount.currency == "USD"
    assert booking.online_payment_amount.currency == "USD"
    assert BookingModel.objects.get(pk=booking.id).currency == "USD"


def test_explicit_currency_wins(hotel, clock):
    booking = services.create_booking(_request(hotel), currency="EUR", clock=clock)

    assert booking.total_amount.currency == "EUR"


def test_business_rules_reject_expensive_nights(hotel, clock):
    with pytest.raises(ValidationError) as excinfo:
        services.create_booking(_request(hotel, total_amount=Decimal("150000")), clock=clock)

    assert excinfo.value.fields == ["booking"]


def test_unknown_property(hotel, clock):
    request = _request(hotel, property_id="9b2f64d4-4a47-4a1e-9a84-6b7f5d3e0c11")

    with pytest.raises(services.PropertyNotFoundError):
        services.create_booking(request, clock=clock)


def test_cancel_refunds_policy_maximum_of_deposit(hotel, clock, bus, django_capture_on_commit_callbacks):
    booking = services.create_booking(_request(hotel), clock=clock)
    services.confirm_booking(booking.id, clock=clock)
    cancelled_events = []
    bus.register_event_handler(BookingCancelled, cancelled_events.append)

    with django_capture_on_commit_callbacks(execute=True):
        cancelled = services.cancel_booking(booking.id, "Plans changed", clock=clock, bus=bus)

    # 5 days before check-in: half of the 5000 deposit
    assert cancelled.refund_amount.amount == Decimal("2500.00")
    row = BookingModel.objects.get(pk=booking.id)
    assert row.status == BookingStatus.CANCELLED.value
    assert row.refund_amount == Decimal("2500.00")
    assert row.cancellation_reason == "Plans changed"
    assert row.requires_manual_approval is False
    assert cancelled_events[0].refund_amount.amount == Decimal("2500.00")


def test_refund_above_policy_is_rejected(hotel, clock):
    booking = services.create_booking(_request(hotel), clock=clock)
    services.confirm_booking(booking.id, clock=clock)

    with pytest.raises(services.RefundPolicyError) as excinfo:
        services.cancel_booking(booking.id, "Plans changed", refund_amount=Decimal("3000"), clock=clock)

    assert excinfo.value.assessment.max_refund == Decimal("2500.00")
    assert BookingModel.objects.get(pk=booking.id).status == BookingStatus.CONFIRMED.value


def test_unpaid_pending_booking_refunds_nothing(hotel, clock):
    booking = services.create_booking(_request(hotel), clock=clock)

    cancelled = services.cancel_booking(booking.id, "Payment failed", clock=clock)

    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.refund_amount.amount == Decimal("0")
    assert BookingModel.objects.get(pk=booking.id).refund_amount == Decimal("0")

    with pytest.raises(services.RefundPolicyError):
        services.cancel_booking(
            services.create_booking(_request(hotel), clock=clock).id,
            "Payment failed",
            refund_amount=Decimal("1"),
            clock=clock,
        )


def test_cancellation_uses_property_policy(hotel, clock):
    hotel.partial_refund_days = 6
    hotel.partial_refund_percent = Decimal("80")
    hotel.save()
    booking = services.create_booking(_request(hotel), clock=clock)
    services.confirm_booking(booking.id, clock=clock)

    cancelled = services.cancel_booking(booking.id, "Plans changed", clock=clock)

    # 5 days out falls in the late tier once partial refunds need 6 days notice
    assert cancelled.refund_amount.amount == Decimal("1250.00")


def test_confirmed_cancellation_on_check_in_day_needs_approval(hotel, clock):
    booking = services.create_booking(_request(hotel), clock=clock)
    services.confirm_booking(booking.id, clock=clock)
    clock.advance(days=5)

    cancelled = services.cancel_booking(booking.id, "Guest did not arrive", clock=clock)

    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.requires_manual_approval is True
    assert cancelled.refund_amount.amount == Decimal("0.00")


def test_full_lifecycle_with_owner_payout(hotel, clock):
    booking = services.create_booking(_request(hotel), clock=clock)
    services.confirm_booking(booking.id, clock=clock)
    clock.advance(days=5)
    services.collect_hotel_payment(booking.id, "front-desk-2", "upi", clock=clock)
    clock.advance(days=2)
    services.complete_booking(booking.id, clock=clock)

    payout = services.settle_owner_payout(booking.id, "NEFT-0042", clock=clock)

    assert payout.net_amount == Decimal("8375.00")
    row = BookingModel.objects.get(pk=booking.id)
    assert row.status == BookingStatus.COMPLETED.value
    assert row.hotel_payment_status == HotelPaymentStatus.COLLECTED.value
    assert row.hotel_payment_method == "upi"
    assert row.owner_payout_status == OwnerPayoutStatus.PAID.value
    assert row.owner_payout_amount == Decimal("8375.00")
    assert row.owner_payout_reference == "NEFT-0042"


def test_payout_waits_for_hotel_payment(hotel, clock):
    booking = services.create_booking(_request(hotel), clock=clock)
    services.confirm_booking(booking.id, clock=clock)
    services.complete_booking(booking.id, clock=clock)

    with pytest.raises(services.PayoutNotAllowedError) as excinfo:
        services.settle_owner_payout(booking.id, "NEFT-0043", clock=clock)

    assert excinfo.value.payout.reason == "Hotel payment has not been collected yet"


def test_unaccepted_hotel_payment_method(hotel, clock):
    hotel.hotel_payment_methods = ["cash"]
    hotel.save()
    booking = services.create_booking(_request(hotel), clock=clock)

    with pytest.raises(ValidationError) as excinfo:
        services.collect_hotel_payment(booking.id, "front-desk-2", "card", clock=clock)

    assert excinfo.value.fields == ["method"]


def test_confirm_twice(hotel, clock):
    booking = services.create_booking(_request(hotel), clock=clock)
    services.confirm_booking(booking.id, clock=clock)

    with pytest.raises(InvalidTransitionError):
        services.confirm_booking(booking.id, clock=clock)


@pytest.mark.parametrize("booking_id", ["not-a-uuid", "0b7e2a3c-6a1f-4c55-8d2b-2c1f9f0a7e11"])
def test_missing_booking(booking_id, clock):
    with pytest.raises(services.BookingNotFoundError):
        services.confirm_booking(booking_id, clock=clock)


def test_repository_round_trip(hotel, clock):
    booking = services.create_booking(_request(hotel, special_requests="Late arrival"), clock=clock)

    loaded = DjangoBookingRepository().get(booking.id)

    assert loaded == booking
    assert loaded.dates == booking.dates
    assert loaded.total_amount == booking.total_amount
    assert loaded.special_requests == "Late arrival"
    assert loaded.created_at == clock.now()
