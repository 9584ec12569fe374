"""Shared fixtures for booking tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from shared.application.message_bus import MessageBus
from shared.domain.clock import FixedClock
from apps.bookings.domain.availability import AvailabilityChecker
from apps.bookings.domain.errors import BookingNotFoundError
from apps.bookings.domain.payments import PaymentSettings, PaymentSplitEngine
from apps.bookings.domain.repositories import BookingRecord, BookingRepository


class InMemoryBookingRepository(BookingRepository):
    """
    Returns every stored record from find_conflicting so the checker's own
    filtering (status, property, overlap) is exercised.
    """

    def __init__(self):
        self.records: list[BookingRecord] = []
        self.capacities: dict[str, int] = {}
        self.aggregates: dict[str, object] = {}
        self.error: Exception | None = None

    def add(self, booking_id, property_id, date_from, date_to, rooms=1, status="confirmed"):
        self.records.append(BookingRecord(
            booking_id=booking_id,
            property_id=property_id,
            date_from=date_from,
            date_to=date_to,
            rooms=rooms,
            status=status,
        ))

    def find_conflicting(self, property_id, date_from, date_to, exclude_id=None):
        if self.error is not None:
            raise self.error
        return list(self.records)

    def get_property_capacity(self, property_id):
        if self.error is not None:
            raise self.error
        return self.capacities[property_id]

    def get(self, booking_id):
        try:
            return self.aggregates[booking_id]
        except KeyError:
            raise BookingNotFoundError(booking_id) from None

    def save(self, booking):
        self.aggregates[booking.id] = booking


@pytest.fixture
def clock():
    return FixedClock(date(2024, 2, 1))


@pytest.fixture
def bookings():
    repo = InMemoryBookingRepository()
    repo.capacities["hotel-1"] = 2
    return repo


@pytest.fixture
def checker(bookings, clock):
    return AvailabilityChecker(bookings, clock=clock)


@pytest.fixture
def engine(clock):
    return PaymentSplitEngine(clock=clock)


@pytest.fixture
def partial_settings():
    return PaymentSettings(
        partial_payment_enabled=True,
        min_partial_payment_percent=Decimal("40"),
        max_partial_payment_percent=Decimal("100"),
        default_partial_payment_percent=Decimal("50"),
    )


@pytest.fixture
def bus():
    return MessageBus()


@pytest.fixture
def hotel(db):
    from apps.properties.models import Property

    return Property.objects.create(
        title="Lakeview Residency",
        total_rooms=2,
        partial_payment_enabled=True,
    )
