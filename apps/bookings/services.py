"""Domain services for booking workflows.

Entry points used by views, tasks and management commands. Each function
wires the Django repositories into the matching command handler; tests
pass ``clock`` / ``engine`` / ``bus`` to control time and capture events.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from django.conf import settings  # type: ignore

from apps.bookings.application.command_handlers import (
    BookingConflictError,
    CancelBookingCommand,
    CancelBookingHandler,
    CollectHotelPaymentCommand,
    CollectHotelPaymentHandler,
    CompleteBookingCommand,
    CompleteBookingHandler,
    ConfirmBookingCommand,
    ConfirmBookingHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    PayoutNotAllowedError,
    RefundPolicyError,
    SettleOwnerPayoutCommand,
    SettleOwnerPayoutHandler,
)
from apps.bookings.domain.availability import AvailabilityChecker, AvailabilityResult
from apps.bookings.domain.entities import Booking
from apps.bookings.domain.errors import BookingNotFoundError, PropertyNotFoundError
from apps.bookings.domain.payments import OwnerPayout
from apps.bookings.domain.validation import BookingRequest, BookingRules
from apps.bookings.repositories import DjangoBookingRepository, DjangoPaymentSettingsRepository
from shared.domain.clock import system_clock

__all__ = [
    "BookingConflictError",
    "BookingNotFoundError",
    "PayoutNotAllowedError",
    "PropertyNotFoundError",
    "RefundPolicyError",
    "booking_rules",
    "cancel_booking",
    "check_availability",
    "collect_hotel_payment",
    "complete_booking",
    "confirm_booking",
    "create_booking",
    "settle_owner_payout",
]


def booking_rules() -> BookingRules:
    """Limits from ``settings.BOOKING_RULES`` on top of the defaults."""

    return BookingRules.from_mapping(getattr(settings, "BOOKING_RULES", None))


def _handler(handler_cls, **options):
    return handler_cls(
        DjangoBookingRepository(lock=True),
        DjangoPaymentSettingsRepository(),
        **options,
    )


def check_availability(
    property_id: str,
    date_from,
    date_to,
    rooms: int = 1,
    *,
    exclude_booking_id: Optional[str] = None,
    clock=system_clock,
) -> AvailabilityResult:
    """Read-only availability check, e.g. for a search page."""

    checker = AvailabilityChecker(DjangoBookingRepository(), clock=clock)
    return checker.check(property_id, date_from, date_to, rooms, exclude_booking_id=exclude_booking_id)


def create_booking(request: BookingRequest, *, currency: Optional[str] = None, **options) -> Booking:
    """Create a PENDING booking; raises BookingConflictError when the rooms are gone."""

    options.setdefault("rules", booking_rules())
    command = CreateBookingCommand(
        request=request,
        currency=currency,
    )
    return _handler(CreateBookingHandler, **options).handle(command)


def confirm_booking(booking_id: str, **options) -> Booking:
    return _handler(ConfirmBookingHandler, **options).handle(ConfirmBookingCommand(booking_id))


def cancel_booking(
    booking_id: str,
    reason: str,
    refund_amount: Optional[Decimal] = None,
    **options,
) -> Booking:
    """Cancel a booking; raises RefundPolicyError when ``refund_amount`` exceeds the policy."""

    command = CancelBookingCommand(booking_id=booking_id, reason=reason, refund_amount=refund_amount)
    return _handler(CancelBookingHandler, **options).handle(command)


def complete_booking(booking_id: str, **options) -> Booking:
    return _handler(CompleteBookingHandler, **options).handle(CompleteBookingCommand(booking_id))


def collect_hotel_payment(booking_id: str, collected_by: str, method: str, **options) -> Booking:
    command = CollectHotelPaymentCommand(booking_id=booking_id, collected_by=collected_by, method=method)
    return _handler(CollectHotelPaymentHandler, **options).handle(command)


def settle_owner_payout(booking_id: str, reference: str, **options) -> OwnerPayout:
    command = SettleOwnerPayoutCommand(booking_id=booking_id, reference=reference)
    return _handler(SettleOwnerPayoutHandler, **options).handle(command)
