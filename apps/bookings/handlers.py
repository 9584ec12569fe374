"""Booking event handlers.

Subscribed to the message bus from ``BookingsConfig.ready``. They write
a structured audit trail; the payment gateway and notification services
subscribe to the same events outside this project.
"""

import structlog

from shared.application.message_bus import MessageBus
from apps.bookings.domain.events import (
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingCreated,
    HotelPaymentCollected,
    OwnerPayoutRecorded,
)

audit_log = structlog.get_logger("apps.bookings.audit")


def log_booking_created(event: BookingCreated) -> None:
    audit_log.info(
        "booking_created",
        booking_id=event.booking_id,
        property_id=event.property_id,
        check_in=event.dates.start_date.isoformat(),
        check_out=event.dates.end_date.isoformat(),
        rooms=event.rooms,
        total=str(event.total_amount.amount),
        online=str(event.online_payment_amount.amount),
        at_property=str(event.hotel_payment_amount.amount),
        currency=event.total_amount.currency,
        partial=event.is_partial_payment,
    )


def log_booking_status_change(event) -> None:
    audit_log.info(
        "booking_status_changed",
        booking_id=event.booking_id,
        property_id=event.property_id,
        event=type(event).__name__,
    )


def log_booking_cancelled(event: BookingCancelled) -> None:
    log = audit_log.warning if event.requires_manual_approval else audit_log.info
    log(
        "booking_cancelled",
        booking_id=event.booking_id,
        property_id=event.property_id,
        old_status=event.old_status,
        refund=str(event.refund_amount.amount),
        currency=event.refund_amount.currency,
        requires_manual_approval=event.requires_manual_approval,
    )


def log_hotel_payment_collected(event: HotelPaymentCollected) -> None:
    audit_log.info(
        "hotel_payment_collected",
        booking_id=event.booking_id,
        property_id=event.property_id,
        amount=str(event.amount.amount),
        method=event.method,
        collected_by=event.collected_by,
    )


def log_owner_payout(event: OwnerPayoutRecorded) -> None:
    audit_log.info(
        "owner_payout_recorded",
        booking_id=event.booking_id,
        property_id=event.property_id,
        amount=str(event.amount.amount),
        reference=event.reference,
    )


def register(bus: MessageBus) -> None:
    bus.register_event_handler(BookingCreated, log_booking_created)
    bus.register_event_handler(BookingConfirmed, log_booking_status_change)
    bus.register_event_handler(BookingCompleted, log_booking_status_change)
    bus.register_event_handler(BookingCancelled, log_booking_cancelled)
    bus.register_event_handler(HotelPaymentCollected, log_hotel_payment_collected)
    bus.register_event_handler(OwnerPayoutRecorded, log_owner_payout)
