"""Django ORM implementations of the booking repositories."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError  # type: ignore
from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from shared.domain.value_objects import DateRange, Money
from apps.bookings.domain.entities import (
    Booking,
    BookingStatus,
    HotelPaymentStatus,
    OwnerPayoutStatus,
)
from apps.bookings.domain.errors import BookingNotFoundError, PropertyNotFoundError
from apps.bookings.domain.payments import PaymentSettings
from apps.bookings.domain.repositories import (
    BookingRecord,
    BookingRepository,
    PaymentSettingsRepository,
)
from apps.bookings.models import Booking as BookingModel
from apps.properties.models import Property

logger = logging.getLogger(__name__)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def _money(amount, currency: str) -> Optional[Money]:
    return Money(amount, currency) if amount is not None else None


class DjangoBookingRepository(BookingRepository):
    """
    Bookings stored through the Django ORM

    With ``lock=True`` every read made inside ``transaction.atomic()``
    takes row locks, so an availability check and the insert that follows
    it cannot interleave with another request for the same rooms.
    """

    def __init__(self, lock: bool = False):
        self.lock = lock

    def _queryset(self, queryset):
        return _lock_queryset_if_possible(queryset) if self.lock else queryset

    def find_conflicting(self, property_id: str, date_from: date, date_to: date,
                         exclude_id: Optional[str] = None) -> List[BookingRecord]:
        queryset = BookingModel.objects.filter(
            property_id=property_id,
            status__in=BookingModel.LIVE_STATUSES,
            date_from__lt=date_to,
            date_to__gt=date_from,
        )
        if exclude_id is not None:
            queryset = queryset.exclude(pk=exclude_id)

        return [
            BookingRecord(
                booking_id=str(row.pk),
                property_id=str(row.property_id),
                date_from=row.date_from,
                date_to=row.date_to,
                rooms=row.rooms,
                status=row.status,
            )
            for row in self._queryset(queryset.order_by("date_from"))
        ]

    def get_property_capacity(self, property_id: str) -> int:
        return Property.objects.values_list("total_rooms", flat=True).get(pk=property_id)

    def lock_property(self, property_id: str) -> None:
        try:
            locked = list(
                _lock_queryset_if_possible(Property.objects.filter(pk=property_id))
                .values_list("pk", flat=True)
            )
        except DjangoValidationError as e:
            raise PropertyNotFoundError(f"Property {property_id} not found") from e
        if not locked:
            raise PropertyNotFoundError(f"Property {property_id} not found")

    def get(self, booking_id: str) -> Booking:
        try:
            row = self._queryset(BookingModel.objects.all()).get(pk=booking_id)
        except (BookingModel.DoesNotExist, DjangoValidationError) as e:
            raise BookingNotFoundError(f"Booking {booking_id} not found") from e
        return self.to_domain(row)

    def save(self, booking: Booking) -> None:
        BookingModel.objects.update_or_create(pk=booking.id, defaults=self._row_values(booking))
        logger.debug(f"Saved booking {booking.booking_code} ({booking.status.value})")

    @staticmethod
    def to_domain(row: BookingModel) -> Booking:
        currency = row.currency
        return Booking(
            id=str(row.pk),
            created_at=row.created_at,
            updated_at=row.updated_at,
            booking_code=row.booking_code,
            property_id=str(row.property_id),
            dates=DateRange(row.date_from, row.date_to),
            rooms=row.rooms,
            guests=row.guests,
            children=row.children,
            guest_name=row.guest_name,
            guest_email=row.guest_email,
            special_requests=row.special_requests,
            total_amount=Money(row.total_amount, currency),
            is_partial_payment=row.is_partial_payment,
            partial_payment_percent=row.partial_payment_percent,
            online_payment_amount=Money(row.online_payment_amount, currency),
            hotel_payment_amount=Money(row.hotel_payment_amount, currency),
            status=BookingStatus(row.status),
            hotel_payment_status=HotelPaymentStatus(row.hotel_payment_status),
            hotel_payment_collected_at=row.hotel_payment_collected_at,
            hotel_payment_collected_by=row.hotel_payment_collected_by,
            hotel_payment_method=row.hotel_payment_method,
            cancellation_reason=row.cancellation_reason,
            refund_amount=_money(row.refund_amount, currency),
            refund_reason=row.refund_reason,
            requires_manual_approval=row.requires_manual_approval,
            owner_payout_status=OwnerPayoutStatus(row.owner_payout_status),
            owner_payout_amount=_money(row.owner_payout_amount, currency),
            owner_payout_reference=row.owner_payout_reference,
            owner_payout_paid_at=row.owner_payout_paid_at,
            confirmed_at=row.confirmed_at,
            completed_at=row.completed_at,
            cancelled_at=row.cancelled_at,
        )

    @staticmethod
    def _row_values(booking: Booking) -> dict:
        return {
            "property_id": booking.property_id,
            "booking_code": booking.booking_code,
            "guest_name": booking.guest_name,
            "guest_email": booking.guest_email,
            "special_requests": booking.special_requests,
            "date_from": booking.dates.start_date,
            "date_to": booking.dates.end_date,
            "rooms": booking.rooms,
            "guests": booking.guests,
            "children": booking.children,
            "status": booking.status.value,
            "currency": booking.total_amount.currency,
            "total_amount": booking.total_amount.amount,
            "is_partial_payment": booking.is_partial_payment,
            "partial_payment_percent": booking.partial_payment_percent,
            "online_payment_amount": booking.online_payment_amount.amount,
            "hotel_payment_amount": booking.hotel_payment_amount.amount,
            "hotel_payment_status": booking.hotel_payment_status.value,
            "hotel_payment_collected_at": booking.hotel_payment_collected_at,
            "hotel_payment_collected_by": booking.hotel_payment_collected_by,
            "hotel_payment_method": booking.hotel_payment_method,
            "cancellation_reason": booking.cancellation_reason,
            "refund_amount": booking.refund_amount.amount if booking.refund_amount else None,
            "refund_reason": booking.refund_reason,
            "requires_manual_approval": booking.requires_manual_approval,
            "owner_payout_status": booking.owner_payout_status.value,
            "owner_payout_amount": booking.owner_payout_amount.amount if booking.owner_payout_amount else None,
            "owner_payout_reference": booking.owner_payout_reference,
            "owner_payout_paid_at": booking.owner_payout_paid_at,
            "confirmed_at": booking.confirmed_at,
            "completed_at": booking.completed_at,
            "cancelled_at": booking.cancelled_at,
            "created_at": booking.created_at,
            "updated_at": booking.updated_at,
        }


class DjangoPaymentSettingsRepository(PaymentSettingsRepository):
    """Payment settings read from the Property row"""

    def get_payment_settings(self, property_id: str) -> PaymentSettings:
        try:
            property_obj = Property.objects.get(pk=property_id)
        except (Property.DoesNotExist, DjangoValidationError) as e:
            raise PropertyNotFoundError(f"Property {property_id} not found") from e
        return property_obj.payment_settings()
