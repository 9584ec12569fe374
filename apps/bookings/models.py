"""Booking persistence models.

Rows mirror the ``Booking`` aggregate of ``apps.bookings.domain``; all
state changes go through the aggregate and are written back by
``apps.bookings.repositories.DjangoBookingRepository``.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.domain.entities import BookingStatus, HotelPaymentStatus, OwnerPayoutStatus


def _choices(enum) -> list[tuple[str, str]]:
    return [(member.value, member.value.replace("_", " ").capitalize()) for member in enum]


class Booking(models.Model):
    """Reservation of one or more rooms of a property."""

    LIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    booking_code = models.CharField(max_length=12, unique=True, editable=False)
    guest_name = models.CharField(max_length=100, blank=True)
    guest_email = models.EmailField(max_length=255, blank=True)
    special_requests = models.TextField(blank=True)

    date_from = models.DateField()
    date_to = models.DateField()
    rooms = models.PositiveSmallIntegerField(default=1)
    guests = models.PositiveSmallIntegerField(default=1)
    children = models.PositiveSmallIntegerField(default=0)

    status = models.CharField(max_length=20, choices=_choices(BookingStatus), default=BookingStatus.PENDING.value)
    currency = models.CharField(max_length=3, default="INR")
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    is_partial_payment = models.BooleanField(default=False)
    partial_payment_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("100"))
    online_payment_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    hotel_payment_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    hotel_payment_status = models.CharField(
        max_length=20,
        choices=_choices(HotelPaymentStatus),
        default=HotelPaymentStatus.PENDING.value,
    )
    hotel_payment_collected_at = models.DateTimeField(null=True, blank=True)
    hotel_payment_collected_by = models.CharField(max_length=64, blank=True)
    hotel_payment_method = models.CharField(max_length=20, blank=True)

    cancellation_reason = models.CharField(max_length=500, blank=True)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    refund_reason = models.CharField(max_length=500, blank=True)
    requires_manual_approval = models.BooleanField(default=False)

    owner_payout_status = models.CharField(
        max_length=20,
        choices=_choices(OwnerPayoutStatus),
        default=OwnerPayoutStatus.PENDING.value,
    )
    owner_payout_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    owner_payout_reference = models.CharField(max_length=64, blank=True)
    owner_payout_paid_at = models.DateTimeField(null=True, blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(date_to__gt=models.F("date_from")),
                name="booking_valid_dates",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    online_payment_amount__gte=0,
                    hotel_payment_amount__gte=0,
                ),
                name="booking_non_negative_split",
            ),
        ]
        indexes = [
            models.Index(fields=["property", "date_from", "date_to"]),
            models.Index(fields=["status"]),
            models.Index(fields=["property", "hotel_payment_status"]),
            models.Index(fields=["owner_payout_status"]),
            models.Index(fields=["hotel_payment_collected_by"]),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_code} for {self.property_id}"
