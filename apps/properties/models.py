"""Property models.

A property is the unit of inventory: it sells up to ``total_rooms`` rooms
per night and carries the partial payment configuration applied to its
bookings.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.text import slugify  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.domain.payments import (
    HOTEL_PAYMENT_METHODS,
    CancellationPolicy,
    PaymentSettings,
)

PERCENT_VALIDATORS = [MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))]


def default_hotel_payment_methods() -> list[str]:
    return list(HOTEL_PAYMENT_METHODS)


def default_currency() -> str:
    return getattr(settings, "DEFAULT_CURRENCY", "INR")


class Property(models.Model):
    """Hotel or guest house listed on the platform."""

    class Status(models.TextChoices):
        DRAFT = "draft", _("Draft")
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")

    class PayoutSchedule(models.TextChoices):
        AFTER_CHECKOUT = "after_checkout", _("After checkout")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner_id = models.CharField(max_length=64, blank=True, help_text=_("Opaque owner identifier."))
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    total_rooms = models.PositiveSmallIntegerField(
        default=1,
        help_text=_("Rooms sellable per night; capacity for availability checks."),
    )
    currency = models.CharField(max_length=3, default=default_currency)

    # Partial payment settings
    partial_payment_enabled = models.BooleanField(default=False)
    min_partial_payment_percent = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("40"), validators=PERCENT_VALIDATORS
    )
    max_partial_payment_percent = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("100"), validators=PERCENT_VALIDATORS
    )
    default_partial_payment_percent = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("50"), validators=PERCENT_VALIDATORS
    )
    hotel_payment_methods = models.JSONField(default=default_hotel_payment_methods)
    platform_commission_percent = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("15"), validators=PERCENT_VALIDATORS
    )
    payment_gateway_charges = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("2.5"), validators=PERCENT_VALIDATORS
    )
    owner_payout_schedule = models.CharField(
        max_length=20, choices=PayoutSchedule.choices, default=PayoutSchedule.AFTER_CHECKOUT
    )
    owner_payout_min_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("1000"))

    # Cancellation policy for partially paid bookings
    full_refund_days = models.PositiveSmallIntegerField(default=7)
    partial_refund_days = models.PositiveSmallIntegerField(default=3)
    partial_refund_percent = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("50"), validators=PERCENT_VALIDATORS
    )
    late_refund_percent = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("25"), validators=PERCENT_VALIDATORS
    )
    no_refund_days = models.PositiveSmallIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Property")
        verbose_name_plural = _("Properties")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"]),
            models.Index(fields=["partial_payment_enabled"]),
        ]

    def __str__(self) -> str:
        return self.title

    def cancellation_policy(self) -> CancellationPolicy:
        return CancellationPolicy(
            full_refund_days=self.full_refund_days,
            partial_refund_days=self.partial_refund_days,
            partial_refund_percent=self.partial_refund_percent,
            late_refund_percent=self.late_refund_percent,
            no_refund_days=self.no_refund_days,
        )

    def payment_settings(self) -> PaymentSettings:
        """Validated settings value object; raises ValidationError on bad data."""
        return PaymentSettings(
            partial_payment_enabled=self.partial_payment_enabled,
            min_partial_payment_percent=self.min_partial_payment_percent,
            max_partial_payment_percent=self.max_partial_payment_percent,
            default_partial_payment_percent=self.default_partial_payment_percent,
            cancellation_policy=self.cancellation_policy(),
            hotel_payment_methods=tuple(self.hotel_payment_methods or ()),
            platform_commission_percent=self.platform_commission_percent,
            payment_gateway_charges=self.payment_gateway_charges,
            owner_payout_schedule=self.owner_payout_schedule,
            owner_payout_min_amount=self.owner_payout_min_amount,
            currency=self.currency,
        )

    def save(self, *args, **kwargs):  # type: ignore
        if not self.slug:
            base_slug = slugify(self.title)[:200] or "property"
            candidate = base_slug
            counter = 1
            while self.__class__.objects.filter(slug=candidate).exclude(pk=self.pk).exists():
                counter += 1
                candidate = f"{base_slug}-{counter}"
            self.slug = candidate
        super().save(*args, **kwargs)
