"""
Booking Validation Rules

Input validation for booking requests and the softer business rules that
are checked on top of it. Structural problems raise ``ValidationError``
with every violated field; business rules come back as a report so the
caller can decide whether a warning blocks the operation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from datetime import date
from decimal import Decimal
from typing import List, Mapping, Optional

from shared.domain.dates import as_utc_date, days_between
from shared.domain.value_objects import to_decimal
from apps.bookings.domain.entities import BookingStatus
from apps.bookings.domain.errors import FieldError, ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

SAME_DAY_CANCELLATION_WARNING = "Same-day cancellations require manager approval"


@dataclass(frozen=True)
class BookingRules:
    """Configurable limits applied to every booking request"""
    min_nights: int = 1
    max_nights: int = 30
    max_guests_per_room: int = 4
    max_guests: int = 20
    max_children: int = 10
    max_rooms: int = 10
    max_total_amount: Decimal = Decimal("1000000")
    max_rate_per_night: Decimal = Decimal("50000")
    max_advance_days: int = 365

    def __post_init__(self):
        object.__setattr__(self, "max_total_amount", to_decimal(self.max_total_amount))
        object.__setattr__(self, "max_rate_per_night", to_decimal(self.max_rate_per_night))
        if not 1 <= self.min_nights <= self.max_nights:
            raise ValueError("min_nights must be at least 1 and not above max_nights")
        if self.max_guests_per_room < 1:
            raise ValueError("max_guests_per_room must be positive")

    @classmethod
    def from_mapping(cls, values: Optional[Mapping] = None) -> "BookingRules":
        """Build rules from a settings dict, ignoring unknown keys"""
        if not values:
            return cls()
        known = {f.name for f in fields(cls)}
        overrides = {key.lower(): value for key, value in values.items() if key.lower() in known}
        return replace(cls(), **overrides)


@dataclass
class BookingRequest:
    """Plain data describing a booking a guest wants to make"""
    property_id: str
    date_from: date
    date_to: date
    rooms: int
    guests: int
    total_amount: Decimal
    children: int = 0
    guest_name: str = ""
    guest_email: str = ""
    special_requests: str = ""
    partial_payment_percent: Optional[Decimal] = None

    def __post_init__(self):
        self.date_from = as_utc_date(self.date_from)
        self.date_to = as_utc_date(self.date_to)
        self.total_amount = to_decimal(self.total_amount)

    @property
    def nights(self) -> int:
        return days_between(self.date_to, self.date_from)

    @property
    def total_guests(self) -> int:
        return self.guests + (self.children or 0)


@dataclass
class BusinessRuleReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def date_range_errors(date_from: date, date_to: date, today: date) -> List[FieldError]:
    """Ordering and not-in-the-past checks shared by every date range input"""
    errors = []
    if date_to <= date_from:
        errors.append(FieldError("date_to", "Check-out date must be after check-in date"))
    if date_from < today:
        errors.append(FieldError("date_from", "Check-in date cannot be in the past"))
    return errors


def validate_booking_request(request: BookingRequest, rules: BookingRules, today: date) -> None:
    """
    Validate a booking request

    Raises:
        ValidationError: listing every violated rule
    """
    errors: List[FieldError] = []

    name = (request.guest_name or "").strip()
    if name and not 2 <= len(name) <= 100:
        errors.append(FieldError("guest_name", "Guest name must be between 2 and 100 characters"))
    if request.guest_email and not EMAIL_RE.match(request.guest_email):
        errors.append(FieldError("guest_email", "Invalid email format"))

    errors.extend(date_range_errors(request.date_from, request.date_to, today))
    if request.date_to > request.date_from:
        if request.nights > rules.max_nights:
            errors.append(FieldError("date_to", f"Maximum stay duration is {rules.max_nights} nights"))
        if request.nights < rules.min_nights:
            errors.append(FieldError("date_to", f"Minimum stay duration is {rules.min_nights} night(s)"))

    if not 1 <= request.rooms <= rules.max_rooms:
        errors.append(FieldError("rooms", f"Room count must be between 1 and {rules.max_rooms}"))
    if not 1 <= request.guests <= rules.max_guests:
        errors.append(FieldError("guests", f"Guest count must be between 1 and {rules.max_guests}"))
    if not 0 <= request.children <= rules.max_children:
        errors.append(FieldError("children", f"Children count must be between 0 and {rules.max_children}"))
    if request.rooms >= 1 and request.total_guests > request.rooms * rules.max_guests_per_room:
        errors.append(FieldError("guests", "Too many guests for the number of rooms selected"))

    if request.total_amount <= 0:
        errors.append(FieldError("total_amount", "Total amount must be positive"))
    elif request.total_amount > rules.max_total_amount:
        errors.append(FieldError(
            "total_amount", f"Maximum booking amount is {rules.max_total_amount:,.0f}"
        ))

    if errors:
        raise ValidationError(errors)


def check_business_rules(request: BookingRequest, rules: BookingRules, today: date) -> BusinessRuleReport:
    """Advance-booking horizon and average nightly rate"""
    report = BusinessRuleReport()

    if days_between(request.date_from, today) > rules.max_advance_days:
        report.errors.append(
            f"Bookings cannot be made more than {rules.max_advance_days} days in advance"
        )

    nights = request.nights
    if nights > 0:
        rate = request.total_amount / nights
        if rate > rules.max_rate_per_night:
            report.errors.append(
                f"Rate per night ({rate:.2f}) exceeds maximum allowed ({rules.max_rate_per_night:.0f})"
            )

    return report


def check_cancellation(status: BookingStatus, date_from: date, reason: str, today: date) -> BusinessRuleReport:
    """
    Rules for cancelling a booking

    A missing reason is an error. Cancelling a confirmed booking on or
    after its check-in day only produces a warning: it still goes
    through, flagged for manager approval.
    """
    report = BusinessRuleReport()
    if not (reason or "").strip():
        report.errors.append("Cancellation reason is required when cancelling bookings")
    if status == BookingStatus.CONFIRMED and as_utc_date(date_from) <= today:
        report.warnings.append(SAME_DAY_CANCELLATION_WARNING)
    return report
