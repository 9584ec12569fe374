"""
Booking Domain Entities

Core business entities for the booking domain:
- Booking: Main aggregate representing a reservation
- BookingStatus: FSM states for booking lifecycle
- HotelPaymentStatus / OwnerPayoutStatus: split payment tracking
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from shared.domain.base import Aggregate
from shared.domain.dates import as_utc_date
from shared.domain.value_objects import Money, DateRange
from apps.bookings.domain.errors import InvalidTransitionError, ValidationError
from apps.bookings.domain.events import (
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingCreated,
    HotelPaymentCollected,
    OwnerPayoutRecorded,
)


class BookingStatus(str, Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING -> CONFIRMED
    - PENDING -> CANCELLED
    - CONFIRMED -> COMPLETED (guest checked out)
    - CONFIRMED -> CANCELLED
    CANCELLED and COMPLETED are terminal.
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'


class HotelPaymentStatus(str, Enum):
    PENDING = 'pending'
    COLLECTED = 'collected'


class OwnerPayoutStatus(str, Enum):
    PENDING = 'pending'
    PAID = 'paid'


# Statuses that hold room capacity
LIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

CANCELLABLE_STATUSES = LIVE_STATUSES

PAID_ONLINE_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.COMPLETED})


@dataclass(kw_only=True, eq=False)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    Key invariants:
    - check-in strictly before check-out
    - online_payment_amount + hotel_payment_amount == total_amount
    - refund never exceeds total_amount
    - hotel payment is marked collected only through collect_hotel_payment()
    """

    booking_code: str
    property_id: str
    dates: DateRange
    rooms: int
    guests: int
    children: int = 0
    guest_name: str = ''
    guest_email: str = ''
    special_requests: str = ''

    total_amount: Money
    is_partial_payment: bool = False
    partial_payment_percent: Decimal = Decimal('100')
    online_payment_amount: Optional[Money] = None
    hotel_payment_amount: Optional[Money] = None

    status: BookingStatus = BookingStatus.PENDING
    hotel_payment_status: HotelPaymentStatus = HotelPaymentStatus.PENDING
    hotel_payment_collected_at: Optional[datetime] = None
    hotel_payment_collected_by: str = ''
    hotel_payment_method: str = ''

    cancellation_reason: str = ''
    refund_amount: Optional[Money] = None
    refund_reason: str = ''
    requires_manual_approval: bool = False

    owner_payout_status: OwnerPayoutStatus = OwnerPayoutStatus.PENDING
    owner_payout_amount: Optional[Money] = None
    owner_payout_reference: str = ''
    owner_payout_paid_at: Optional[datetime] = None

    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    def __post_init__(self):
        if self.rooms < 1:
            raise ValidationError.single('rooms', 'At least 1 room is required')
        if self.guests < 1:
            raise ValidationError.single('guests', 'At least 1 guest is required')

        currency = self.total_amount.currency
        if self.online_payment_amount is None:
            self.online_payment_amount = self.total_amount
        if self.hotel_payment_amount is None:
            self.hotel_payment_amount = Money.zero(currency)
        if self.online_payment_amount + self.hotel_payment_amount != self.total_amount:
            raise ValidationError.single(
                'hotel_payment_amount',
                f"Online ({self.online_payment_amount}) and hotel ({self.hotel_payment_amount}) "
                f"amounts must add up to the total ({self.total_amount})"
            )

    @classmethod
    def create(cls, *, booking_code: str, property_id: str, dates: DateRange, rooms: int,
               guests: int, total_amount: Money, split, **details) -> 'Booking':
        """
        Create a PENDING booking from a computed payment split

        ``split`` is the PaymentSplit returned by the payment engine.
        Events: BookingCreated
        """
        currency = total_amount.currency
        booking = cls(
            booking_code=booking_code,
            property_id=property_id,
            dates=dates,
            rooms=rooms,
            guests=guests,
            total_amount=total_amount,
            is_partial_payment=split.is_partial_payment,
            partial_payment_percent=split.percent,
            online_payment_amount=Money(split.online_amount, currency),
            hotel_payment_amount=Money(split.hotel_amount, currency),
            **details,
        )
        booking.add_event(BookingCreated(
            aggregate_id=booking.id,
            booking_id=booking.id,
            property_id=property_id,
            dates=dates,
            rooms=rooms,
            total_amount=booking.total_amount,
            online_payment_amount=booking.online_payment_amount,
            hotel_payment_amount=booking.hotel_payment_amount,
            is_partial_payment=booking.is_partial_payment,
        ))
        return booking

    def _require_status(self, allowed, action: str):
        if self.status not in allowed:
            raise InvalidTransitionError(
                f"Cannot {action} booking {self.booking_code} with status {self.status.value}"
            )

    def confirm(self, confirmed_at: datetime):
        """PENDING -> CONFIRMED"""
        self._require_status({BookingStatus.PENDING}, 'confirm')

        self.status = BookingStatus.CONFIRMED
        self.confirmed_at = confirmed_at
        self.updated_at = confirmed_at

        self.add_event(BookingConfirmed(
            aggregate_id=self.id,
            booking_id=self.id,
            property_id=self.property_id,
            dates=self.dates
        ))

    def complete(self, completed_at: datetime):
        """CONFIRMED -> COMPLETED (guest checked out)"""
        self._require_status({BookingStatus.CONFIRMED}, 'complete')

        self.status = BookingStatus.COMPLETED
        self.completed_at = completed_at
        self.updated_at = completed_at

        self.add_event(BookingCompleted(
            aggregate_id=self.id,
            booking_id=self.id,
            property_id=self.property_id
        ))

    def cancel(self, reason: str, cancelled_at: datetime,
               refund_amount: Optional[Money] = None, refund_reason: str = '') -> bool:
        """
        Cancel booking (PENDING|CONFIRMED -> CANCELLED)

        The refund must already have been checked against the cancellation
        policy. Returns True when the cancellation needs manager approval
        (a confirmed booking cancelled on or after its check-in day).
        Events: BookingCancelled
        """
        from apps.bookings.domain.validation import check_cancellation

        self._require_status(CANCELLABLE_STATUSES, 'cancel')

        report = check_cancellation(self.status, self.dates.start_date, reason, as_utc_date(cancelled_at))
        if not report.valid:
            raise ValidationError.single('cancellation_reason', report.errors[0])

        refund_amount = refund_amount or Money.zero(self.total_amount.currency)
        if not refund_amount <= self.total_amount:
            raise ValidationError.single('refund_amount', 'Refund amount cannot exceed original booking amount')

        old_status = self.status
        self.status = BookingStatus.CANCELLED
        self.cancellation_reason = reason.strip()
        self.refund_amount = refund_amount
        self.refund_reason = refund_reason
        self.requires_manual_approval = bool(report.warnings)
        self.cancelled_at = cancelled_at
        self.updated_at = cancelled_at

        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            booking_id=self.id,
            property_id=self.property_id,
            reason=self.cancellation_reason,
            refund_amount=refund_amount,
            old_status=old_status.value,
            requires_manual_approval=self.requires_manual_approval
        ))
        return self.requires_manual_approval

    def collect_hotel_payment(self, collected_by: str, method: str, collected_at: datetime):
        """
        Record that the at-property balance was collected

        Events: HotelPaymentCollected
        """
        if self.status == BookingStatus.CANCELLED:
            raise InvalidTransitionError(
                f"Cannot collect hotel payment for cancelled booking {self.booking_code}"
            )
        if not self.is_partial_payment:
            raise InvalidTransitionError(
                f"Booking {self.booking_code} was paid in full online, nothing to collect at the property"
            )
        if self.hotel_payment_status == HotelPaymentStatus.COLLECTED:
            raise InvalidTransitionError(
                f"Hotel payment for booking {self.booking_code} was already collected"
            )
        if not (collected_by or '').strip():
            raise ValidationError.single('collected_by', 'Collector identity is required')

        self.hotel_payment_status = HotelPaymentStatus.COLLECTED
        self.hotel_payment_collected_at = collected_at
        self.hotel_payment_collected_by = collected_by
        self.hotel_payment_method = method
        self.updated_at = collected_at

        self.add_event(HotelPaymentCollected(
            aggregate_id=self.id,
            booking_id=self.id,
            property_id=self.property_id,
            amount=self.hotel_payment_amount,
            method=method,
            collected_by=collected_by
        ))

    def record_owner_payout(self, amount: Money, reference: str, paid_at: datetime):
        """
        Mark the owner payout for a completed booking as paid

        Events: OwnerPayoutRecorded
        """
        self._require_status({BookingStatus.COMPLETED}, 'pay out')
        if self.owner_payout_status == OwnerPayoutStatus.PAID:
            raise InvalidTransitionError(
                f"Owner payout for booking {self.booking_code} was already recorded"
            )

        self.owner_payout_status = OwnerPayoutStatus.PAID
        self.owner_payout_amount = amount
        self.owner_payout_reference = reference
        self.owner_payout_paid_at = paid_at
        self.updated_at = paid_at

        self.add_event(OwnerPayoutRecorded(
            aggregate_id=self.id,
            booking_id=self.id,
            property_id=self.property_id,
            amount=amount,
            reference=reference
        ))

    @property
    def online_payment_received(self) -> bool:
        """A booking is only confirmed once its online payment succeeded"""
        return self.confirmed_at is not None or self.status in PAID_ONLINE_STATUSES

    @property
    def amount_collected(self) -> Money:
        """What the guest has actually paid so far"""
        collected = Money.zero(self.total_amount.currency)
        if self.online_payment_received:
            collected = collected + self.online_payment_amount
        if self.hotel_payment_status == HotelPaymentStatus.COLLECTED:
            collected = collected + self.hotel_payment_amount
        return collected

    @property
    def blocks_inventory(self) -> bool:
        return self.status in LIVE_STATUSES

    @property
    def nights(self) -> int:
        return len(self.dates)

    def __str__(self):
        return f"Booking {self.booking_code} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, booking_code={self.booking_code}, "
            f"status={self.status.value}, dates={self.dates})"
        )
