"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Money, DateRange


@dataclass
class BookingCreated(DomainEvent):
    """
    Event: A new booking was created (status PENDING)

    Carries the payment split so the gateway knows how much to collect
    online and the property how much to expect at check-in.
    """
    booking_id: str
    property_id: str
    dates: DateRange
    rooms: int
    total_amount: Money
    online_payment_amount: Money
    hotel_payment_amount: Money
    is_partial_payment: bool


@dataclass
class BookingConfirmed(DomainEvent):
    """Event: Booking confirmed (PENDING -> CONFIRMED)"""
    booking_id: str
    property_id: str
    dates: DateRange


@dataclass
class BookingCompleted(DomainEvent):
    """
    Event: Guest has checked out (CONFIRMED -> COMPLETED)

    Triggers the owner payout calculation.
    """
    booking_id: str
    property_id: str


@dataclass
class BookingCancelled(DomainEvent):
    """
    Event: Booking was cancelled

    The payment gateway executes ``refund_amount``; cancellations flagged
    with ``requires_manual_approval`` go to a manager first.
    """
    booking_id: str
    property_id: str
    reason: str
    refund_amount: Money
    old_status: str
    requires_manual_approval: bool = False


@dataclass
class HotelPaymentCollected(DomainEvent):
    """Event: At-property balance of a split payment was collected"""
    booking_id: str
    property_id: str
    amount: Money
    method: str
    collected_by: str


@dataclass
class OwnerPayoutRecorded(DomainEvent):
    """Event: Property owner was paid out for a completed booking"""
    booking_id: str
    property_id: str
    amount: Money
    reference: str
