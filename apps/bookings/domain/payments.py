"""
Payment Split Engine

Pure money arithmetic for split (partial) payments:
- PaymentSettings / CancellationPolicy: per-property configuration,
  validated when constructed
- compute_split(): online deposit vs. balance collected at the property
- compute_refund(): maximum refund allowed by the cancellation policy
- compute_owner_payout(): what the property owner is owed after checkout

No I/O happens here; settings and amounts are passed in by the caller.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple
import logging

from shared.domain.base import ValueObject
from shared.domain.clock import Clock, system_clock
from shared.domain.dates import days_between
from shared.domain.value_objects import CENTS, SUPPORTED_CURRENCIES, to_decimal
from apps.bookings.domain.entities import Booking, BookingStatus, HotelPaymentStatus, OwnerPayoutStatus
from apps.bookings.domain.errors import FieldError, InvalidPercentageError, ValidationError

logger = logging.getLogger(__name__)

HUNDRED = Decimal('100')

# Online share is rounded to whole currency units
SPLIT_QUANTUM = Decimal('1')

HOTEL_PAYMENT_METHODS = ('cash', 'card', 'upi')
OWNER_PAYOUT_SCHEDULES = ('after_checkout',)

REFUND_EXCEEDS_MAXIMUM = 'Requested refund {requested:.2f} exceeds maximum refund of {maximum:.2f} allowed by the cancellation policy'
REFUND_EXCEEDS_ORIGINAL = 'Refund amount cannot exceed original booking amount'
REFUND_NEGATIVE = 'Refund amount cannot be negative'


def _percent_errors(name: str, value: Decimal) -> List[FieldError]:
    if not Decimal('0') <= value <= HUNDRED:
        return [FieldError(name, 'Must be between 0 and 100')]
    return []


@dataclass(frozen=True)
class CancellationPolicy(ValueObject):
    """
    Refund staircase keyed by days before check-in

    - days >= full_refund_days      -> 100 %
    - days >= partial_refund_days   -> partial_refund_percent
    - days >= no_refund_days        -> late_refund_percent
    - otherwise                     -> 0 %

    Thresholds and percentages must both be non-increasing so the refund
    never grows as check-in gets closer.
    """
    full_refund_days: int = 7
    partial_refund_days: int = 3
    partial_refund_percent: Decimal = Decimal('50')
    late_refund_percent: Decimal = Decimal('25')
    no_refund_days: int = 1

    def __post_init__(self):
        object.__setattr__(self, 'partial_refund_percent', to_decimal(self.partial_refund_percent))
        object.__setattr__(self, 'late_refund_percent', to_decimal(self.late_refund_percent))

        errors = []
        if not self.full_refund_days >= self.partial_refund_days >= self.no_refund_days >= 0:
            errors.append(FieldError(
                'cancellation_policy',
                'Expected full_refund_days >= partial_refund_days >= no_refund_days >= 0'
            ))
        errors += _percent_errors('cancellation_policy.partial_refund_percent', self.partial_refund_percent)
        errors += _percent_errors('cancellation_policy.late_refund_percent', self.late_refund_percent)
        if self.late_refund_percent > self.partial_refund_percent:
            errors.append(FieldError(
                'cancellation_policy.late_refund_percent',
                'Cannot be greater than partial_refund_percent'
            ))
        if errors:
            raise ValidationError(errors)

    def tier_for(self, days_until_check_in: int) -> Tuple[str, Decimal]:
        """(tier name, refund percent) for the given notice period"""
        if days_until_check_in >= self.full_refund_days:
            return 'full', HUNDRED
        if days_until_check_in >= self.partial_refund_days:
            return 'partial', self.partial_refund_percent
        if days_until_check_in >= self.no_refund_days:
            return 'late', self.late_refund_percent
        return 'none', Decimal('0')

    def refund_percent_for(self, days_until_check_in: int) -> Decimal:
        return self.tier_for(days_until_check_in)[1]


DEFAULT_CANCELLATION_POLICY = CancellationPolicy()


@dataclass(frozen=True)
class PaymentSettings(ValueObject):
    """
    Partial payment configuration of a property

    Invariant: 0 <= min <= default <= max <= 100.
    """
    partial_payment_enabled: bool = False
    min_partial_payment_percent: Decimal = Decimal('40')
    max_partial_payment_percent: Decimal = Decimal('100')
    default_partial_payment_percent: Decimal = Decimal('50')
    cancellation_policy: CancellationPolicy = DEFAULT_CANCELLATION_POLICY
    hotel_payment_methods: Tuple[str, ...] = HOTEL_PAYMENT_METHODS
    platform_commission_percent: Decimal = Decimal('15')
    payment_gateway_charges: Decimal = Decimal('2.5')
    owner_payout_schedule: str = 'after_checkout'
    owner_payout_min_amount: Decimal = Decimal('1000')
    currency: str = 'INR'

    def __post_init__(self):
        for name in ('min_partial_payment_percent', 'max_partial_payment_percent',
                     'default_partial_payment_percent', 'platform_commission_percent',
                     'payment_gateway_charges', 'owner_payout_min_amount'):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        object.__setattr__(self, 'hotel_payment_methods', tuple(self.hotel_payment_methods))

        errors = []
        for name in ('min_partial_payment_percent', 'max_partial_payment_percent',
                     'default_partial_payment_percent', 'platform_commission_percent',
                     'payment_gateway_charges'):
            errors += _percent_errors(name, getattr(self, name))
        if not (self.min_partial_payment_percent
                <= self.default_partial_payment_percent
                <= self.max_partial_payment_percent):
            errors.append(FieldError(
                'default_partial_payment_percent',
                'Expected min <= default <= max partial payment percent'
            ))
        unknown = set(self.hotel_payment_methods) - set(HOTEL_PAYMENT_METHODS)
        if unknown:
            errors.append(FieldError(
                'hotel_payment_methods', f"Unsupported methods: {', '.join(sorted(unknown))}"
            ))
        if self.owner_payout_schedule not in OWNER_PAYOUT_SCHEDULES:
            errors.append(FieldError(
                'owner_payout_schedule', f"Unsupported schedule: {self.owner_payout_schedule}"
            ))
        if self.owner_payout_min_amount < 0:
            errors.append(FieldError('owner_payout_min_amount', 'Cannot be negative'))
        if self.currency not in SUPPORTED_CURRENCIES:
            errors.append(FieldError('currency', f"Unsupported currency: {self.currency}"))
        if errors:
            raise ValidationError(errors)


@dataclass(frozen=True)
class PaymentSplit:
    is_partial_payment: bool
    online_amount: Decimal
    hotel_amount: Decimal
    percent: Decimal


@dataclass(frozen=True)
class RefundAssessment:
    valid: bool
    max_refund: Decimal
    days_until_check_in: int
    refund_percent: Decimal
    tier: str
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class OwnerPayout:
    gross_amount: Decimal
    commission: Decimal
    gateway_charges: Decimal
    net_amount: Decimal
    eligible: bool
    reason: str = ''


class PaymentSplitEngine:
    """
    Split and refund calculations

    Usage:
        engine = PaymentSplitEngine()
        split = engine.compute_split(Decimal('10000'), settings, percent=50)
        refund = engine.compute_refund(split.online_amount, requested, check_in)
    """

    def __init__(self, clock: Clock = system_clock,
                 default_policy: CancellationPolicy = DEFAULT_CANCELLATION_POLICY):
        self.clock = clock
        self.default_policy = default_policy

    def compute_split(self, total_amount, settings: PaymentSettings, percent=None) -> PaymentSplit:
        """
        Split ``total_amount`` into online and at-property parts

        The hotel part is derived by subtraction so both parts always add
        up to the total exactly.

        Raises:
            ValidationError: non-positive total
            InvalidPercentageError: requested percent outside the property's bounds
        """
        total = to_decimal(total_amount)
        if total <= 0:
            raise ValidationError.single('total_amount', 'Total amount must be positive')

        if not settings.partial_payment_enabled:
            if percent is not None:
                logger.debug("Partial payment disabled, ignoring requested percent %s", percent)
            return PaymentSplit(
                is_partial_payment=False,
                online_amount=total,
                hotel_amount=Decimal('0'),
                percent=HUNDRED,
            )

        p = settings.default_partial_payment_percent if percent is None else to_decimal(percent)
        if not settings.min_partial_payment_percent <= p <= settings.max_partial_payment_percent:
            raise InvalidPercentageError.single(
                'partial_payment_percent',
                f"Partial payment percent {p} must be between "
                f"{settings.min_partial_payment_percent} and {settings.max_partial_payment_percent}"
            )

        online = (total * p / HUNDRED).quantize(SPLIT_QUANTUM, rounding=ROUND_HALF_UP)
        # Rounding a fractional total up must never push the deposit past it
        online = min(online, total)
        return PaymentSplit(
            is_partial_payment=p < HUNDRED,
            online_amount=online,
            hotel_amount=total - online,
            percent=p,
        )

    def compute_refund(self, original_amount, requested_refund, check_in_date,
                       cancellation_date=None,
                       policy: Optional[CancellationPolicy] = None) -> RefundAssessment:
        """
        Check a refund request against the cancellation policy

        Every violated rule is reported, not only the first one.
        """
        original = to_decimal(original_amount)
        requested = to_decimal(requested_refund)
        if original < 0:
            raise ValidationError.single('original_amount', 'Original amount cannot be negative')

        policy = policy or self.default_policy
        cancelled_on = cancellation_date if cancellation_date is not None else self.clock.now()
        days = days_between(check_in_date, cancelled_on)
        tier, percent = policy.tier_for(days)

        max_refund = (original * percent / HUNDRED).quantize(CENTS, rounding=ROUND_HALF_UP)
        max_refund = min(max_refund, original)

        errors = []
        if requested > max_refund:
            errors.append(REFUND_EXCEEDS_MAXIMUM.format(requested=requested, maximum=max_refund))
        if requested > original:
            errors.append(REFUND_EXCEEDS_ORIGINAL)
        if requested < 0:
            errors.append(REFUND_NEGATIVE)

        return RefundAssessment(
            valid=not errors,
            max_refund=max_refund,
            days_until_check_in=days,
            refund_percent=percent,
            tier=tier,
            errors=errors,
        )

    def compute_owner_payout(self, booking: Booking, settings: PaymentSettings) -> OwnerPayout:
        """
        Owner's share of a booking

        Gross is what the guest actually paid minus any refund. The
        platform commission applies to gross, gateway charges to the
        online part only.
        """
        collected = booking.amount_collected.amount
        refunded = booking.refund_amount.amount if booking.refund_amount else Decimal('0')
        gross = max(collected - refunded, Decimal('0'))

        commission = (gross * settings.platform_commission_percent / HUNDRED).quantize(
            CENTS, rounding=ROUND_HALF_UP
        )
        gateway_charges = (
            booking.online_payment_amount.amount * settings.payment_gateway_charges / HUNDRED
        ).quantize(CENTS, rounding=ROUND_HALF_UP)
        net = max(gross - commission - gateway_charges, Decimal('0'))

        reason = ''
        if booking.owner_payout_status == OwnerPayoutStatus.PAID:
            reason = 'Owner payout already recorded'
        elif booking.status != BookingStatus.COMPLETED:
            reason = f"Payout is scheduled {settings.owner_payout_schedule.replace('_', ' ')}"
        elif booking.is_partial_payment and booking.hotel_payment_status != HotelPaymentStatus.COLLECTED:
            reason = 'Hotel payment has not been collected yet'
        elif net < settings.owner_payout_min_amount:
            reason = f"Net payout {net:.2f} is below the minimum of {settings.owner_payout_min_amount:.2f}"

        return OwnerPayout(
            gross_amount=gross,
            commission=commission,
            gateway_charges=gateway_charges,
            net_amount=net,
            eligible=not reason,
            reason=reason,
        )
