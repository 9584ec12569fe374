"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- CreateBookingCommand: Check availability, split the payment, store a PENDING booking
- ConfirmBookingCommand: Confirm a booking after the online payment succeeded
- CancelBookingCommand: Cancel a booking, refunding within the cancellation policy
- CompleteBookingCommand: Complete a booking (check out)
- CollectHotelPaymentCommand: Record the at-property balance as collected
- SettleOwnerPayoutCommand: Pay the property owner for a completed booking
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import logging
import secrets

from shared.application.message_bus import MessageBus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.clock import Clock, system_clock
from shared.domain.value_objects import DateRange, Money
from apps.bookings.domain.availability import AvailabilityChecker, AvailabilityResult
from apps.bookings.domain.entities import Booking
from apps.bookings.domain.errors import BookingDomainError, FieldError, ValidationError
from apps.bookings.domain.payments import OwnerPayout, PaymentSplitEngine, RefundAssessment
from apps.bookings.domain.repositories import BookingRepository, PaymentSettingsRepository
from apps.bookings.domain.validation import (
    BookingRequest,
    BookingRules,
    check_business_rules,
    validate_booking_request,
)

logger = logging.getLogger(__name__)


class BookingConflictError(BookingDomainError):
    """Not enough rooms left for the requested stay"""

    def __init__(self, result: AvailabilityResult):
        self.result = result
        super().__init__(result.message)


class RefundPolicyError(BookingDomainError):
    """Requested refund breaks the cancellation policy"""

    def __init__(self, assessment: RefundAssessment):
        self.assessment = assessment
        super().__init__("; ".join(assessment.errors))


class PayoutNotAllowedError(BookingDomainError):
    """Booking is not (yet) eligible for an owner payout"""

    def __init__(self, payout: OwnerPayout):
        self.payout = payout
        super().__init__(payout.reason)


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    request: BookingRequest
    currency: Optional[str] = None


@dataclass
class ConfirmBookingCommand:
    booking_id: str


@dataclass
class CancelBookingCommand:
    """
    Command to cancel a booking

    ``refund_amount`` defaults to the maximum the policy allows.
    """
    booking_id: str
    reason: str
    refund_amount: Optional[Decimal] = None


@dataclass
class CompleteBookingCommand:
    booking_id: str


@dataclass
class CollectHotelPaymentCommand:
    booking_id: str
    collected_by: str
    method: str


@dataclass
class SettleOwnerPayoutCommand:
    booking_id: str
    reference: str


# ===== Command Handlers =====

class BookingCommandHandler:
    """Dependencies shared by every booking use case"""

    def __init__(self, bookings: BookingRepository, payment_settings: PaymentSettingsRepository,
                 clock: Clock = system_clock, engine: Optional[PaymentSplitEngine] = None,
                 bus: Optional[MessageBus] = None):
        self.bookings = bookings
        self.payment_settings = payment_settings
        self.clock = clock
        self.engine = engine or PaymentSplitEngine(clock=clock)
        self.bus = bus

    def _unit_of_work(self) -> DjangoUnitOfWork:
        return DjangoUnitOfWork(bus=self.bus)


class CreateBookingHandler(BookingCommandHandler):
    """
    Handler for CreateBooking command

    Strategy:
    1. Validate the request and business rules (no database access)
    2. Start a transaction and lock the property row (SELECT FOR UPDATE)
    3. Check availability against live bookings and room capacity
    4. Compute the payment split from the property's settings
    5. Create and save the Booking aggregate
    6. Publish BookingCreated after commit

    Every writer of the same property queues on the property row lock, so
    the availability seen in step 3 still holds when step 5 inserts.
    """

    def __init__(self, *args, rules: Optional[BookingRules] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.rules = rules or BookingRules()

    def handle(self, command: CreateBookingCommand) -> Booking:
        request = command.request
        today = self.clock.today()

        validate_booking_request(request, self.rules, today)
        report = check_business_rules(request, self.rules, today)
        if not report.valid:
            raise ValidationError([FieldError('booking', message) for message in report.errors])

        logger.info(
            f"Creating booking for property {request.property_id}, "
            f"dates {request.date_from} - {request.date_to}, rooms {request.rooms}"
        )

        with self._unit_of_work() as uow:
            self.bookings.lock_property(request.property_id)
            settings = self.payment_settings.get_payment_settings(request.property_id)

            result = AvailabilityChecker(self.bookings, clock=self.clock).check(
                request.property_id, request.date_from, request.date_to, request.rooms
            )
            if not result.available:
                raise BookingConflictError(result)

            split = self.engine.compute_split(
                request.total_amount, settings, request.partial_payment_percent
            )

            now = self.clock.now()
            booking = Booking.create(
                booking_code=self._generate_booking_code(),
                property_id=str(request.property_id),
                dates=DateRange(request.date_from, request.date_to),
                rooms=request.rooms,
                guests=request.guests,
                total_amount=Money(request.total_amount, command.currency or settings.currency),
                split=split,
                children=request.children,
                guest_name=(request.guest_name or '').strip(),
                guest_email=request.guest_email or '',
                special_requests=request.special_requests or '',
                created_at=now,
                updated_at=now,
            )

            uow.collect_events(booking)
            self.bookings.save(booking)

        logger.info(
            f"Booking created successfully: {booking.booking_code} (ID: {booking.id}), "
            f"online {booking.online_payment_amount}, at property {booking.hotel_payment_amount}"
        )
        return booking

    @staticmethod
    def _generate_booking_code() -> str:
        return secrets.token_hex(4).upper()


class ConfirmBookingHandler(BookingCommandHandler):

    def handle(self, command: ConfirmBookingCommand) -> Booking:
        logger.info(f"Confirming booking {command.booking_id}")

        with self._unit_of_work() as uow:
            booking = self.bookings.get(command.booking_id)
            booking.confirm(self.clock.now())

            uow.collect_events(booking)
            self.bookings.save(booking)

        logger.info(f"Booking {booking.booking_code} confirmed successfully")
        return booking


class CancelBookingHandler(BookingCommandHandler):
    """
    Handler for cancelling a booking

    The refundable base is what the guest has actually paid: the online
    deposit once the booking was confirmed, plus the at-property balance
    once it was collected. An unconfirmed booking refunds nothing.
    """

    def handle(self, command: CancelBookingCommand) -> Booking:
        logger.info(f"Cancelling booking {command.booking_id}, reason: {command.reason}")

        with self._unit_of_work() as uow:
            booking = self.bookings.get(command.booking_id)
            settings = self.payment_settings.get_payment_settings(booking.property_id)
            now = self.clock.now()

            paid = booking.amount_collected.amount
            policy = settings.cancellation_policy
            assessment = self.engine.compute_refund(
                paid, Decimal('0'), booking.dates.start_date, cancellation_date=now, policy=policy
            )
            requested = assessment.max_refund if command.refund_amount is None else command.refund_amount
            if command.refund_amount is not None:
                assessment = self.engine.compute_refund(
                    paid, requested, booking.dates.start_date, cancellation_date=now, policy=policy
                )
            if not assessment.valid:
                logger.warning(
                    f"Refund of {requested} rejected for booking {booking.booking_code}: "
                    f"{'; '.join(assessment.errors)}"
                )
                raise RefundPolicyError(assessment)

            booking.cancel(
                command.reason,
                now,
                refund_amount=Money(requested, booking.total_amount.currency),
                refund_reason=(
                    f"{assessment.tier} refund tier, {assessment.refund_percent}% of paid amount "
                    f"({assessment.days_until_check_in} days before check-in)"
                ),
            )

            uow.collect_events(booking)
            self.bookings.save(booking)

        if booking.requires_manual_approval:
            logger.warning(f"Booking {booking.booking_code} cancelled on check-in day, needs manager approval")
        logger.info(f"Booking {booking.booking_code} cancelled, refund {booking.refund_amount}")
        return booking


class CompleteBookingHandler(BookingCommandHandler):

    def handle(self, command: CompleteBookingCommand) -> Booking:
        logger.info(f"Completing booking {command.booking_id}")

        with self._unit_of_work() as uow:
            booking = self.bookings.get(command.booking_id)
            booking.complete(self.clock.now())

            uow.collect_events(booking)
            self.bookings.save(booking)

        logger.info(f"Booking {booking.booking_code} completed successfully")
        return booking


class CollectHotelPaymentHandler(BookingCommandHandler):

    def handle(self, command: CollectHotelPaymentCommand) -> Booking:
        logger.info(
            f"Collecting hotel payment for booking {command.booking_id} "
            f"via {command.method} by {command.collected_by}"
        )

        with self._unit_of_work() as uow:
            booking = self.bookings.get(command.booking_id)
            settings = self.payment_settings.get_payment_settings(booking.property_id)
            if command.method not in settings.hotel_payment_methods:
                raise ValidationError.single(
                    'method',
                    f"Payment method {command.method} is not accepted at this property "
                    f"(accepted: {', '.join(settings.hotel_payment_methods)})"
                )

            booking.collect_hotel_payment(command.collected_by, command.method, self.clock.now())

            uow.collect_events(booking)
            self.bookings.save(booking)

        logger.info(f"Hotel payment {booking.hotel_payment_amount} collected for {booking.booking_code}")
        return booking


class SettleOwnerPayoutHandler(BookingCommandHandler):

    def handle(self, command: SettleOwnerPayoutCommand) -> OwnerPayout:
        logger.info(f"Settling owner payout for booking {command.booking_id}")

        with self._unit_of_work() as uow:
            booking = self.bookings.get(command.booking_id)
            settings = self.payment_settings.get_payment_settings(booking.property_id)

            payout = self.engine.compute_owner_payout(booking, settings)
            if not payout.eligible:
                raise PayoutNotAllowedError(payout)

            booking.record_owner_payout(
                Money(payout.net_amount, booking.total_amount.currency),
                command.reference,
                self.clock.now(),
            )

            uow.collect_events(booking)
            self.bookings.save(booking)

        logger.info(f"Owner payout {payout.net_amount} recorded for booking {booking.booking_code}")
        return payout
