"""
Availability Checker

Decides whether a property still has enough rooms for a requested stay.

Strategy:
1. Reject malformed requests (ValidationError)
2. Ask the repository for live bookings that may overlap
3. Re-filter them with the half-open overlap test
4. Compare committed rooms against the property capacity

The check itself is read-only. Callers that go on to insert a booking must
run check + insert in one transaction with the conflicting rows locked,
otherwise two requests can both see the last room as free.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional
import logging

from shared.domain.clock import Clock, system_clock
from shared.domain.dates import as_utc_date
from shared.domain.value_objects import DateRange
from apps.bookings.domain.entities import LIVE_STATUSES
from apps.bookings.domain.errors import FieldError, ValidationError
from apps.bookings.domain.repositories import BookingRecord, BookingRepository
from apps.bookings.domain.validation import date_range_errors

logger = logging.getLogger(__name__)

_LIVE_STATUS_VALUES = frozenset(status.value for status in LIVE_STATUSES)


@dataclass(frozen=True)
class Conflict:
    """A live booking holding rooms during the requested period"""
    booking_id: str
    date_from: date
    date_to: date
    rooms: int
    status: str

    @classmethod
    def from_record(cls, record: BookingRecord) -> 'Conflict':
        return cls(
            booking_id=record.booking_id,
            date_from=record.date_from,
            date_to=record.date_to,
            rooms=record.rooms,
            status=record.status,
        )


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    message: str
    conflicts: List[Conflict] = field(default_factory=list)
    available_rooms: Optional[int] = None

    @property
    def committed_rooms(self) -> int:
        return sum(conflict.rooms for conflict in self.conflicts)


def is_conflict(record: BookingRecord, property_id: str, requested: DateRange,
                exclude_booking_id: Optional[str] = None) -> bool:
    """True when the record is a live booking of the property overlapping ``requested``"""
    if exclude_booking_id is not None and str(record.booking_id) == str(exclude_booking_id):
        return False
    if str(record.property_id) != str(property_id):
        return False
    if getattr(record.status, "value", record.status) not in _LIVE_STATUS_VALUES:
        return False
    return record.dates.overlaps_with(requested)


class AvailabilityChecker:
    """
    Room capacity check for a property and date range

    Usage:
        checker = AvailabilityChecker(booking_repo)
        result = checker.check(property_id, date_from, date_to, rooms=2)
        if not result.available:
            ...  # result.conflicts explains why
    """

    def __init__(self, bookings: BookingRepository, clock: Clock = system_clock):
        self.bookings = bookings
        self.clock = clock

    def validate(self, date_from, date_to, rooms: int) -> DateRange:
        """
        Check request shape before touching the repository

        Raises:
            ValidationError: bad ordering, past check-in or non-positive rooms
        """
        date_from, date_to = as_utc_date(date_from), as_utc_date(date_to)
        errors = date_range_errors(date_from, date_to, self.clock.today())
        if not isinstance(rooms, int) or rooms < 1:
            errors.append(FieldError('rooms', 'At least 1 room is required'))
        if errors:
            raise ValidationError(errors)
        return DateRange(date_from, date_to)

    def _capacity(self, property_id: str) -> int:
        capacity = self.bookings.get_property_capacity(property_id)
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 0:
            raise ValueError(f"invalid room capacity {capacity!r}")
        return capacity

    def check(self, property_id: str, date_from, date_to, rooms: int,
              exclude_booking_id: Optional[str] = None) -> AvailabilityResult:
        requested = self.validate(date_from, date_to, rooms)

        try:
            records = self.bookings.find_conflicting(
                property_id, requested.start_date, requested.end_date, exclude_booking_id
            )
            conflicts = [
                Conflict.from_record(record) for record in records
                if is_conflict(record, property_id, requested, exclude_booking_id)
            ]
            capacity = self._capacity(property_id)
            available_rooms = capacity - sum(conflict.rooms for conflict in conflicts)
        except Exception as e:
            logger.error(
                f"Availability check failed for property {property_id} ({requested}): {e}",
                exc_info=True
            )
            return AvailabilityResult(
                available=False,
                message=f'Error checking availability: {e}',
            )

        if available_rooms < rooms:
            logger.info(
                f"Property {property_id} unavailable for {requested}: "
                f"{available_rooms} free, {rooms} requested, {len(conflicts)} conflicts"
            )
            return AvailabilityResult(
                available=False,
                conflicts=conflicts,
                available_rooms=available_rooms,
                message=f'Only {max(available_rooms, 0)} rooms available for selected dates',
            )

        if not conflicts:
            message = 'Dates are available'
        else:
            message = f'{available_rooms} rooms available ({rooms} requested)'
        return AvailabilityResult(
            available=True,
            conflicts=conflicts,
            available_rooms=available_rooms,
            message=message,
        )
