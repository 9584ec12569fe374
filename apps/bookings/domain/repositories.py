"""
Repository contracts used by the booking domain services.

The domain never talks to the database directly. Callers inject an
implementation of these interfaces (the Django ORM one lives in
``apps.bookings.repositories``; tests use in-memory fakes).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from shared.domain.value_objects import DateRange


@dataclass(frozen=True)
class BookingRecord:
    """Read-only snapshot of a stored booking, as seen by availability checks"""
    booking_id: str
    property_id: str
    date_from: date
    date_to: date
    rooms: int
    status: str

    @property
    def dates(self) -> DateRange:
        return DateRange(self.date_from, self.date_to)


class BookingRepository(ABC):

    @abstractmethod
    def find_conflicting(self, property_id: str, date_from: date, date_to: date,
                         exclude_id: Optional[str] = None) -> List[BookingRecord]:
        """Live bookings of the property overlapping [date_from, date_to)"""

    @abstractmethod
    def get_property_capacity(self, property_id: str) -> int:
        """Total number of rooms the property can sell per night"""

    @abstractmethod
    def get(self, booking_id: str):
        """Booking aggregate; raises BookingNotFoundError"""

    @abstractmethod
    def save(self, booking) -> None:
        """Insert or update the aggregate"""

    def lock_property(self, property_id: str) -> None:
        """
        Serialise writers of one property until the transaction ends

        Stores without row locks leave this as a no-op.
        """


class PaymentSettingsRepository(ABC):

    @abstractmethod
    def get_payment_settings(self, property_id: str):
        """PaymentSettings configured for the property"""
