"""
Booking Domain Errors

Exceptions are reserved for contract violations (malformed input, illegal
state transitions). Expected outcomes such as "no rooms left" or "refund
too large" are returned as result values by the domain services.
"""

from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class FieldError:
    """A single rejected input, addressed by its field path"""
    field: str
    message: str

    def __str__(self):
        return f"{self.field}: {self.message}"


class BookingDomainError(Exception):
    """Base class for booking domain errors"""


class ValidationError(BookingDomainError):
    """
    Malformed input rejected before any computation

    Carries every violated rule, not only the first one.
    """

    def __init__(self, errors: Iterable[FieldError] | FieldError):
        if isinstance(errors, FieldError):
            errors = [errors]
        self.errors: List[FieldError] = list(errors)
        super().__init__("; ".join(str(error) for error in self.errors))

    @classmethod
    def single(cls, field: str, message: str) -> 'ValidationError':
        return cls([FieldError(field, message)])

    @property
    def fields(self) -> List[str]:
        return [error.field for error in self.errors]

    def messages_for(self, field: str) -> List[str]:
        return [error.message for error in self.errors if error.field == field]


class InvalidPercentageError(ValidationError):
    """Requested partial payment percentage lies outside the property's bounds"""


class InvalidTransitionError(BookingDomainError):
    """Booking state machine does not allow the requested transition"""


class BookingNotFoundError(BookingDomainError):
    """No booking with the given identifier"""


class PropertyNotFoundError(BookingDomainError):
    """No property with the given identifier"""
