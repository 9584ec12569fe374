"""
Calendar date helpers.

All booking arithmetic happens on calendar dates in UTC. Datetimes are
converted to their UTC date before any comparison; naive datetimes are
taken to already be in UTC.
"""

from datetime import date, datetime, timezone


def as_utc_date(value) -> date:
    """Return the UTC calendar date of a date or datetime."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def days_between(later, earlier) -> int:
    """
    Whole calendar days from ``earlier`` to ``later``.

    Negative when ``later`` is actually before ``earlier``.
    """
    return (as_utc_date(later) - as_utc_date(earlier)).days
