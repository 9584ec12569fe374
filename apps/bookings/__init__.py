"""Bookings app package.

This app encapsulates the booking domain: availability checks against
room capacity, the online/at-property payment split, refunds under the
cancellation policy and owner payouts. Check and insert run in one
database transaction with the property row locked, so two requests can
never both take the last room.
"""
