"""Properties app package.

A property is the unit of room inventory and carries the partial payment
settings and cancellation policy applied to its bookings.
"""
