"""
Unit of Work Pattern

Wraps one use case in a database transaction and hands the domain events
raised by its aggregates to the message bus only once the transaction has
committed.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
import logging

from django.db import transaction

from shared.application.message_bus import MessageBus, message_bus
from shared.domain.base import Aggregate, DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""

    @abstractmethod
    def collect_events(self, aggregate: Aggregate):
        """Take ownership of the events raised by an aggregate"""


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            bookings.lock_property(property_id)
            booking = bookings.get(booking_id)
            booking.confirm(clock.now())
            uow.collect_events(booking)
            bookings.save(booking)
        # BookingConfirmed is published after commit

    Row locks taken with ``select_for_update`` inside the block are held
    until the transaction ends, which is what makes a check followed by
    a write safe against concurrent requests.
    """

    def __init__(self, bus: Optional[MessageBus] = None):
        self.bus = bus
        self._events: List[DomainEvent] = []
        self._transaction = None

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        """Schedule publication of the collected events for after the commit"""
        logger.debug(f"Committing transaction with {len(self._events)} events")

        events = self._events.copy()
        self._events.clear()

        if events:
            transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        """Discard events; the atomic block rolls the rows back"""
        if self._events:
            logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()

    def collect_events(self, aggregate: Aggregate):
        new_events = aggregate.events
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(
                f"Collected {len(new_events)} events from "
                f"{aggregate.__class__.__name__} (ID: {aggregate.id})"
            )

    def _publish_events(self, events: List[DomainEvent]):
        bus = self.bus or message_bus
        logger.info(f"Publishing {len(events)} domain events after commit")
        bus.publish_events(events)
