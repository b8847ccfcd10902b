"""
Unit of Work Pattern

Wraps one database transaction and makes sure that domain events are
handed to the message bus only after that transaction has committed.
"""

from abc import ABC, abstractmethod
from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

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
        pass

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""
        pass

    @abstractmethod
    def add_event(self, event: DomainEvent):
        """Record an event to publish once the work is committed"""
        pass


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            moved = ledger.transition(reference, PaymentState.SUCCESS)
            remaining = inventory.decrement_if_available(listing_id)
            if remaining is None:
                raise CapacityError(...)   # both writes are rolled back
            uow.add_event(BookingSettled(...))
        # BookingSettled is published here, after COMMIT

    Nested units of work become savepoints; their events are still only
    published when the outermost transaction commits, because publishing
    goes through ``transaction.on_commit``.
    """

    def __init__(self, using: str | None = None):
        self._events: List[DomainEvent] = []
        self._atomic = None
        self._using = using

    def __enter__(self):
        """Start database transaction"""
        self._atomic = transaction.atomic(using=self._using)
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._atomic:
                self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        """
        Schedule publication of the collected events

        The actual COMMIT is issued by ``transaction.atomic`` when the
        context exits; ``on_commit`` fires the callback only if it succeeds.
        """
        events = self._events.copy()
        self._events.clear()

        logger.debug(f"Committing unit of work with {len(events)} events")
        if events:
            transaction.on_commit(lambda: self._publish_events(events), using=self._using)

    def rollback(self):
        """Discard events of a failed unit of work"""
        if self._events:
            logger.warning(f"Rolling back unit of work, discarding {len(self._events)} events")
        self._events.clear()

    def add_event(self, event: DomainEvent):
        self._events.append(event)

    def _publish_events(self, events: List[DomainEvent]):
        """Hand committed events to the message bus"""
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            message_bus.publish_events(events)
        except Exception as e:
            # The data is already committed; publication is best effort.
            logger.error(f"Error publishing events: {e}", exc_info=True)
