"""
Unit of Work

One reservation attempt = one database transaction. Availability
checks and every capacity-consuming write run inside the same
``transaction.atomic()`` block, and domain events recorded by the
aggregates are handed to the message bus only once that block has
committed.
"""

from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent
from shared.domain.exceptions import ReservationError

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:
    """
    Transaction boundary for command handlers

    Usage:
        with DjangoUnitOfWork() as uow:
            variants = variant_repo.lock_many(business, ids)
            ensure_capacity(business, variants, requested, window)
            rental = rental_repo.add(...)
            uow.collect_events(rental)
        # events go out after COMMIT

    An exception leaving the block rolls back every write and drops the
    collected events; the exception itself propagates unchanged.
    """

    def __init__(self, using: str | None = None):
        self._using = using
        self._atomic = None
        self._events: List[DomainEvent] = []

    def __enter__(self):
        self._atomic = transaction.atomic(using=self._using)
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self._schedule_publish()
            else:
                self._discard(exc_val)
        finally:
            self._atomic.__exit__(exc_type, exc_val, exc_tb)
            self._atomic = None
        return False

    def collect_events(self, *aggregates):
        """Take the pending events off each aggregate"""
        for aggregate in aggregates:
            pending = aggregate.events
            if not pending:
                continue
            self._events.extend(pending)
            aggregate.clear_events()
            logger.debug(f"Collected {len(pending)} event(s) from {type(aggregate).__name__} #{aggregate.pk}")

    def _schedule_publish(self):
        events, self._events = self._events, []
        if not events:
            return
        logger.debug(f"{len(events)} event(s) queued until commit")
        transaction.on_commit(lambda: self._publish(events), using=self._using, robust=True)

    def _discard(self, exc):
        dropped = len(self._events)
        self._events = []
        cause = exc.reason if isinstance(exc, ReservationError) else type(exc).__name__
        logger.warning(f"Transaction rolled back ({cause}), {dropped} event(s) dropped")

    @staticmethod
    def _publish(events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        message_bus.publish_events(events)
