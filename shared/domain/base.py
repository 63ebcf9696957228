"""
Base Domain Classes

This module provides the foundational building blocks shared by the
reservation domains:
- ValueObject: Immutable objects compared by value
- EventRecorder: Mixin for aggregate roots (Django models) that record
  domain events to be published after a successful commit
- DomainEvent: Events that represent something that happened
"""

from abc import ABC
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import List
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


class EventRecorder:
    """
    Mixin for aggregate roots

    Aggregates are the consistency boundaries: Rental and Booking models
    record domain events while transitioning, and the unit of work collects
    them so they are published only after the transaction commits.
    """

    @property
    def _pending_events(self) -> List['DomainEvent']:
        return self.__dict__.setdefault('_recorded_events', [])

    def add_event(self, event: 'DomainEvent'):
        """Add a domain event to be published"""
        self._pending_events.append(event)

    def clear_events(self):
        """Clear all collected events (called after collecting)"""
        self._pending_events.clear()

    @property
    def events(self) -> List['DomainEvent']:
        """Get copy of collected events"""
        return list(self._pending_events)


@dataclass
class DomainEvent:
    """
    Base class for domain events

    Domain events represent something that happened in the domain.
    Every event belongs to exactly one tenant (business_id).
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=datetime.now)
    business_id: int | None = None

    def to_dict(self) -> dict:
        """Convert event to dictionary for serialization"""
        payload = {
            key: (value.isoformat() if isinstance(value, datetime) else value)
            for key, value in asdict(self).items()
        }
        payload['event_id'] = str(self.event_id)
        payload['event_type'] = self.__class__.__name__
        return payload
