"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """
    Event: A new booking was created (status BOOKED)

    ``allocations`` maps variant id to reserved quantity.
    """
    booking_id: int
    customer_id: int
    lesson_id: int | None
    instructor_id: int | None
    participants: int
    start_at: datetime
    end_at: datetime
    allocations: Dict[int, int] = field(default_factory=dict)


@dataclass(kw_only=True)
class BookingCheckedIn(DomainEvent):
    """
    Event: BOOKED -> CHECKED_IN

    ``rental_ids`` are the rentals materialized for the rest of the
    booking window (empty when no equipment was handed out).
    """
    booking_id: int
    rental_ids: List[int] = field(default_factory=list)


@dataclass(kw_only=True)
class BookingCompleted(DomainEvent):
    """Event: CHECKED_IN -> COMPLETED"""
    booking_id: int


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    """Event: BOOKED -> CANCELLED; seats, instructor and allocations freed"""
    booking_id: int


@dataclass(kw_only=True)
class BookingMarkedNoShow(DomainEvent):
    """Event: BOOKED -> NO_SHOW; seats, instructor and allocations freed"""
    booking_id: int


@dataclass(kw_only=True)
class BookingUpdated(DomainEvent):
    """Event: editable fields changed; ``changes`` lists the field names"""
    booking_id: int
    changes: List[str] = field(default_factory=list)
