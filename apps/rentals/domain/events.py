"""
Rental Domain Events

Published after the rental's transaction commits.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class RentalCreated(DomainEvent):
    """A rental now holds capacity for its window"""
    rental_id: int
    customer_id: int
    equipment_variant_id: int | None
    equipment_id: int | None
    quantity: int
    start_at: datetime
    end_at: datetime
    booking_id: int | None = None
    price_total: Decimal | None = None


@dataclass(kw_only=True)
class RentalReturned(DomainEvent):
    """Equipment came back; capacity after returned_at is free again"""
    rental_id: int
    returned_at: datetime


@dataclass(kw_only=True)
class RentalCancelled(DomainEvent):
    """Rental cancelled before it started; its whole window is free again"""
    rental_id: int


@dataclass(kw_only=True)
class RentalExtended(DomainEvent):
    """Rental end moved"""
    rental_id: int
    previous_end_at: datetime
    end_at: datetime
