"""
Rental Status Finite State Machine

State transitions:
- ACTIVE -> RETURNED (equipment came back; window shortened to now)
- OVERDUE -> RETURNED
- ACTIVE -> CANCELLED (only before the rental has started)

ACTIVE is creation-only. OVERDUE is written by an external process and
is otherwise treated exactly like ACTIVE: both hold capacity.
"""

from datetime import datetime
from enum import Enum

from shared.domain.exceptions import StateError, ValidationError


class RentalStatus(str, Enum):
    ACTIVE = 'ACTIVE'
    OVERDUE = 'OVERDUE'
    RETURNED = 'RETURNED'
    CANCELLED = 'CANCELLED'

    @property
    def label(self) -> str:
        return self.value.title()


TRANSITIONS = {
    RentalStatus.ACTIVE: frozenset({RentalStatus.RETURNED, RentalStatus.CANCELLED}),
    RentalStatus.OVERDUE: frozenset({RentalStatus.RETURNED}),
    RentalStatus.RETURNED: frozenset(),
    RentalStatus.CANCELLED: frozenset(),
}

# Statuses whose window counts against variant capacity
BLOCKING_STATUSES = frozenset({RentalStatus.ACTIVE, RentalStatus.OVERDUE})


class RentalStateMachine:
    """Guards for every rental mutation."""

    def __init__(self, status):
        self.status = RentalStatus(status)

    def can_transition(self, target) -> bool:
        return RentalStatus(target) in TRANSITIONS[self.status]

    def ensure_transition(self, target):
        target = RentalStatus(target)
        if not self.can_transition(target):
            raise StateError(
                f"Cannot move rental from {self.status.value} to {target.value}.",
                reason=f"rental_not_{'returnable' if target is RentalStatus.RETURNED else 'cancellable'}",
            )

    def ensure_can_return(self):
        """Only active (or overdue) rentals can be returned"""
        self.ensure_transition(RentalStatus.RETURNED)

    def ensure_can_cancel(self, start_at: datetime, now: datetime):
        """Only active rentals that haven't started can be cancelled"""
        self.ensure_transition(RentalStatus.CANCELLED)
        if start_at <= now:
            raise StateError(
                "Only rentals that haven't started can be cancelled.",
                reason="rental_already_started",
            )

    def ensure_can_edit_end(self, start_at: datetime, new_end_at: datetime):
        if self.status not in BLOCKING_STATUSES:
            raise StateError("Only active rentals can be edited.", reason="rental_not_editable")
        if new_end_at <= start_at:
            raise ValidationError("end_at must be after start_at.")

    @property
    def holds_capacity(self) -> bool:
        return self.status in BLOCKING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.status]
