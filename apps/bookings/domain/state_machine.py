"""
Booking Status Finite State Machine

State transitions:
- BOOKED -> CHECKED_IN (customer arrived; equipment handed out as rentals)
- BOOKED -> CANCELLED
- BOOKED -> NO_SHOW
- CHECKED_IN -> COMPLETED

Nothing transitions back to BOOKED. BOOKED and CHECKED_IN hold
lesson seats, the instructor and any equipment allocations.
"""

from datetime import datetime
from enum import Enum

from shared.domain.exceptions import StateError, ValidationError


class BookingStatus(str, Enum):
    BOOKED = 'BOOKED'
    CHECKED_IN = 'CHECKED_IN'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'
    NO_SHOW = 'NO_SHOW'

    @property
    def label(self) -> str:
        return self.value.replace('_', ' ').title()


TRANSITIONS = {
    BookingStatus.BOOKED: frozenset({
        BookingStatus.CHECKED_IN,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
    }),
    BookingStatus.CHECKED_IN: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}

BLOCKING_STATUSES = frozenset({BookingStatus.BOOKED, BookingStatus.CHECKED_IN})

# Rejection messages per target status
_REJECTIONS = {
    BookingStatus.CHECKED_IN: ('booking_not_booked', "Only booked bookings can be checked in."),
    BookingStatus.CANCELLED: ('booking_not_booked', "Only booked bookings can be cancelled."),
    BookingStatus.NO_SHOW: ('booking_not_booked', "Only booked bookings can be marked no-show."),
    BookingStatus.COMPLETED: ('booking_not_checked_in', "Only checked-in bookings can be completed."),
    BookingStatus.BOOKED: ('invalid_transition', "Cannot transition back to BOOKED."),
}


class BookingStateMachine:
    def __init__(self, status):
        self.status = BookingStatus(status)

    def can_transition(self, target) -> bool:
        return BookingStatus(target) in TRANSITIONS[self.status]

    def ensure_transition(self, target):
        target = BookingStatus(target)
        if not self.can_transition(target):
            reason, message = _REJECTIONS[target]
            raise StateError(message, reason=reason)

    def ensure_can_check_in(self, has_rentals: bool, end_at: datetime, now: datetime):
        """
        Check-in materializes rentals for ``[now, end_at)``, so it needs
        a BOOKED booking with no rentals yet and some time left.
        """
        self.ensure_transition(BookingStatus.CHECKED_IN)
        if has_rentals:
            raise StateError("Booking already has equipment checked out.", reason="already_checked_in")
        if now >= end_at:
            raise StateError("Booking has already ended.", reason="booking_ended")

    def ensure_can_reschedule(self):
        if self.status is not BookingStatus.BOOKED:
            raise StateError("Only booked bookings can be rescheduled.", reason="booking_not_booked")

    @property
    def holds_capacity(self) -> bool:
        return self.status in BLOCKING_STATUSES


def validate_participants(value, maximum: int) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"participants must be an integer between 1 and {maximum}.")
    try:
        participants = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"participants must be an integer between 1 and {maximum}.")
    if not 1 <= participants <= maximum:
        raise ValidationError(f"participants must be an integer between 1 and {maximum}.")
    return participants
