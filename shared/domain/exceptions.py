"""
Reservation Error Taxonomy

Every rejection raised by the reservation engine derives from
ReservationError and carries:
- status_code: HTTP-style status used by the API layer
- reason: stable machine-readable code
- message: human-readable explanation

Families:
- ValidationError: malformed, missing or out-of-range input (400)
- NotFoundError: referenced id absent or owned by another tenant (404/400)
- ConflictError: capacity conflicts resolved by retrying with other
  parameters (409)
- StateError: well-formed request that is illegal for the current status (400)
"""

from typing import Any, Dict, Optional


class ReservationError(Exception):
    """Base class for all reservation engine errors"""

    status_code = 400
    reason = 'reservation_error'

    def __init__(
        self,
        message: str,
        *,
        reason: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if reason is not None:
            self.reason = reason
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Serializable error payload"""
        payload = {'reason': self.reason, 'message': self.message}
        if self.details:
            payload['details'] = self.details
        return payload

    def __repr__(self):
        return f"{self.__class__.__name__}(reason={self.reason!r}, message={self.message!r})"


class ValidationError(ReservationError):
    """Malformed, missing or out-of-range input, detected before any write"""

    status_code = 400
    reason = 'validation_error'


class NotFoundError(ReservationError):
    """
    Referenced entity does not exist for the tenant

    404 when the entity is the target of the request, 400 when it is
    referenced from the request payload.
    """

    status_code = 404
    reason = 'not_found'

    @classmethod
    def reference(cls, field_name: str) -> 'NotFoundError':
        """Error for an id referenced from a request payload"""
        return cls(
            f"{field_name} not found for this business.",
            reason=f"{field_name}_not_found",
            status_code=400,
        )


class ConflictError(ReservationError):
    """The request conflicts with committed reservations"""

    status_code = 409
    reason = 'conflict'


class InsufficientAvailability(ConflictError):
    """Not enough units of a variant are free for the requested window"""

    reason = 'insufficient_availability'


class InstructorDoubleBooked(ConflictError):
    """Instructor already has an active booking overlapping the window"""

    reason = 'instructor_double_booked'


class LessonFull(ConflictError):
    """Lesson capacity would be exceeded"""

    reason = 'lesson_full'


class StateError(ReservationError):
    """Transition is not legal for the entity's current status"""

    status_code = 400
    reason = 'invalid_state'
