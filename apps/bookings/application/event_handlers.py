"""Subscribers for booking domain events."""

import logging

from apps.bookings.domain.events import (
    BookingCancelled,
    BookingCheckedIn,
    BookingCompleted,
    BookingCreated,
    BookingMarkedNoShow,
    BookingUpdated,
)

logger = logging.getLogger(__name__)


def log_booking_created(event: BookingCreated):
    logger.info(
        f"Booking {event.booking_id} created for customer {event.customer_id}: "
        f"{event.start_at.isoformat()} - {event.end_at.isoformat()}, "
        f"lesson={event.lesson_id} instructor={event.instructor_id} equipment={event.allocations}"
    )


def log_booking_checked_in(event: BookingCheckedIn):
    logger.info(f"Booking {event.booking_id} checked in, rentals {event.rental_ids}")


def log_booking_closed(event):
    logger.info(f"Booking {event.booking_id}: {type(event).__name__}")


def log_booking_updated(event: BookingUpdated):
    logger.info(f"Booking {event.booking_id} updated: {', '.join(event.changes)}")


EVENT_HANDLERS = {
    BookingCreated: [log_booking_created],
    BookingCheckedIn: [log_booking_checked_in],
    BookingCompleted: [log_booking_closed],
    BookingCancelled: [log_booking_closed],
    BookingMarkedNoShow: [log_booking_closed],
    BookingUpdated: [log_booking_updated],
}
