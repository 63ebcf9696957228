"""Subscribers for rental domain events."""

import logging

from apps.rentals.domain.events import RentalCancelled, RentalCreated, RentalExtended, RentalReturned

logger = logging.getLogger(__name__)


def log_rental_created(event: RentalCreated):
    target = (
        f"variant {event.equipment_variant_id} x{event.quantity}"
        if event.equipment_variant_id is not None
        else f"unit {event.equipment_id}"
    )
    logger.info(
        f"Rental {event.rental_id} holds {target} "
        f"from {event.start_at.isoformat()} to {event.end_at.isoformat()}"
        + (f" (booking {event.booking_id})" if event.booking_id else "")
    )


def log_rental_returned(event: RentalReturned):
    logger.info(f"Rental {event.rental_id} returned at {event.returned_at.isoformat()}")


def log_rental_cancelled(event: RentalCancelled):
    logger.info(f"Rental {event.rental_id} cancelled")


def log_rental_extended(event: RentalExtended):
    logger.info(
        f"Rental {event.rental_id} end moved "
        f"{event.previous_end_at.isoformat()} -> {event.end_at.isoformat()}"
    )


EVENT_HANDLERS = {
    RentalCreated: [log_rental_created],
    RentalReturned: [log_rental_returned],
    RentalCancelled: [log_rental_cancelled],
    RentalExtended: [log_rental_extended],
}
