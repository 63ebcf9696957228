"""Tenant-scoped access to bookings and the overlap reads they need."""

from __future__ import annotations

from typing import Dict, List

from django.db.models import Sum  # type: ignore

from shared.domain.exceptions import NotFoundError, ValidationError
from shared.domain.value_objects import TimeWindow

from .models import Booking, BookingEquipmentAllocation


class BookingRepository:
    def get(self, business, booking_id) -> Booking:  # type: ignore
        booking = (
            Booking.objects.select_related("customer", "lesson", "instructor")
            .filter(business=business, pk=booking_id)
            .first()
        )
        if booking is None:
            raise NotFoundError("Booking not found.")
        return booking

    def lock(self, business, booking_id) -> Booking:  # type: ignore
        """Row-lock the booking; call inside a unit of work."""
        booking = Booking.objects.select_for_update().filter(business=business, pk=booking_id).first()
        if booking is None:
            raise NotFoundError("Booking not found.")
        return booking

    def add(self, **fields) -> Booking:  # type: ignore
        return Booking.objects.create(**fields)

    def overlapping(self, business, window: TimeWindow, *, exclude_booking_id=None):  # type: ignore
        qs = Booking.objects.filter(
            business=business,
            status__in=Booking.BLOCKING_STATUSES,
            start_at__lt=window.end_at,
            end_at__gt=window.start_at,
        )
        if exclude_booking_id is not None:
            qs = qs.exclude(pk=exclude_booking_id)
        return qs

    def instructor_is_busy(self, business, instructor_id, window: TimeWindow, *, exclude_booking_id=None) -> bool:  # type: ignore
        return (
            self.overlapping(business, window, exclude_booking_id=exclude_booking_id)
            .filter(instructor_id=instructor_id)
            .exists()
        )

    def lesson_seats_taken(self, business, lesson_id, window: TimeWindow, *, exclude_booking_id=None) -> int:  # type: ignore
        total = (
            self.overlapping(business, window, exclude_booking_id=exclude_booking_id)
            .filter(lesson_id=lesson_id)
            .aggregate(total=Sum("participants"))["total"]
        )
        return total or 0


class AllocationRepository:
    def add_many(self, booking: Booking, requested: Dict[int, int]) -> List[BookingEquipmentAllocation]:
        return BookingEquipmentAllocation.objects.bulk_create(
            [
                BookingEquipmentAllocation(booking=booking, equipment_variant_id=variant_id, quantity=quantity)
                for variant_id, quantity in requested.items()
            ]
        )

    def open_for(self, booking: Booking) -> List[BookingEquipmentAllocation]:
        """Allocations not yet converted into rentals, in variant id order."""
        return list(
            BookingEquipmentAllocation.objects.filter(booking=booking, rental__isnull=True).order_by(
                "equipment_variant_id"
            )
        )


def normalize_allocations(raw, minimum: int = 0) -> Dict[int, int]:  # type: ignore
    """
    ``[{"equipment_variant_id": 3, "quantity": 2}, ...]`` -> ``{3: 2}``

    Variant ids must be distinct and quantities positive integers.
    """
    if raw is None:
        raw = []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("equipment_allocations must be a list.")
    requested: Dict[int, int] = {}
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("Each allocation needs equipment_variant_id and quantity.")
        try:
            variant_id = int(item.get("equipment_variant_id"))
            quantity = int(item.get("quantity", 1))
        except (TypeError, ValueError):
            raise ValidationError("Each allocation needs an integer equipment_variant_id and quantity.")
        if quantity < 1:
            raise ValidationError("Allocation quantity must be a positive integer.")
        if variant_id in requested:
            raise ValidationError(
                f"Variant {variant_id} is listed more than once.",
                reason="duplicate_allocation",
            )
        requested[variant_id] = quantity
    if len(requested) < minimum:
        raise ValidationError(
            f"Lesson bookings need at least {minimum} equipment allocations.",
            reason="too_few_allocations",
        )
    return dict(sorted(requested.items()))
