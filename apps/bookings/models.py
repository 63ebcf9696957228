"""Booking models."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.base import EventRecorder

from .domain.events import (
    BookingCancelled,
    BookingCheckedIn,
    BookingCompleted,
    BookingCreated,
    BookingMarkedNoShow,
    BookingUpdated,
)
from .domain.state_machine import BLOCKING_STATUSES, BookingStateMachine, BookingStatus


class Booking(EventRecorder, models.Model):
    """Lesson or plain booking for ``[start_at, end_at)``."""

    Status = BookingStatus
    BLOCKING_STATUSES = tuple(s.value for s in BLOCKING_STATUSES)

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    customer = models.ForeignKey(
        "businesses.Customer",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    lesson = models.ForeignKey(
        "businesses.Lesson",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bookings",
    )
    instructor = models.ForeignKey(
        "businesses.Instructor",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bookings",
    )
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    participants = models.PositiveIntegerField(default=1)
    status = models.CharField(
        max_length=20,
        choices=[(s.value, s.label) for s in BookingStatus],
        default=BookingStatus.BOOKED.value,
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-start_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_at__gt=models.F("start_at")),
                name="booking_window_ordered",
            ),
            models.CheckConstraint(
                condition=models.Q(participants__gte=1),
                name="booking_positive_participants",
            ),
        ]
        indexes = [
            models.Index(fields=["business", "status", "start_at"]),
            models.Index(fields=["instructor", "start_at", "end_at"]),
            models.Index(fields=["lesson", "start_at", "end_at"]),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.pk} {self.customer} ({self.status})"

    @property
    def state(self) -> BookingStateMachine:
        return BookingStateMachine(self.status)

    def record_created(self, allocations: dict | None = None) -> None:
        self.add_event(
            BookingCreated(
                business_id=self.business_id,
                booking_id=self.pk,
                customer_id=self.customer_id,
                lesson_id=self.lesson_id,
                instructor_id=self.instructor_id,
                participants=self.participants,
                start_at=self.start_at,
                end_at=self.end_at,
                allocations=dict(allocations or {}),
            )
        )

    def record_updated(self, changes) -> None:  # type: ignore
        self.add_event(BookingUpdated(business_id=self.business_id, booking_id=self.pk, changes=list(changes)))

    def check_in(self, rentals) -> None:  # type: ignore
        self.state.ensure_transition(BookingStatus.CHECKED_IN)
        self._move_to(BookingStatus.CHECKED_IN)
        self.add_event(
            BookingCheckedIn(
                business_id=self.business_id,
                booking_id=self.pk,
                rental_ids=[rental.pk for rental in rentals],
            )
        )

    def complete(self) -> None:
        self.state.ensure_transition(BookingStatus.COMPLETED)
        self._move_to(BookingStatus.COMPLETED)
        self.add_event(BookingCompleted(business_id=self.business_id, booking_id=self.pk))

    def cancel(self) -> None:
        self.state.ensure_transition(BookingStatus.CANCELLED)
        self._move_to(BookingStatus.CANCELLED)
        self.add_event(BookingCancelled(business_id=self.business_id, booking_id=self.pk))

    def mark_no_show(self) -> None:
        self.state.ensure_transition(BookingStatus.NO_SHOW)
        self._move_to(BookingStatus.NO_SHOW)
        self.add_event(BookingMarkedNoShow(business_id=self.business_id, booking_id=self.pk))

    def _move_to(self, status: BookingStatus) -> None:
        self.status = status.value
        self.save(update_fields=["status", "updated_at"])


class BookingEquipmentAllocation(models.Model):
    """
    Equipment reserved for a booking, not yet handed out.

    Counts against the variant's capacity while the booking is BOOKED or
    CHECKED_IN and ``rental`` is empty. Allocation-based check-in turns
    each allocation into a rental and links it here.
    """

    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="allocations")
    equipment_variant = models.ForeignKey(
        "equipment.EquipmentVariant",
        on_delete=models.PROTECT,
        related_name="allocations",
    )
    quantity = models.PositiveIntegerField()
    rental = models.OneToOneField(
        "rentals.Rental",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="allocation",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Booking equipment allocation")
        verbose_name_plural = _("Booking equipment allocations")
        ordering = ["booking_id", "equipment_variant_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["booking", "equipment_variant"],
                name="booking_allocation_unique_variant",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="booking_allocation_positive_quantity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.equipment_variant} x{self.quantity} for booking {self.booking_id}"
