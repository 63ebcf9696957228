"""Rental models."""

from __future__ import annotations

from datetime import datetime, timedelta

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.equipment.repositories import EquipmentRepository
from shared.domain.base import EventRecorder

from .domain.events import RentalCancelled, RentalCreated, RentalExtended, RentalReturned
from .domain.state_machine import BLOCKING_STATUSES, RentalStateMachine, RentalStatus


class Rental(EventRecorder, models.Model):
    """
    A customer holding equipment for ``[start_at, end_at)``.

    Either ``equipment_variant`` + ``quantity`` (pooled inventory) or a
    single legacy ``equipment`` unit is set. Rows are never deleted;
    status moves forward only through the methods below.
    """

    Status = RentalStatus
    BLOCKING_STATUSES = tuple(s.value for s in BLOCKING_STATUSES)

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.CASCADE,
        related_name="rentals",
    )
    customer = models.ForeignKey(
        "businesses.Customer",
        on_delete=models.PROTECT,
        related_name="rentals",
    )
    equipment_variant = models.ForeignKey(
        "equipment.EquipmentVariant",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="rentals",
    )
    quantity = models.PositiveIntegerField(default=1)
    equipment = models.ForeignKey(
        "equipment.Equipment",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="rentals",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="rentals",
        help_text=_("Set when the rental was created by a booking check-in."),
    )
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=[(s.value, s.label) for s in RentalStatus],
        default=RentalStatus.ACTIVE.value,
    )
    price_total = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    returned_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Rental")
        verbose_name_plural = _("Rentals")
        ordering = ["-start_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_at__gt=models.F("start_at")),
                name="rental_window_ordered",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="rental_positive_quantity",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(equipment_variant__isnull=False, equipment__isnull=True)
                    | models.Q(equipment_variant__isnull=True, equipment__isnull=False)
                ),
                name="rental_single_target",
            ),
        ]
        indexes = [
            models.Index(fields=["business", "equipment_variant", "status"]),
            models.Index(fields=["business", "start_at", "end_at"]),
        ]

    def __str__(self) -> str:
        target = self.equipment_variant or self.equipment
        return f"Rental #{self.pk} {target} x{self.quantity} ({self.status})"

    @property
    def state(self) -> RentalStateMachine:
        return RentalStateMachine(self.status)

    def record_created(self) -> None:
        self.add_event(
            RentalCreated(
                business_id=self.business_id,
                rental_id=self.pk,
                customer_id=self.customer_id,
                equipment_variant_id=self.equipment_variant_id,
                equipment_id=self.equipment_id,
                quantity=self.quantity,
                start_at=self.start_at,
                end_at=self.end_at,
                booking_id=self.booking_id,
                price_total=self.price_total,
            )
        )

    def mark_returned(self, now: datetime | None = None) -> None:
        now = now or timezone.now()
        self.state.ensure_can_return()
        self.status = RentalStatus.RETURNED.value
        self.returned_at = now
        # keep start < end for rentals returned before they began
        self.end_at = max(now, self.start_at + timedelta(microseconds=1))
        self.save(update_fields=["status", "returned_at", "end_at", "updated_at"])
        self._release_unit()
        self.add_event(RentalReturned(business_id=self.business_id, rental_id=self.pk, returned_at=now))

    def mark_cancelled(self, now: datetime | None = None) -> None:
        self.state.ensure_can_cancel(self.start_at, now or timezone.now())
        self.status = RentalStatus.CANCELLED.value
        self.save(update_fields=["status", "updated_at"])
        self._release_unit()
        self.add_event(RentalCancelled(business_id=self.business_id, rental_id=self.pk))

    def change_end(self, end_at: datetime) -> None:
        self.state.ensure_can_edit_end(self.start_at, end_at)
        previous = self.end_at
        self.end_at = end_at
        self.save(update_fields=["end_at", "updated_at"])
        self.add_event(
            RentalExtended(
                business_id=self.business_id,
                rental_id=self.pk,
                previous_end_at=previous,
                end_at=end_at,
            )
        )

    def _release_unit(self) -> None:
        if self.equipment_id is not None:
            self.equipment = EquipmentRepository().lock(self.business_id, self.equipment_id)
            self.equipment.mark_available()
