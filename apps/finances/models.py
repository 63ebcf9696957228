"""Financial domain models."""

from __future__ import annotations

from decimal import Decimal

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Payment(models.Model):
    """Completed charge linked to exactly one booking or rental."""

    class Status(models.TextChoices):
        SUCCESS = "SUCCESS", _("Paid")
        REFUNDED = "REFUNDED", _("Refunded")

    class Method(models.TextChoices):
        CASH = "CASH", _("Cash")
        CARD = "CARD", _("Card")
        TRANSFER = "TRANSFER", _("Bank transfer")
        ONLINE = "ONLINE", _("Online")

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.CASCADE,
        related_name="payments",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )
    rental = models.ForeignKey(
        "rentals.Rental",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.SUCCESS)
    method = models.CharField(max_length=20, choices=Method.choices)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    paid_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payment")
        verbose_name_plural = _("Payments")
        ordering = ["-paid_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(booking__isnull=False, rental__isnull=True)
                    | models.Q(booking__isnull=True, rental__isnull=False)
                ),
                name="payment_single_target",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="payment_non_negative_amount",
            ),
        ]

    def __str__(self) -> str:
        target = f"booking {self.booking_id}" if self.booking_id else f"rental {self.rental_id}"
        return f"Payment {self.amount} {self.method} for {target}"
