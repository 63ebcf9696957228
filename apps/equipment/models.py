"""Equipment catalogue models."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.conf import reservation_setting
from shared.domain.exceptions import ConflictError, ValidationError


def default_low_stock_threshold() -> int:
    return reservation_setting("DEFAULT_LOW_STOCK_THRESHOLD")


class EquipmentCategory(models.Model):
    """Group of variants, e.g. "Softboard" or "Wetsuit"."""

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.CASCADE,
        related_name="equipment_categories",
    )
    name = models.CharField(max_length=100)
    track_sizes = models.BooleanField(
        default=False,
        help_text=_("Variants of this category are sizes (6ft, 7ft, M, L...)."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Equipment category")
        verbose_name_plural = _("Equipment categories")
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["business", "name"], name="equipment_category_unique_name"),
        ]

    def __str__(self) -> str:
        return self.name

    def delete(self, *args, **kwargs):  # type: ignore
        if self.variants.exists():
            raise ConflictError(
                "Cannot delete category with variants. Delete or reassign variants first.",
                reason="category_has_variants",
            )
        return super().delete(*args, **kwargs)


class EquipmentVariant(models.Model):
    """One fungible pool of identical units (e.g. "6ft softboard")."""

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.CASCADE,
        related_name="equipment_variants",
    )
    category = models.ForeignKey(
        EquipmentCategory,
        on_delete=models.PROTECT,
        related_name="variants",
    )
    label = models.CharField(max_length=100)
    total_quantity = models.PositiveIntegerField(default=0)
    low_stock_threshold = models.PositiveIntegerField(default=default_low_stock_threshold)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Equipment variant")
        verbose_name_plural = _("Equipment variants")
        ordering = ["category__name", "label"]
        constraints = [
            models.UniqueConstraint(fields=["category", "label"], name="equipment_variant_unique_label"),
            models.CheckConstraint(
                condition=models.Q(total_quantity__gte=0),
                name="equipment_variant_non_negative_quantity",
            ),
        ]
        indexes = [models.Index(fields=["business", "category"])]

    def __str__(self) -> str:
        return f"{self.category.name} {self.label}"

    def save(self, *args, **kwargs):  # type: ignore
        if self.category_id and self.business_id and self.category.business_id != self.business_id:
            raise ValidationError("Variant and category must belong to the same business.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):  # type: ignore
        if self.rentals.exists() or self.allocations.exists():
            raise ValidationError(
                "Cannot delete variant with rental history. Deactivate it instead.",
                reason="variant_has_history",
            )
        return super().delete(*args, **kwargs)


class Equipment(models.Model):
    """Legacy single tracked unit, rented one at a time."""

    class Status(models.TextChoices):
        AVAILABLE = "AVAILABLE", _("Available")
        RENTED = "RENTED", _("Rented")
        MAINTENANCE = "MAINTENANCE", _("Maintenance")
        RETIRED = "RETIRED", _("Retired")

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.CASCADE,
        related_name="equipment",
    )
    category = models.ForeignKey(
        EquipmentCategory,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="units",
    )
    name = models.CharField(max_length=200)
    serial_number = models.CharField(max_length=100, blank=True)
    size = models.CharField(max_length=50, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.AVAILABLE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Equipment unit")
        verbose_name_plural = _("Equipment units")
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.status})"

    def mark_rented(self) -> None:
        self.status = self.Status.RENTED
        self.save(update_fields=["status", "updated_at"])

    def mark_available(self) -> None:
        self.status = self.Status.AVAILABLE
        self.save(update_fields=["status", "updated_at"])
