"""Tenant-scoped repositories for the equipment catalogue."""

from __future__ import annotations

from typing import Dict, Iterable, List

from shared.domain.exceptions import NotFoundError, ValidationError

from .models import Equipment, EquipmentCategory, EquipmentVariant


def normalize_ids(values: Iterable, field_name: str = "equipment_variant_id") -> List[int]:
    """Distinct integer ids in ascending order (the lock order)."""
    ids = set()
    for value in values:
        try:
            ids.add(int(value))
        except (TypeError, ValueError):
            raise ValidationError(f"{field_name} must be an integer, got {value!r}.")
    return sorted(ids)


class EquipmentVariantRepository:
    def get(self, business, variant_id) -> EquipmentVariant:  # type: ignore
        variant = (
            EquipmentVariant.objects.select_related("category")
            .filter(business=business, pk=variant_id)
            .first()
        )
        if variant is None:
            raise NotFoundError("Variant not found.")
        return variant

    def get_many(self, business, variant_ids: Iterable) -> Dict[int, EquipmentVariant]:  # type: ignore
        ids = normalize_ids(variant_ids)
        variants = {
            v.pk: v
            for v in EquipmentVariant.objects.select_related("category").filter(business=business, pk__in=ids)
        }
        if len(variants) != len(ids):
            raise NotFoundError.reference("equipment_variant_id")
        return variants

    def lock_many(self, business, variant_ids: Iterable) -> Dict[int, EquipmentVariant]:  # type: ignore
        """
        Lock the variant rows (SELECT ... FOR UPDATE) in ascending id order

        Must run inside a unit of work. Concurrent reservations against
        the same variant queue here, so their availability reads and
        writes never interleave.
        """
        ids = normalize_ids(variant_ids)
        variants = {
            v.pk: v
            for v in EquipmentVariant.objects.select_for_update()
            .filter(business=business, pk__in=ids)
            .order_by("pk")
        }
        if len(variants) != len(ids):
            raise NotFoundError.reference("equipment_variant_id")
        return variants

    def active_for_category(self, category: EquipmentCategory, *, lock: bool = False) -> List[EquipmentVariant]:
        qs = EquipmentVariant.objects.filter(
            business_id=category.business_id,
            category=category,
            is_active=True,
        ).order_by("pk")
        if lock:
            qs = qs.select_for_update()
        # lock in id order, offer in label order
        return sorted(qs, key=lambda v: v.label)


class EquipmentCategoryRepository:
    def get_reference(self, business, category_id) -> EquipmentCategory:  # type: ignore
        category = EquipmentCategory.objects.filter(business=business, pk=category_id).first()
        if category is None:
            raise NotFoundError.reference("equipment_category_id")
        return category


class EquipmentRepository:
    def lock(self, business, equipment_id) -> Equipment:  # type: ignore
        unit = Equipment.objects.select_for_update().filter(business=business, pk=equipment_id).first()
        if unit is None:
            raise NotFoundError.reference("equipment_id")
        return unit
