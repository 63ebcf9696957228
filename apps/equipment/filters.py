"""FilterSet definitions for the equipment catalogue."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import EquipmentVariant


class EquipmentVariantFilterSet(django_filters.FilterSet):
    category = django_filters.NumberFilter(field_name="category_id")
    is_active = django_filters.BooleanFilter(field_name="is_active")
    label = django_filters.CharFilter(field_name="label", lookup_expr="icontains")

    class Meta:
        model = EquipmentVariant
        fields = ["category", "is_active", "label"]
