"""FilterSet for rental listings."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Rental


class RentalFilterSet(django_filters.FilterSet):
    customer = django_filters.NumberFilter(field_name="customer_id")
    status = django_filters.CharFilter(method="filter_status")
    variant = django_filters.NumberFilter(field_name="equipment_variant_id")
    equipment = django_filters.NumberFilter(field_name="equipment_id")
    booking = django_filters.NumberFilter(field_name="booking_id")
    starts_after = django_filters.IsoDateTimeFilter(field_name="start_at", lookup_expr="gte")
    ends_before = django_filters.IsoDateTimeFilter(field_name="end_at", lookup_expr="lte")

    class Meta:
        model = Rental
        fields = ["customer", "status", "variant", "equipment", "booking"]

    def filter_status(self, queryset, name, value):  # type: ignore
        # CSV: ?status=ACTIVE,OVERDUE
        statuses = [s.strip().upper() for s in str(value).split(",") if s.strip()]
        if not statuses:
            return queryset
        return queryset.filter(status__in=statuses)
