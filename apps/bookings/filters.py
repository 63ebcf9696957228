"""FilterSet for booking listings."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    customer = django_filters.NumberFilter(field_name="customer_id")
    lesson = django_filters.NumberFilter(field_name="lesson_id")
    instructor = django_filters.NumberFilter(field_name="instructor_id")
    status = django_filters.CharFilter(method="filter_status")
    starts_after = django_filters.IsoDateTimeFilter(field_name="start_at", lookup_expr="gte")
    starts_before = django_filters.IsoDateTimeFilter(field_name="start_at", lookup_expr="lt")

    class Meta:
        model = Booking
        fields = ["customer", "lesson", "instructor", "status"]

    def filter_status(self, queryset, name, value):  # type: ignore
        statuses = [s.strip().upper() for s in str(value).split(",") if s.strip()]
        if not statuses:
            return queryset
        return queryset.filter(status__in=statuses)
