"""Admin registration for rentals (read-mostly; transitions go through the API)."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Rental


@admin.register(Rental)
class RentalAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "business",
        "customer",
        "equipment_variant",
        "equipment",
        "quantity",
        "status",
        "start_at",
        "end_at",
        "price_total",
    )
    list_filter = ("status", "business")
    search_fields = ("customer__full_name", "equipment_variant__label", "equipment__name")
    readonly_fields = ("status", "returned_at", "booking", "created_at", "updated_at")
    date_hierarchy = "start_at"

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
