"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, BookingEquipmentAllocation


class BookingEquipmentAllocationInline(admin.TabularInline):
    model = BookingEquipmentAllocation
    extra = 0
    fields = ("equipment_variant", "quantity", "rental")
    readonly_fields = fields
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "business",
        "customer",
        "lesson",
        "instructor",
        "participants",
        "status",
        "start_at",
        "end_at",
    )
    list_filter = ("status", "business", "lesson")
    search_fields = ("customer__full_name", "lesson__title", "instructor__full_name")
    readonly_fields = ("status", "created_at", "updated_at")
    date_hierarchy = "start_at"
    inlines = [BookingEquipmentAllocationInline]

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
