"""Admin registrations for the equipment catalogue."""

from __future__ import annotations

from django.contrib import admin

from .models import Equipment, EquipmentCategory, EquipmentVariant


@admin.register(EquipmentCategory)
class EquipmentCategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "business", "track_sizes", "created_at")
    list_filter = ("business", "track_sizes")
    search_fields = ("name",)


@admin.register(EquipmentVariant)
class EquipmentVariantAdmin(admin.ModelAdmin):
    list_display = ("label", "category", "business", "total_quantity", "low_stock_threshold", "is_active")
    list_filter = ("business", "category", "is_active")
    search_fields = ("label", "category__name")


@admin.register(Equipment)
class EquipmentAdmin(admin.ModelAdmin):
    list_display = ("name", "business", "category", "size", "status")
    list_filter = ("business", "status")
    search_fields = ("name", "serial_number")
