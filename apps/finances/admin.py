"""Admin registration for payments."""

from __future__ import annotations

from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "business", "amount", "method", "status", "booking", "rental", "paid_at")
    list_filter = ("business", "method", "status")
    readonly_fields = ("created_at",)
