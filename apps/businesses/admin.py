"""Admin registrations for businesses and their directories."""

from __future__ import annotations

from django.contrib import admin

from .models import Business, Customer, Instructor, Lesson


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "timezone", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("full_name", "business", "email", "phone", "is_archived")
    list_filter = ("business", "is_archived")
    search_fields = ("full_name", "email", "phone")


@admin.register(Instructor)
class InstructorAdmin(admin.ModelAdmin):
    list_display = ("full_name", "business", "is_active")
    list_filter = ("business", "is_active")


@admin.register(Lesson)
class LessonAdmin(admin.ModelAdmin):
    list_display = ("title", "business", "capacity", "duration_minutes", "price", "instructor")
    list_filter = ("business",)
    search_fields = ("title",)
