"""Small builders for test data shared by the app test suites."""

from __future__ import annotations

from decimal import Decimal
from itertools import count

from apps.businesses.models import Business, Customer, Instructor, Lesson
from apps.equipment.models import EquipmentCategory, EquipmentVariant

_seq = count(1)


def make_business(name: str | None = None) -> Business:
    return Business.objects.create(name=name or f"Surf School {next(_seq)}")


def make_customer(business: Business, full_name: str = "Kai Nui") -> Customer:
    return Customer.objects.create(business=business, full_name=full_name, email="kai@example.com")


def make_instructor(business: Business, full_name: str = "Mere Tane") -> Instructor:
    return Instructor.objects.create(business=business, full_name=full_name)


def make_lesson(business: Business, **fields) -> Lesson:  # type: ignore
    fields.setdefault("title", "Beginner group lesson")
    fields.setdefault("duration_minutes", 120)
    fields.setdefault("price", Decimal("65.00"))
    return Lesson.objects.create(business=business, **fields)


def make_variant(
    business: Business,
    label: str = "6ft",
    total_quantity: int = 3,
    category: EquipmentCategory | None = None,
    **fields,
) -> EquipmentVariant:  # type: ignore
    if category is None:
        category, _ = EquipmentCategory.objects.get_or_create(business=business, name="Softboard")
    fields.setdefault("low_stock_threshold", 1)
    return EquipmentVariant.objects.create(
        business=business,
        category=category,
        label=label,
        total_quantity=total_quantity,
        **fields,
    )
