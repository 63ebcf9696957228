"""Read-only, tenant-scoped lookups used by the reservation coordinator.

Each lookup either returns the row or raises ``NotFoundError`` for a
payload reference (400). ``lock=True`` takes a row lock and must be
called inside a unit of work.
"""

from __future__ import annotations

from shared.domain.exceptions import NotFoundError

from .models import Customer, Instructor, Lesson


def _get(queryset, business, pk, field_name: str, lock: bool = False):  # type: ignore
    if pk in (None, ""):
        raise NotFoundError.reference(field_name)
    qs = queryset.filter(business=business, pk=pk)
    if lock:
        qs = qs.select_for_update()
    obj = qs.first()
    if obj is None:
        raise NotFoundError.reference(field_name)
    return obj


def get_customer(business, customer_id) -> Customer:  # type: ignore
    return _get(Customer.objects.filter(is_archived=False), business, customer_id, "customer_id")


def customer_exists(business, customer_id) -> bool:  # type: ignore
    return Customer.objects.filter(business=business, pk=customer_id, is_archived=False).exists()


def get_instructor(business, instructor_id, *, lock: bool = False) -> Instructor:  # type: ignore
    return _get(Instructor.objects.filter(is_active=True), business, instructor_id, "instructor_id", lock)


def instructor_exists(business, instructor_id) -> bool:  # type: ignore
    return Instructor.objects.filter(business=business, pk=instructor_id, is_active=True).exists()


def get_lesson(business, lesson_id, *, lock: bool = False) -> Lesson:  # type: ignore
    return _get(Lesson.objects.all(), business, lesson_id, "lesson_id", lock)
