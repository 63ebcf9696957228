"""Integration tests for booking API endpoints."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking, BookingEquipmentAllocation
from apps.businesses.tests.factories import (
    make_business,
    make_customer,
    make_instructor,
    make_lesson,
    make_variant,
)
from apps.equipment.models import EquipmentCategory
from apps.equipment.services import in_use
from apps.finances.models import Payment
from apps.rentals.models import Rental


class BookingAPITestCase(APITestCase):
    def setUp(self) -> None:
        self.business = make_business("Mount Surf")
        self.customer = make_customer(self.business)
        self.instructor = make_instructor(self.business)
        self.lesson = make_lesson(self.business, capacity=4, instructor=self.instructor)
        self.boards = EquipmentCategory.objects.create(business=self.business, name="Softboard")
        self.suits = EquipmentCategory.objects.create(business=self.business, name="Wetsuit")
        self.board = make_variant(self.business, label="6ft", total_quantity=3, category=self.boards)
        self.suit = make_variant(self.business, label="M", total_quantity=3, category=self.suits)
        self.client.credentials(HTTP_X_BUSINESS_ID=str(self.business.pk))
        self.list_url = reverse("booking-list")
        self.nine = (timezone.now() + timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0)

    def lesson_payload(self, start=None, participants: int = 2, boards: int = 2, **extra) -> dict:  # type: ignore
        payload = {
            "customer_id": self.customer.pk,
            "lesson_id": self.lesson.pk,
            "instructor_id": self.instructor.pk,
            "participants": participants,
            "start_at": (start or self.nine).isoformat(),
            "equipment_allocations": [
                {"equipment_variant_id": self.board.pk, "quantity": boards},
                {"equipment_variant_id": self.suit.pk, "quantity": participants},
            ],
            "payment_method": "CARD",
        }
        payload.update(extra)
        return payload

    def plain_payload(self, start, end, **extra) -> dict:  # type: ignore
        payload = {
            "customer_id": self.customer.pk,
            "start_at": start.isoformat(),
            "end_at": end.isoformat(),
            "participants": 1,
        }
        payload.update(extra)
        return payload

    def create(self, payload: dict) -> dict:
        response = self.client.post(self.list_url, payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data

    def action(self, name: str, booking_id: int, data=None):  # type: ignore
        return self.client.post(reverse(f"booking-{name}", args=[booking_id]), data or {}, format="json")


class LessonBookingTests(BookingAPITestCase):
    def test_lesson_booking_reserves_equipment_and_records_payment(self) -> None:
        booking = self.create(self.lesson_payload())

        self.assertEqual(booking["status"], "BOOKED")
        self.assertEqual(len(booking["allocations"]), 2)
        stored = Booking.objects.get(pk=booking["id"])
        self.assertEqual(stored.end_at - stored.start_at, timedelta(minutes=120))
        payment = Payment.objects.get(booking=stored)
        self.assertEqual(payment.amount, Decimal("130.00"))
        usage = in_use(self.business, [self.board.pk, self.suit.pk], stored.start_at, stored.end_at)
        self.assertEqual(usage, {self.board.pk: 2, self.suit.pk: 2})

    def test_explicit_end_overrides_lesson_duration(self) -> None:
        end = self.nine + timedelta(minutes=45)
        booking = self.create(self.lesson_payload(end_at=end.isoformat()))

        self.assertEqual(Booking.objects.get(pk=booking["id"]).end_at, end)

    def test_needs_two_allocations(self) -> None:
        payload = self.lesson_payload()
        payload["equipment_allocations"] = payload["equipment_allocations"][:1]

        response = self.client.post(self.list_url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["reason"], "too_few_allocations")

    def test_lesson_without_instructor_is_rejected(self) -> None:
        self.lesson.instructor = None
        self.lesson.save()

        response = self.client.post(self.list_url, self.lesson_payload(instructor_id=None), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["reason"], "instructor_required")

    def test_lesson_default_instructor_is_used(self) -> None:
        booking = self.create(self.lesson_payload(instructor_id=None))

        self.assertEqual(booking["instructor"], self.instructor.pk)

    def test_insufficient_equipment_rolls_everything_back(self) -> None:
        self.create(self.lesson_payload(boards=2))
        other_instructor = make_instructor(self.business, "Aroha Rangi")

        response = self.client.post(
            self.list_url,
            self.lesson_payload(boards=2, instructor_id=other_instructor.pk),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["error"]["reason"], "insufficient_availability")
        self.assertEqual(Booking.objects.count(), 1)
        self.assertEqual(BookingEquipmentAllocation.objects.count(), 2)
        self.assertEqual(Payment.objects.count(), 1)

    def test_allocations_and_rentals_share_capacity(self) -> None:
        Rental.objects.create(
            business=self.business,
            customer=self.customer,
            equipment_variant=self.board,
            quantity=2,
            start_at=self.nine + timedelta(minutes=30),
            end_at=self.nine + timedelta(hours=3),
        )

        response = self.client.post(self.list_url, self.lesson_payload(boards=2), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)

    def test_participants_bounds(self) -> None:
        response = self.client.post(self.list_url, self.lesson_payload(participants=0), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(self.list_url, self.plain_payload(
            self.nine, self.nine + timedelta(hours=1), participants=101
        ), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_references_must_belong_to_business(self) -> None:
        foreign_lesson = make_lesson(make_business("Elsewhere"))

        response = self.client.post(self.list_url, self.lesson_payload(lesson_id=foreign_lesson.pk), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["reason"], "lesson_id_not_found")


class BookingRulesTests(BookingAPITestCase):
    def test_lesson_capacity(self) -> None:
        end = self.nine + timedelta(hours=1)
        self.create(self.plain_payload(self.nine, end, lesson_id=self.lesson.pk, participants=3))

        response = self.client.post(
            self.list_url,
            self.plain_payload(self.nine + timedelta(minutes=30), end, lesson_id=self.lesson.pk, participants=2),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["error"]["reason"], "lesson_full")

    def test_instructor_double_booking_and_touching_boundary(self) -> None:
        self.create(self.plain_payload(self.nine, self.nine + timedelta(hours=1), instructor_id=self.instructor.pk))

        overlapping = self.client.post(
            self.list_url,
            self.plain_payload(
                self.nine + timedelta(minutes=30),
                self.nine + timedelta(minutes=90),
                instructor_id=self.instructor.pk,
            ),
            format="json",
        )
        self.assertEqual(overlapping.status_code, status.HTTP_409_CONFLICT, overlapping.data)
        self.assertEqual(overlapping.data["error"]["reason"], "instructor_double_booked")

        touching = self.client.post(
            self.list_url,
            self.plain_payload(
                self.nine + timedelta(hours=1),
                self.nine + timedelta(hours=2),
                instructor_id=self.instructor.pk,
            ),
            format="json",
        )
        self.assertEqual(touching.status_code, status.HTTP_201_CREATED, touching.data)

    def test_cancelled_booking_frees_the_instructor(self) -> None:
        first = self.create(self.plain_payload(self.nine, self.nine + timedelta(hours=1), instructor_id=self.instructor.pk))
        self.action("cancel", first["id"])

        self.create(self.plain_payload(self.nine, self.nine + timedelta(hours=1), instructor_id=self.instructor.pk))

    def test_created_status_must_be_booked(self) -> None:
        response = self.client.post(
            self.list_url,
            self.plain_payload(self.nine, self.nine + timedelta(hours=1), status="CANCELLED"),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["reason"], "invalid_initial_status")

    def test_bookings_cannot_be_deleted(self) -> None:
        booking = self.create(self.plain_payload(self.nine, self.nine + timedelta(hours=1)))

        response = self.client.delete(reverse("booking-detail", args=[booking["id"]]))

        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_other_tenant_booking_is_not_found(self) -> None:
        booking = self.create(self.plain_payload(self.nine, self.nine + timedelta(hours=1)))
        self.client.credentials(HTTP_X_BUSINESS_ID=str(make_business("Elsewhere").pk))

        response = self.client.get(reverse("booking-detail", args=[booking["id"]]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class BookingLifecycleTests(BookingAPITestCase):
    def running_lesson(self) -> dict:
        return self.create(self.lesson_payload(start=timezone.now() - timedelta(minutes=10)))

    def test_cancel_then_check_in_is_a_state_error(self) -> None:
        booking = self.create(self.lesson_payload())

        cancelled = self.action("cancel", booking["id"])
        self.assertEqual(cancelled.status_code, status.HTTP_200_OK, cancelled.data)
        self.assertEqual(cancelled.data["status"], "CANCELLED")
        stored = Booking.objects.get(pk=booking["id"])
        self.assertEqual(in_use(self.business, [self.board.pk], stored.start_at, stored.end_at)[self.board.pk], 0)

        check_in = self.action("check-in", booking["id"])
        self.assertEqual(check_in.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(check_in.data["error"]["reason"], "booking_not_booked")

    def test_check_in_converts_allocations_once(self) -> None:
        booking = self.running_lesson()

        first = self.action("check-in", booking["id"])
        self.assertEqual(first.status_code, status.HTTP_200_OK, first.data)
        self.assertEqual(first.data["status"], "CHECKED_IN")
        self.assertEqual(len(first.data["rentals"]), 2)
        self.assertFalse(BookingEquipmentAllocation.objects.filter(booking_id=booking["id"], rental__isnull=True).exists())

        stored = Booking.objects.get(pk=booking["id"])
        now = timezone.now()
        usage = in_use(self.business, [self.board.pk], now, stored.end_at)
        self.assertEqual(usage[self.board.pk], 2)

        second = self.action("check-in", booking["id"])
        self.assertEqual(second.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Rental.objects.filter(booking_id=booking["id"]).count(), 2)

    def test_check_in_with_category_picks_first_variant_with_room(self) -> None:
        small = make_variant(self.business, label="5ft", total_quantity=1, category=self.boards)
        now = timezone.now()
        booking = self.create(self.plain_payload(now - timedelta(minutes=10), now + timedelta(hours=1), participants=2))

        response = self.action("check-in", booking["id"], {"equipment_category_id": self.boards.pk})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        rental = Rental.objects.get(booking_id=booking["id"])
        self.assertNotEqual(rental.equipment_variant_id, small.pk)
        self.assertEqual(rental.equipment_variant_id, self.board.pk)
        self.assertEqual(rental.quantity, 2)
        self.assertEqual(rental.end_at, Booking.objects.get(pk=booking["id"]).end_at)

    def test_check_in_with_category_out_of_stock(self) -> None:
        now = timezone.now()
        booking = self.create(self.plain_payload(now - timedelta(minutes=10), now + timedelta(hours=1)))

        response = self.action("check-in", booking["id"], {"equipment_category_id": self.boards.pk, "quantity": 10})

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(Booking.objects.get(pk=booking["id"]).status, "BOOKED")
        self.assertFalse(Rental.objects.exists())

    def test_check_in_with_foreign_category(self) -> None:
        foreign = EquipmentCategory.objects.create(business=make_business("Elsewhere"), name="Softboard")
        now = timezone.now()
        booking = self.create(self.plain_payload(now - timedelta(minutes=10), now + timedelta(hours=1)))

        response = self.action("check-in", booking["id"], {"equipment_category_id": foreign.pk})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["reason"], "equipment_category_id_not_found")

    def test_check_in_after_end_is_refused(self) -> None:
        now = timezone.now()
        booking = self.create(self.plain_payload(now - timedelta(hours=2), now - timedelta(hours=1)))

        response = self.action("check-in", booking["id"])

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["reason"], "booking_ended")

    def test_complete_requires_check_in(self) -> None:
        booking = self.running_lesson()

        early = self.action("complete", booking["id"])
        self.assertEqual(early.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(early.data["error"]["reason"], "booking_not_checked_in")

        self.action("check-in", booking["id"])
        done = self.action("complete", booking["id"])
        self.assertEqual(done.status_code, status.HTTP_200_OK, done.data)
        self.assertEqual(done.data["status"], "COMPLETED")

    def test_no_show_is_terminal(self) -> None:
        booking = self.create(self.lesson_payload())

        no_show = self.action("no-show", booking["id"])
        self.assertEqual(no_show.data["status"], "NO_SHOW")

        cancel = self.action("cancel", booking["id"])
        self.assertEqual(cancel.status_code, status.HTTP_400_BAD_REQUEST)


class BookingUpdateTests(BookingAPITestCase):
    def detail(self, booking: dict) -> str:
        return reverse("booking-detail", args=[booking["id"]])

    def test_reschedule_rechecks_instructor(self) -> None:
        self.create(self.plain_payload(self.nine, self.nine + timedelta(hours=1), instructor_id=self.instructor.pk))
        later = self.create(
            self.plain_payload(
                self.nine + timedelta(hours=2), self.nine + timedelta(hours=3), instructor_id=self.instructor.pk
            )
        )

        clash = self.client.patch(
            self.detail(later),
            {
                "start_at": (self.nine + timedelta(minutes=30)).isoformat(),
                "end_at": (self.nine + timedelta(minutes=90)).isoformat(),
            },
            format="json",
        )
        self.assertEqual(clash.status_code, status.HTTP_409_CONFLICT, clash.data)

        moved = self.client.patch(
            self.detail(later), {"start_at": (self.nine + timedelta(hours=1)).isoformat()}, format="json"
        )
        self.assertEqual(moved.status_code, status.HTTP_200_OK, moved.data)

    def test_reschedule_rechecks_equipment(self) -> None:
        mine = self.create(self.lesson_payload(boards=2))
        other_instructor = make_instructor(self.business, "Aroha Rangi")
        self.create(
            self.lesson_payload(start=self.nine + timedelta(hours=3), boards=2, instructor_id=other_instructor.pk)
        )

        response = self.client.patch(
            self.detail(mine),
            {"start_at": (self.nine + timedelta(hours=2)).isoformat(), "end_at": (self.nine + timedelta(hours=4)).isoformat()},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["error"]["reason"], "insufficient_availability")

    def test_only_booked_bookings_can_be_rescheduled(self) -> None:
        booking = self.create(self.plain_payload(self.nine, self.nine + timedelta(hours=1)))
        self.action("cancel", booking["id"])

        response = self.client.patch(
            self.detail(booking), {"end_at": (self.nine + timedelta(hours=2)).isoformat()}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["reason"], "booking_not_booked")

    def test_window_must_stay_ordered(self) -> None:
        booking = self.create(self.plain_payload(self.nine, self.nine + timedelta(hours=1)))

        response = self.client.patch(
            self.detail(booking), {"end_at": (self.nine - timedelta(hours=1)).isoformat()}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_participants_respect_lesson_capacity(self) -> None:
        booking = self.create(
            self.plain_payload(self.nine, self.nine + timedelta(hours=1), lesson_id=self.lesson.pk, participants=2)
        )

        full = self.client.patch(self.detail(booking), {"participants": 5}, format="json")
        self.assertEqual(full.status_code, status.HTTP_409_CONFLICT, full.data)

        fine = self.client.patch(self.detail(booking), {"participants": 4}, format="json")
        self.assertEqual(fine.status_code, status.HTTP_200_OK, fine.data)
        self.assertEqual(fine.data["participants"], 4)

    def test_customer_can_be_changed_within_business(self) -> None:
        booking = self.create(self.plain_payload(self.nine, self.nine + timedelta(hours=1)))
        other = make_customer(self.business, "Tama Rua")

        changed = self.client.patch(self.detail(booking), {"customer_id": other.pk}, format="json")
        self.assertEqual(changed.data["customer"], other.pk)

        foreign = make_customer(make_business("Elsewhere"))
        refused = self.client.patch(self.detail(booking), {"customer_id": foreign.pk}, format="json")
        self.assertEqual(refused.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(refused.data["error"]["reason"], "customer_id_not_found")

    def test_status_patch(self) -> None:
        booking = self.create(self.plain_payload(self.nine, self.nine + timedelta(hours=1)))

        back = self.client.patch(self.detail(booking), {"status": "BOOKED"}, format="json")
        self.assertEqual(back.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(back.data["error"]["reason"], "invalid_transition")

        cancelled = self.client.patch(self.detail(booking), {"status": "cancelled"}, format="json")
        self.assertEqual(cancelled.status_code, status.HTTP_200_OK, cancelled.data)
        self.assertEqual(cancelled.data["status"], "CANCELLED")

    def test_empty_patch(self) -> None:
        booking = self.create(self.plain_payload(self.nine, self.nine + timedelta(hours=1)))

        response = self.client.patch(self.detail(booking), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
