"""Integration tests for rental API endpoints."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.db import transaction
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.businesses.tests.factories import make_business, make_customer, make_variant
from apps.equipment.models import Equipment
from apps.finances.models import Payment
from apps.rentals.models import Rental


class RentalAPITests(APITestCase):
    """Covers creation, capacity conflicts and the rental lifecycle."""

    def setUp(self) -> None:
        self.business = make_business("Mount Surf")
        self.customer = make_customer(self.business)
        self.variant = make_variant(self.business, label="6ft", total_quantity=3)
        self.client.credentials(HTTP_X_BUSINESS_ID=str(self.business.pk))
        self.list_url = reverse("rental-list")
        self.ten = (timezone.now() + timedelta(days=1)).replace(hour=10, minute=0, second=0, microsecond=0)

    def _payload(self, quantity: int = 2, start=None, end=None, **extra) -> dict:  # type: ignore
        start = start or self.ten
        payload = {
            "customer_id": self.customer.pk,
            "equipment_variant_id": self.variant.pk,
            "quantity": quantity,
            "start_at": start.isoformat(),
            "end_at": (end or start + timedelta(hours=1)).isoformat(),
            "price_total": "40.00",
            "payment_method": "CARD",
        }
        payload.update(extra)
        return payload

    def test_second_rental_over_capacity_is_rejected(self) -> None:
        first = self.client.post(self.list_url, self._payload(2), format="json")
        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)
        self.assertEqual(first.data["status"], "ACTIVE")

        second = self.client.post(self.list_url, self._payload(2), format="json")
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT, second.data)
        self.assertEqual(second.data["error"]["reason"], "insufficient_availability")
        self.assertEqual(second.data["error"]["details"]["available"], 1)
        self.assertEqual(Rental.objects.count(), 1)
        self.assertEqual(Payment.objects.count(), 1)

    def test_touching_windows_do_not_conflict(self) -> None:
        self.client.post(self.list_url, self._payload(3), format="json")

        later = self.client.post(self.list_url, self._payload(3, start=self.ten + timedelta(hours=1)), format="json")

        self.assertEqual(later.status_code, status.HTTP_201_CREATED, later.data)

    def test_payment_is_recorded_with_the_rental(self) -> None:
        response = self.client.post(self.list_url, self._payload(1, payment_method="cash"), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        payment = Payment.objects.get(rental_id=response.data["id"])
        self.assertEqual(payment.amount, Decimal("40.00"))
        self.assertEqual(payment.method, Payment.Method.CASH)
        self.assertEqual(payment.business, self.business)

    def test_price_and_method_are_required_for_variant_rentals(self) -> None:
        no_price = self.client.post(self.list_url, self._payload(1, price_total="0"), format="json")
        self.assertEqual(no_price.status_code, status.HTTP_400_BAD_REQUEST, no_price.data)

        bad_method = self.client.post(self.list_url, self._payload(1, payment_method="BITCOIN"), format="json")
        self.assertEqual(bad_method.status_code, status.HTTP_400_BAD_REQUEST, bad_method.data)
        self.assertEqual(bad_method.data["error"]["reason"], "invalid_payment_method")
        self.assertFalse(Rental.objects.exists())

    def test_window_must_be_ordered(self) -> None:
        response = self.client.post(
            self.list_url, self._payload(1, end=self.ten - timedelta(minutes=1)), format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["reason"], "validation_error")

    def test_references_from_other_business_are_rejected(self) -> None:
        other = make_business("Elsewhere")
        foreign_customer = make_customer(other)
        foreign_variant = make_variant(other, label="9ft")

        by_customer = self.client.post(self.list_url, self._payload(1, customer_id=foreign_customer.pk), format="json")
        self.assertEqual(by_customer.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(by_customer.data["error"]["reason"], "customer_id_not_found")

        by_variant = self.client.post(
            self.list_url, self._payload(1, equipment_variant_id=foreign_variant.pk), format="json"
        )
        self.assertEqual(by_variant.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(by_variant.data["error"]["reason"], "equipment_variant_id_not_found")

    def test_inactive_variant_cannot_be_rented(self) -> None:
        self.variant.is_active = False
        self.variant.save()

        response = self.client.post(self.list_url, self._payload(1), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["reason"], "variant_inactive")

    def test_created_status_must_be_active(self) -> None:
        response = self.client.post(self.list_url, self._payload(1, status="RETURNED"), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_return_frees_capacity(self) -> None:
        now = timezone.now()
        rental = self.client.post(
            self.list_url,
            self._payload(3, start=now - timedelta(minutes=30), end=now + timedelta(hours=2)),
            format="json",
        )
        self.assertEqual(rental.status_code, status.HTTP_201_CREATED, rental.data)

        returned = self.client.post(reverse("rental-return", args=[rental.data["id"]]))
        self.assertEqual(returned.status_code, status.HTTP_200_OK, returned.data)
        self.assertEqual(returned.data["status"], "RETURNED")
        self.assertIsNotNone(returned.data["returned_at"])

        again = self.client.post(
            self.list_url,
            self._payload(3, start=now + timedelta(minutes=1), end=now + timedelta(hours=2)),
            format="json",
        )
        self.assertEqual(again.status_code, status.HTTP_201_CREATED, again.data)

    def test_return_twice_is_a_state_error(self) -> None:
        rental = self.client.post(self.list_url, self._payload(1), format="json")
        url = reverse("rental-return", args=[rental.data["id"]])

        self.client.post(url)
        second = self.client.post(url)

        self.assertEqual(second.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(second.data["error"]["reason"], "rental_not_returnable")

    def test_cancel_only_before_start(self) -> None:
        future = self.client.post(self.list_url, self._payload(1), format="json")
        cancelled = self.client.post(reverse("rental-cancel", args=[future.data["id"]]))
        self.assertEqual(cancelled.status_code, status.HTTP_200_OK, cancelled.data)
        self.assertEqual(cancelled.data["status"], "CANCELLED")

        now = timezone.now()
        started = self.client.post(
            self.list_url, self._payload(1, start=now - timedelta(minutes=5), end=now + timedelta(hours=1)), format="json"
        )
        refused = self.client.post(reverse("rental-cancel", args=[started.data["id"]]))
        self.assertEqual(refused.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(refused.data["error"]["reason"], "rental_already_started")

    def test_extend_rechecks_capacity(self) -> None:
        mine = self.client.post(self.list_url, self._payload(2), format="json")
        self.client.post(
            self.list_url,
            self._payload(2, start=self.ten + timedelta(hours=1), end=self.ten + timedelta(hours=2)),
            format="json",
        )
        detail = reverse("rental-detail", args=[mine.data["id"]])

        blocked = self.client.patch(
            detail, {"end_at": (self.ten + timedelta(hours=1, minutes=30)).isoformat()}, format="json"
        )
        self.assertEqual(blocked.status_code, status.HTTP_409_CONFLICT, blocked.data)

        shortened = self.client.patch(detail, {"end_at": (self.ten + timedelta(minutes=30)).isoformat()}, format="json")
        self.assertEqual(shortened.status_code, status.HTTP_200_OK, shortened.data)

    def test_end_must_stay_after_start(self) -> None:
        rental = self.client.post(self.list_url, self._payload(1), format="json")

        response = self.client.patch(
            reverse("rental-detail", args=[rental.data["id"]]), {"end_at": self.ten.isoformat()}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_patch_status_returns_rental(self) -> None:
        rental = self.client.post(self.list_url, self._payload(1), format="json")

        response = self.client.patch(
            reverse("rental-detail", args=[rental.data["id"]]), {"status": "returned"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "RETURNED")

    def test_rentals_cannot_be_deleted(self) -> None:
        rental = self.client.post(self.list_url, self._payload(1), format="json")

        response = self.client.delete(reverse("rental-detail", args=[rental.data["id"]]))

        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertTrue(Rental.objects.filter(pk=rental.data["id"]).exists())

    def test_list_is_tenant_scoped_and_filterable(self) -> None:
        self.client.post(self.list_url, self._payload(1), format="json")
        other = make_business("Elsewhere")
        Rental.objects.create(
            business=other,
            customer=make_customer(other),
            equipment_variant=make_variant(other, label="9ft"),
            quantity=1,
            start_at=self.ten,
            end_at=self.ten + timedelta(hours=1),
        )

        everything = self.client.get(self.list_url)
        self.assertEqual(len(everything.data), 1)

        returned_only = self.client.get(self.list_url, {"status": "RETURNED"})
        self.assertEqual(len(returned_only.data), 0)

        by_variant = self.client.get(self.list_url, {"variant": self.variant.pk})
        self.assertEqual(len(by_variant.data), 1)

    def test_other_tenant_rental_is_not_found(self) -> None:
        rental = self.client.post(self.list_url, self._payload(1), format="json")
        self.client.credentials(HTTP_X_BUSINESS_ID=str(make_business("Elsewhere").pk))

        response = self.client.get(reverse("rental-detail", args=[rental.data["id"]]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class UnitRentalAPITests(APITestCase):
    def setUp(self) -> None:
        self.business = make_business("Mount Surf")
        self.customer = make_customer(self.business)
        self.unit = Equipment.objects.create(business=self.business, name="Longboard #4", size="9ft")
        self.client.credentials(HTTP_X_BUSINESS_ID=str(self.business.pk))
        self.start = timezone.now() + timedelta(hours=1)

    def _payload(self) -> dict:
        return {
            "customer_id": self.customer.pk,
            "equipment_id": self.unit.pk,
            "start_at": self.start.isoformat(),
            "end_at": (self.start + timedelta(hours=2)).isoformat(),
        }

    def test_unit_is_rented_once(self) -> None:
        first = self.client.post(reverse("rental-list"), self._payload(), format="json")
        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)
        self.unit.refresh_from_db()
        self.assertEqual(self.unit.status, Equipment.Status.RENTED)

        second = self.client.post(reverse("rental-list"), self._payload(), format="json")
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT, second.data)
        self.assertEqual(second.data["error"]["reason"], "equipment_unavailable")

    def test_cancel_puts_unit_back(self) -> None:
        rental = self.client.post(reverse("rental-list"), self._payload(), format="json")

        self.client.post(reverse("rental-cancel", args=[rental.data["id"]]))

        self.unit.refresh_from_db()
        self.assertEqual(self.unit.status, Equipment.Status.AVAILABLE)

    def test_variant_and_unit_are_exclusive(self) -> None:
        payload = self._payload()
        payload["equipment_variant_id"] = make_variant(self.business).pk

        response = self.client.post(reverse("rental-list"), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_return_puts_unit_back(self) -> None:
        rental = self.client.post(reverse("rental-list"), self._payload(), format="json")

        response = self.client.post(reverse("rental-return", args=[rental.data["id"]]))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.unit.refresh_from_db()
        self.assertEqual(self.unit.status, Equipment.Status.AVAILABLE)

    def test_release_rereads_the_unit_row(self) -> None:
        created = self.client.post(reverse("rental-list"), self._payload(), format="json")
        rental = Rental.objects.select_related("equipment").get(pk=created.data["id"])
        Equipment.objects.filter(pk=self.unit.pk).update(name="Longboard #4 (waxed)")

        with transaction.atomic():
            rental.mark_cancelled()

        self.assertEqual(rental.equipment.name, "Longboard #4 (waxed)")
        self.assertEqual(rental.equipment.status, Equipment.Status.AVAILABLE)
