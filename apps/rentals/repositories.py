"""Tenant-scoped access to rentals."""

from __future__ import annotations

from shared.domain.exceptions import NotFoundError

from .models import Rental


class RentalRepository:
    def _queryset(self, business):  # type: ignore
        return Rental.objects.select_related("equipment_variant", "equipment", "customer").filter(
            business=business
        )

    def get(self, business, rental_id) -> Rental:  # type: ignore
        rental = self._queryset(business).filter(pk=rental_id).first()
        if rental is None:
            raise NotFoundError("Rental not found.")
        return rental

    def lock(self, business, rental_id) -> Rental:  # type: ignore
        """Row-lock the rental; call inside a unit of work."""
        rental = Rental.objects.select_for_update().filter(business=business, pk=rental_id).first()
        if rental is None:
            raise NotFoundError("Rental not found.")
        return rental

    def add(self, **fields) -> Rental:  # type: ignore
        rental = Rental.objects.create(**fields)
        rental.record_created()
        return rental
