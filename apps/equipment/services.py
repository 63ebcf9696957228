"""Overlap queries and the inventory ledger.

``in_use`` is the read the whole engine agrees on: UI availability,
the availability endpoint and the coordinator's accept/reject
decisions all go through it. Outside a unit of work the numbers are a
point-in-time snapshot; inside one, after the variants are locked,
they are authoritative.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, Iterable, List

from django.db.models import Max  # type: ignore

from shared.domain.exceptions import ConflictError, InsufficientAvailability
from shared.domain.value_objects import TimeWindow

from .domain.availability import Reservation, available_quantity, usage_by_variant
from .models import EquipmentVariant
from .repositories import EquipmentVariantRepository, normalize_ids

logger = logging.getLogger(__name__)


def committed_reservations(
    business,  # type: ignore
    variant_ids: Iterable[int],
    window: TimeWindow,
    *,
    exclude_booking_id: int | None = None,
) -> List[Reservation]:
    """Rentals and booking allocations overlapping ``window`` that hold capacity."""

    from apps.bookings.models import Booking, BookingEquipmentAllocation
    from apps.rentals.models import Rental

    ids = list(variant_ids)
    if not ids:
        return []

    rentals = Rental.objects.filter(
        business=business,
        equipment_variant_id__in=ids,
        status__in=Rental.BLOCKING_STATUSES,
        start_at__lt=window.end_at,
        end_at__gt=window.start_at,
    ).values_list("equipment_variant_id", "start_at", "end_at", "quantity")

    allocations = BookingEquipmentAllocation.objects.filter(
        booking__business=business,
        equipment_variant_id__in=ids,
        rental__isnull=True,
        booking__status__in=Booking.BLOCKING_STATUSES,
        booking__start_at__lt=window.end_at,
        booking__end_at__gt=window.start_at,
    )
    if exclude_booking_id is not None:
        allocations = allocations.exclude(booking_id=exclude_booking_id)
    allocations = allocations.values_list(
        "equipment_variant_id", "booking__start_at", "booking__end_at", "quantity"
    )

    return [Reservation(*row) for row in rentals] + [Reservation(*row) for row in allocations]


def in_use(
    business,  # type: ignore
    variant_ids: Iterable,
    window_start: datetime,
    window_end: datetime,
    *,
    exclude_booking_id: int | None = None,
) -> Dict[int, int]:
    """Committed usage per variant for ``[window_start, window_end)``."""

    ids = normalize_ids(variant_ids)
    window = TimeWindow(window_start, window_end)
    reservations = committed_reservations(business, ids, window, exclude_booking_id=exclude_booking_id)
    return usage_by_variant(reservations, window, ids)


@dataclass(frozen=True)
class VariantAvailability:
    variant_id: int
    label: str
    category: str
    total_quantity: int
    in_use: int
    available_now: int
    low_stock: bool

    def to_dict(self) -> dict:
        return asdict(self)


def build_ledger(
    variants: Iterable[EquipmentVariant],
    usage: Dict[int, int],
) -> Dict[int, VariantAvailability]:
    ledger = {}
    for variant in variants:
        used = usage.get(variant.pk, 0)
        available = available_quantity(variant.total_quantity, used)
        ledger[variant.pk] = VariantAvailability(
            variant_id=variant.pk,
            label=variant.label,
            category=variant.category.name,
            total_quantity=variant.total_quantity,
            in_use=used,
            available_now=available,
            low_stock=available < variant.low_stock_threshold,
        )
    return ledger


def availability(
    business,  # type: ignore
    variant_ids: Iterable,
    window_start: datetime,
    window_end: datetime,
) -> List[VariantAvailability]:
    """Inventory ledger rows for the requested variants and window."""

    variants = EquipmentVariantRepository().get_many(business, variant_ids)
    usage = in_use(business, variants.keys(), window_start, window_end)
    ledger = build_ledger(variants.values(), usage)
    return [ledger[pk] for pk in sorted(ledger)]


def availability_at(business, variants: Iterable[EquipmentVariant], moment: datetime) -> Dict[int, VariantAvailability]:  # type: ignore
    """Ledger for already-loaded variants at a single instant (listing views)."""

    variants = list(variants)
    window = TimeWindow.instant(moment)
    usage = in_use(business, [v.pk for v in variants], window.start_at, window.end_at) if variants else {}
    return build_ledger(variants, usage)


def ensure_capacity(
    business,  # type: ignore
    variants: Dict[int, EquipmentVariant],
    requested: Dict[int, int],
    window: TimeWindow,
    *,
    exclude_booking_id: int | None = None,
) -> Dict[int, VariantAvailability]:
    """
    Reject the request if any variant lacks capacity for ``window``

    ``variants`` must already be locked by the caller's unit of work.
    Returns the ledger the decision was made on.
    """
    usage = in_use(
        business,
        requested.keys(),
        window.start_at,
        window.end_at,
        exclude_booking_id=exclude_booking_id,
    )
    ledger = build_ledger((variants[pk] for pk in requested), usage)
    for variant_id, quantity in requested.items():
        row = ledger[variant_id]
        if usage[variant_id] + quantity > row.total_quantity:
            logger.info(
                f"Insufficient availability for variant {variant_id}: "
                f"requested {quantity}, in use {row.in_use}/{row.total_quantity} during {window}"
            )
            raise InsufficientAvailability(
                "Not enough equipment available for this time window.",
                details={
                    "equipment_variant_id": variant_id,
                    "requested": quantity,
                    "available": row.available_now,
                },
            )
    return ledger


def ensure_total_covers_commitments(business, variant: EquipmentVariant, new_total: int, moment: datetime) -> None:  # type: ignore
    """
    Reject shrinking ``variant`` below what is still committed

    Looks at every blocking reservation that has not ended by
    ``moment``; the variant row must already be locked.
    """
    from apps.bookings.models import Booking, BookingEquipmentAllocation
    from apps.rentals.models import Rental

    ends = [
        Rental.objects.filter(
            business=business,
            equipment_variant=variant,
            status__in=Rental.BLOCKING_STATUSES,
            end_at__gt=moment,
        ).aggregate(last=Max("end_at"))["last"],
        BookingEquipmentAllocation.objects.filter(
            booking__business=business,
            equipment_variant=variant,
            rental__isnull=True,
            booking__status__in=Booking.BLOCKING_STATUSES,
            booking__end_at__gt=moment,
        ).aggregate(last=Max("booking__end_at"))["last"],
    ]
    horizon = max((end for end in ends if end is not None), default=None)
    if horizon is None:
        return

    window = TimeWindow(moment, horizon)
    peak = in_use(business, [variant.pk], window.start_at, window.end_at)[variant.pk]
    if peak > new_total:
        logger.info(
            f"Refusing to shrink variant {variant.pk} to {new_total}: {peak} committed before {horizon.isoformat()}"
        )
        raise ConflictError(
            f"{peak} units are still committed; total_quantity cannot go below that.",
            reason="quantity_below_commitments",
            details={"equipment_variant_id": variant.pk, "requested": new_total, "committed": peak},
        )
