"""
Overlap Query Engine (pure part)

Computes how much of a variant's capacity is committed inside a time
window, given the reservations that overlap it. No database access
happens here; ``apps.equipment.services`` feeds it rows.

Usage is the PEAK concurrent demand inside the window, not the plain
sum of every overlapping reservation. Two reservations that never
coexist (10:00-10:30 and 10:30-11:00) consume one unit each but never
two units at once, so a window covering both has a usage of 1.

Intervals are half-open: a reservation ending exactly when another
begins does not overlap it.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Tuple

from shared.domain.value_objects import TimeWindow


@dataclass(frozen=True)
class Reservation:
    """A capacity claim against one variant (rental or booking allocation)."""
    variant_id: int
    start_at: datetime
    end_at: datetime
    quantity: int

    def overlaps(self, window: TimeWindow) -> bool:
        return self.start_at < window.end_at and self.end_at > window.start_at


def peak_concurrent_usage(reservations: Iterable[Reservation], window: TimeWindow) -> int:
    """
    Maximum number of units simultaneously claimed inside ``window``

    Sweep line over the reservations clipped to the window. At equal
    timestamps releases are applied before claims, which is what makes
    touching intervals non-overlapping.
    """
    points: List[Tuple[datetime, int]] = []
    for reservation in reservations:
        if reservation.quantity <= 0 or not reservation.overlaps(window):
            continue
        start_at, end_at = window.clip(reservation.start_at, reservation.end_at)
        points.append((start_at, reservation.quantity))
        points.append((end_at, -reservation.quantity))

    # negative deltas sort first for the same instant
    points.sort(key=lambda point: (point[0], point[1]))

    current = peak = 0
    for _, delta in points:
        current += delta
        peak = max(peak, current)
    return peak


def committed_total(reservations: Iterable[Reservation], window: TimeWindow) -> int:
    """Flat sum of quantities overlapping the window (upper bound of peak usage)"""
    return sum(r.quantity for r in reservations if r.overlaps(window))


def usage_by_variant(
    reservations: Iterable[Reservation],
    window: TimeWindow,
    variant_ids: Iterable[int] = (),
) -> Dict[int, int]:
    """
    Peak usage per variant

    Every id in ``variant_ids`` is present in the result, with 0 when
    nothing is committed against it.
    """
    grouped: Dict[int, List[Reservation]] = defaultdict(list)
    for reservation in reservations:
        grouped[reservation.variant_id].append(reservation)

    usage = {variant_id: 0 for variant_id in variant_ids}
    for variant_id, items in grouped.items():
        usage[variant_id] = peak_concurrent_usage(items, window)
    return usage


def available_quantity(total_quantity: int, in_use: int) -> int:
    return max(0, total_quantity - in_use)
