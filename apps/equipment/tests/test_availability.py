"""Unit tests for the overlap engine's peak-usage sweep."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from django.test import SimpleTestCase

from apps.equipment.domain.availability import (
    Reservation,
    available_quantity,
    committed_total,
    peak_concurrent_usage,
    usage_by_variant,
)
from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import TimeWindow

DAY = datetime(2025, 1, 15, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0) -> datetime:
    return DAY + timedelta(hours=hour, minutes=minute)


class PeakUsageTests(SimpleTestCase):
    def test_touching_reservations_do_not_overlap_the_window(self) -> None:
        window = TimeWindow(at(11), at(12))
        before = Reservation(1, at(10), at(11), 2)
        after = Reservation(1, at(12), at(13), 2)

        self.assertFalse(before.overlaps(window))
        self.assertEqual(peak_concurrent_usage([before, after], window), 0)

    def test_back_to_back_reservations_never_coexist(self) -> None:
        window = TimeWindow(at(10), at(11))
        reservations = [
            Reservation(1, at(10), at(10, 30), 2),
            Reservation(1, at(10, 30), at(11), 2),
        ]

        self.assertEqual(peak_concurrent_usage(reservations, window), 2)
        self.assertEqual(committed_total(reservations, window), 4)

    def test_staggered_overlap_counts_the_busiest_instant(self) -> None:
        window = TimeWindow(at(9), at(13))
        reservations = [
            Reservation(1, at(9), at(11), 1),
            Reservation(1, at(10), at(12), 2),
            Reservation(1, at(11, 30), at(13), 1),
        ]
        # 10:00-11:00 -> 3, 11:30-12:00 -> 3
        self.assertEqual(peak_concurrent_usage(reservations, window), 3)

    def test_reservation_outside_the_window_is_ignored_after_clipping(self) -> None:
        window = TimeWindow(at(10, 30), at(10, 45))
        reservations = [Reservation(1, at(10), at(11), 2), Reservation(1, at(11), at(12), 3)]

        self.assertEqual(peak_concurrent_usage(reservations, window), 2)

    def test_instant_window_equals_plain_sum(self) -> None:
        window = TimeWindow.instant(at(10, 15))
        reservations = [Reservation(1, at(10), at(11), 2), Reservation(1, at(9), at(10, 30), 1)]

        self.assertEqual(peak_concurrent_usage(reservations, window), 3)
        self.assertEqual(committed_total(reservations, window), 3)


class UsageByVariantTests(SimpleTestCase):
    def test_every_requested_variant_is_reported(self) -> None:
        window = TimeWindow(at(10), at(11))
        usage = usage_by_variant([Reservation(7, at(10), at(11), 2)], window, [7, 8])

        self.assertEqual(usage, {7: 2, 8: 0})

    def test_available_quantity_never_negative(self) -> None:
        self.assertEqual(available_quantity(5, 2), 3)
        self.assertEqual(available_quantity(2, 5), 0)


class TimeWindowTests(SimpleTestCase):
    def test_end_must_follow_start(self) -> None:
        with self.assertRaises(ValidationError):
            TimeWindow(at(11), at(10))
        with self.assertRaises(ValidationError):
            TimeWindow(at(10), at(10))

    def test_half_open_overlap(self) -> None:
        self.assertTrue(TimeWindow(at(10), at(11)).overlaps_with(TimeWindow(at(10, 30), at(12))))
        self.assertFalse(TimeWindow(at(10), at(11)).overlaps_with(TimeWindow(at(11), at(12))))
