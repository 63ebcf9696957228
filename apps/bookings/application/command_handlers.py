"""
Booking Command Handlers

These are the use cases for the booking domain. Every handler is one
unit of work; rows are locked in a fixed order (variants by ascending
id, then lesson, instructor, booking) before any overlap read, so two
requests competing for the same capacity are serialized.

Commands:
- CreateLessonBookingCommand: Lesson booking with instructor and equipment
- CreateBookingCommand: Plain booking (optional lesson/instructor)
- CheckInBookingCommand: Hand out equipment as rentals, BOOKED -> CHECKED_IN
- CompleteBookingCommand: CHECKED_IN -> COMPLETED
- CancelBookingCommand: BOOKED -> CANCELLED
- MarkNoShowCommand: BOOKED -> NO_SHOW
- UpdateBookingCommand: Reschedule / change participants, customer, lesson
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List
import logging

from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from shared.conf import reservation_setting
from shared.domain.exceptions import (
    InstructorDoubleBooked,
    InsufficientAvailability,
    LessonFull,
    NotFoundError,
    ValidationError,
)
from shared.domain.value_objects import Money, TimeWindow
from apps.businesses import lookups
from apps.equipment.repositories import EquipmentCategoryRepository, EquipmentVariantRepository
from apps.equipment.services import ensure_capacity, in_use
from apps.finances.services import parse_payment_method, record_payment
from apps.rentals.domain.state_machine import RentalStatus
from apps.rentals.repositories import RentalRepository
from apps.bookings.domain.state_machine import BookingStatus, validate_participants
from apps.bookings.models import Booking
from apps.bookings.repositories import AllocationRepository, BookingRepository, normalize_allocations

logger = logging.getLogger(__name__)

UNSET: Any = object()


# ===== Commands =====

@dataclass
class CreateLessonBookingCommand:
    """
    Command to book a lesson with equipment reserved for its window

    ``end_at`` defaults to ``start_at`` plus the lesson duration.
    """
    business: object
    customer_id: int
    lesson_id: int
    start_at: datetime
    instructor_id: int | None = None
    participants: int = 1
    end_at: datetime | None = None
    equipment_allocations: List[dict] = field(default_factory=list)
    payment_method: str | None = None
    notes: str = ''

    def __post_init__(self):
        if self.start_at is None:
            raise ValidationError("start_at is required.")
        if self.end_at is not None:
            TimeWindow(self.start_at, self.end_at)
        self.participants = validate_participants(self.participants, reservation_setting('MAX_PARTICIPANTS'))
        self.requested = normalize_allocations(
            self.equipment_allocations,
            minimum=reservation_setting('MIN_LESSON_ALLOCATIONS'),
        )
        self.payment_method = parse_payment_method(self.payment_method)


@dataclass
class CreateBookingCommand:
    """Command to create a booking without equipment"""
    business: object
    customer_id: int
    start_at: datetime
    end_at: datetime
    lesson_id: int | None = None
    instructor_id: int | None = None
    participants: int = 1
    status: str | None = None
    notes: str = ''

    def __post_init__(self):
        self.window = TimeWindow(self.start_at, self.end_at)
        self.participants = validate_participants(self.participants, reservation_setting('MAX_PARTICIPANTS'))
        if self.status and str(self.status).strip().upper() != BookingStatus.BOOKED.value:
            raise ValidationError("Bookings are created with status BOOKED.", reason="invalid_initial_status")


@dataclass
class CheckInBookingCommand:
    """
    Command to check a booking in

    With ``equipment_category_id`` one active variant of that category
    is handed out (``quantity`` defaults to the participants). Without
    it, every open allocation of the booking becomes a rental.
    """
    business: object
    booking_id: int
    equipment_category_id: int | None = None
    quantity: int | None = None

    def __post_init__(self):
        if self.quantity is not None:
            if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
                raise ValidationError("quantity must be a positive integer.")


@dataclass
class CompleteBookingCommand:
    business: object
    booking_id: int


@dataclass
class CancelBookingCommand:
    business: object
    booking_id: int


@dataclass
class MarkNoShowCommand:
    business: object
    booking_id: int


@dataclass
class UpdateBookingCommand:
    """Fields left as UNSET are not touched; ``lesson_id=None`` clears the lesson"""
    business: object
    booking_id: int
    start_at: Any = UNSET
    end_at: Any = UNSET
    participants: Any = UNSET
    customer_id: Any = UNSET
    lesson_id: Any = UNSET
    notes: Any = UNSET

    def __post_init__(self):
        if self.start_at is None or self.end_at is None:
            raise ValidationError("start_at and end_at cannot be cleared.")
        if self.participants is not UNSET:
            self.participants = validate_participants(self.participants, reservation_setting('MAX_PARTICIPANTS'))
        if self.customer_id is None:
            raise NotFoundError.reference('customer_id')

    def changed_fields(self) -> List[str]:
        names = ['start_at', 'end_at', 'participants', 'customer_id', 'lesson_id', 'notes']
        return [name for name in names if getattr(self, name) is not UNSET]


# ===== Command Handlers =====

class _BookingChecks:
    """Lesson seat and instructor checks shared by the booking handlers"""

    def __init__(self, booking_repo):
        self.booking_repo = booking_repo

    def ensure_lesson_seats(self, business, lesson, participants: int, window: TimeWindow, exclude_booking_id=None):  # type: ignore
        if lesson is None or lesson.capacity is None:
            return
        taken = self.booking_repo.lesson_seats_taken(
            business, lesson.pk, window, exclude_booking_id=exclude_booking_id
        )
        if taken + participants > lesson.capacity:
            logger.info(f"Lesson {lesson.pk} full: {taken}/{lesson.capacity} taken, {participants} requested")
            raise LessonFull(
                "Lesson is full for this time window.",
                details={"lesson_id": lesson.pk, "capacity": lesson.capacity, "taken": taken},
            )

    def ensure_instructor_free(self, business, instructor, window: TimeWindow, exclude_booking_id=None):  # type: ignore
        if instructor is None:
            return
        if self.booking_repo.instructor_is_busy(
            business, instructor.pk, window, exclude_booking_id=exclude_booking_id
        ):
            raise InstructorDoubleBooked(
                "Instructor already has a booking in this time window.",
                details={"instructor_id": instructor.pk},
            )


class CreateLessonBookingHandler:
    """
    Handler for CreateLessonBooking command

    1. Validate customer reference
    2. Lock variants (ascending id), lesson, instructor
    3. Lesson capacity, instructor overlap, per-variant capacity checks
    4. Create booking, allocations and payment
    5. Publish BookingCreated after commit

    Any failed check aborts the whole transaction.
    """

    def __init__(self, booking_repo=None, allocation_repo=None, variant_repo=None):
        self.booking_repo = booking_repo or BookingRepository()
        self.allocation_repo = allocation_repo or AllocationRepository()
        self.variant_repo = variant_repo or EquipmentVariantRepository()
        self.checks = _BookingChecks(self.booking_repo)

    def handle(self, command: CreateLessonBookingCommand) -> Booking:
        business = command.business
        logger.info(
            f"Creating lesson booking: lesson {command.lesson_id}, customer {command.customer_id}, "
            f"{command.participants} participant(s), equipment {command.requested}"
        )

        with DjangoUnitOfWork() as uow:
            customer = lookups.get_customer(business, command.customer_id)
            variants = self.variant_repo.lock_many(business, command.requested.keys())
            lesson = lookups.get_lesson(business, command.lesson_id, lock=True)
            if not lesson.is_active:
                raise ValidationError("Lesson is inactive.", reason="lesson_inactive")

            instructor_id = command.instructor_id or lesson.instructor_id
            if not instructor_id:
                raise ValidationError("instructor_id is required for lesson bookings.", reason="instructor_required")
            instructor = lookups.get_instructor(business, instructor_id, lock=True)

            end_at = command.end_at or command.start_at + timedelta(minutes=lesson.duration_minutes)
            window = TimeWindow(command.start_at, end_at)

            for variant in variants.values():
                if not variant.is_active:
                    raise ValidationError(f"Equipment variant {variant.pk} is inactive.", reason="variant_inactive")

            self.checks.ensure_lesson_seats(business, lesson, command.participants, window)
            self.checks.ensure_instructor_free(business, instructor, window)
            ensure_capacity(business, variants, command.requested, window)

            booking = self.booking_repo.add(
                business=business,
                customer=customer,
                lesson=lesson,
                instructor=instructor,
                start_at=window.start_at,
                end_at=window.end_at,
                participants=command.participants,
                status=BookingStatus.BOOKED.value,
                notes=command.notes or '',
            )
            self.allocation_repo.add_many(booking, command.requested)
            record_payment(
                business,
                Money(lesson.price) * command.participants,
                command.payment_method,
                booking=booking,
            )
            booking.record_created(command.requested)
            uow.collect_events(booking)

        logger.info(f"Lesson booking {booking.pk} created for lesson {lesson.pk}")
        return booking


class CreateBookingHandler:
    """Handler for CreateBooking command; no equipment, no payment"""

    def __init__(self, booking_repo=None):
        self.booking_repo = booking_repo or BookingRepository()
        self.checks = _BookingChecks(self.booking_repo)

    def handle(self, command: CreateBookingCommand) -> Booking:
        business = command.business
        logger.info(f"Creating booking for customer {command.customer_id}, window {command.window}")

        with DjangoUnitOfWork() as uow:
            customer = lookups.get_customer(business, command.customer_id)
            lesson = None
            if command.lesson_id not in (None, ''):
                lesson = lookups.get_lesson(business, command.lesson_id, lock=True)
            instructor = None
            if command.instructor_id not in (None, ''):
                instructor = lookups.get_instructor(business, command.instructor_id, lock=True)

            self.checks.ensure_lesson_seats(business, lesson, command.participants, command.window)
            self.checks.ensure_instructor_free(business, instructor, command.window)

            booking = self.booking_repo.add(
                business=business,
                customer=customer,
                lesson=lesson,
                instructor=instructor,
                start_at=command.window.start_at,
                end_at=command.window.end_at,
                participants=command.participants,
                status=BookingStatus.BOOKED.value,
                notes=command.notes or '',
            )
            booking.record_created()
            uow.collect_events(booking)

        logger.info(f"Booking {booking.pk} created")
        return booking


class CheckInBookingHandler:
    """
    Handler for CheckInBooking command

    Materializes rentals for ``[now, booking.end_at)`` and moves the
    booking to CHECKED_IN in one transaction. A second check-in of the
    same booking fails with StateError and creates nothing.
    """

    def __init__(self, booking_repo=None, allocation_repo=None, rental_repo=None, variant_repo=None,
                 category_repo=None):
        self.booking_repo = booking_repo or BookingRepository()
        self.allocation_repo = allocation_repo or AllocationRepository()
        self.rental_repo = rental_repo or RentalRepository()
        self.variant_repo = variant_repo or EquipmentVariantRepository()
        self.category_repo = category_repo or EquipmentCategoryRepository()

    def handle(self, command: CheckInBookingCommand) -> Booking:
        business = command.business
        logger.info(
            f"Checking in booking {command.booking_id}"
            + (f" with category {command.equipment_category_id}" if command.equipment_category_id else "")
        )

        with DjangoUnitOfWork() as uow:
            current = self.booking_repo.get(business, command.booking_id)
            allocations = self.allocation_repo.open_for(current)

            if command.equipment_category_id is not None:
                if allocations:
                    raise ValidationError(
                        "Booking has reserved equipment; check in without a category.",
                        reason="booking_has_allocations",
                    )
                category = self.category_repo.get_reference(business, command.equipment_category_id)
                candidates = self.variant_repo.active_for_category(category, lock=True)
            else:
                variants = self.variant_repo.lock_many(business, [a.equipment_variant_id for a in allocations])

            booking = self.booking_repo.lock(business, command.booking_id)
            now = timezone.now()
            booking.state.ensure_can_check_in(booking.rentals.exists(), booking.end_at, now)
            window = TimeWindow(now, booking.end_at)

            if command.equipment_category_id is not None:
                quantity = command.quantity or booking.participants
                variant = self._pick_variant(business, candidates, quantity, window)
                rentals = [self._hand_out(booking, variant, quantity, window)]
            elif allocations:
                ensure_capacity(
                    business,
                    variants,
                    {a.equipment_variant_id: a.quantity for a in allocations},
                    window,
                    exclude_booking_id=booking.pk,
                )
                rentals = []
                for allocation in allocations:
                    rental = self._hand_out(booking, variants[allocation.equipment_variant_id], allocation.quantity, window)
                    allocation.rental = rental
                    allocation.save(update_fields=["rental"])
                    rentals.append(rental)
            else:
                rentals = []

            booking.check_in(rentals)
            uow.collect_events(booking, *rentals)

        logger.info(f"Booking {booking.pk} checked in with {len(rentals)} rental(s)")
        return booking

    def _pick_variant(self, business, candidates, quantity: int, window: TimeWindow):  # type: ignore
        """First active variant (by label) with ``quantity`` free for the window"""
        usage = in_use(business, [v.pk for v in candidates], window.start_at, window.end_at) if candidates else {}
        for variant in candidates:
            if usage[variant.pk] + quantity <= variant.total_quantity:
                return variant
        best = max((v.total_quantity - usage[v.pk] for v in candidates), default=0)
        raise InsufficientAvailability(
            "Not enough equipment available in this category for the rest of the booking.",
            details={"requested": quantity, "available": max(0, best)},
        )

    def _hand_out(self, booking, variant, quantity: int, window: TimeWindow):  # type: ignore
        return self.rental_repo.add(
            business=booking.business,
            customer_id=booking.customer_id,
            equipment_variant=variant,
            quantity=quantity,
            booking=booking,
            start_at=window.start_at,
            end_at=window.end_at,
            status=RentalStatus.ACTIVE.value,
        )


class _TransitionHandler:
    """Lock the booking, apply one state machine transition"""

    transition = ''

    def __init__(self, booking_repo=None):
        self.booking_repo = booking_repo or BookingRepository()

    def handle(self, command) -> Booking:
        logger.info(f"Booking {command.booking_id}: {self.transition}")
        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.lock(command.business, command.booking_id)
            getattr(booking, self.transition)()
            uow.collect_events(booking)
        logger.info(f"Booking {booking.pk} is now {booking.status}")
        return booking


class CompleteBookingHandler(_TransitionHandler):
    transition = 'complete'


class CancelBookingHandler(_TransitionHandler):
    transition = 'cancel'


class MarkNoShowHandler(_TransitionHandler):
    transition = 'mark_no_show'


class UpdateBookingHandler:
    """
    Handler for UpdateBooking command

    A new window is only accepted while BOOKED and re-runs the lesson
    seat, instructor and equipment checks for it. Participant and
    lesson changes re-run the lesson seat check.
    """

    def __init__(self, booking_repo=None, allocation_repo=None, variant_repo=None):
        self.booking_repo = booking_repo or BookingRepository()
        self.allocation_repo = allocation_repo or AllocationRepository()
        self.variant_repo = variant_repo or EquipmentVariantRepository()
        self.checks = _BookingChecks(self.booking_repo)

    def handle(self, command: UpdateBookingCommand) -> Booking:
        business = command.business
        changes = command.changed_fields()
        if not changes:
            raise ValidationError("No updates provided.")
        logger.info(f"Updating booking {command.booking_id}: {', '.join(changes)}")

        reschedule = command.start_at is not UNSET or command.end_at is not UNSET
        seats_changed = reschedule or command.participants is not UNSET or command.lesson_id is not UNSET
        with DjangoUnitOfWork() as uow:
            current = self.booking_repo.get(business, command.booking_id)
            if reschedule:
                current.state.ensure_can_reschedule()

            allocations = self.allocation_repo.open_for(current) if reschedule else []
            variants = self.variant_repo.lock_many(business, [a.equipment_variant_id for a in allocations])

            lesson = None
            if command.lesson_id is UNSET:
                if seats_changed and current.lesson_id:
                    lesson = lookups.get_lesson(business, current.lesson_id, lock=True)
            elif command.lesson_id is not None:
                lesson = lookups.get_lesson(business, command.lesson_id, lock=True)

            instructor = None
            if reschedule and current.instructor_id:
                instructor = lookups.get_instructor(business, current.instructor_id, lock=True)

            booking = self.booking_repo.lock(business, command.booking_id)
            if reschedule:
                booking.state.ensure_can_reschedule()
            window = TimeWindow(
                booking.start_at if command.start_at is UNSET else command.start_at,
                booking.end_at if command.end_at is UNSET else command.end_at,
            )
            participants = booking.participants if command.participants is UNSET else command.participants
            if booking.state.holds_capacity and seats_changed:
                self.checks.ensure_lesson_seats(business, lesson, participants, window, exclude_booking_id=booking.pk)
            if reschedule:
                self.checks.ensure_instructor_free(business, instructor, window, exclude_booking_id=booking.pk)
                if allocations:
                    ensure_capacity(
                        business,
                        variants,
                        {a.equipment_variant_id: a.quantity for a in allocations},
                        window,
                        exclude_booking_id=booking.pk,
                    )

            update_fields = ["updated_at"]
            if reschedule:
                booking.start_at, booking.end_at = window.start_at, window.end_at
                update_fields += ["start_at", "end_at"]
            if command.participants is not UNSET:
                booking.participants = command.participants
                update_fields.append("participants")
            if command.customer_id is not UNSET:
                booking.customer = lookups.get_customer(business, command.customer_id)
                update_fields.append("customer")
            if command.lesson_id is not UNSET:
                booking.lesson = lesson
                update_fields.append("lesson")
            if command.notes is not UNSET:
                booking.notes = command.notes or ''
                update_fields.append("notes")

            booking.save(update_fields=update_fields)
            booking.record_updated(changes)
            uow.collect_events(booking)

        logger.info(f"Booking {booking.pk} updated")
        return booking


COMMAND_HANDLERS: Dict[type, type] = {
    CreateLessonBookingCommand: CreateLessonBookingHandler,
    CreateBookingCommand: CreateBookingHandler,
    CheckInBookingCommand: CheckInBookingHandler,
    CompleteBookingCommand: CompleteBookingHandler,
    CancelBookingCommand: CancelBookingHandler,
    MarkNoShowCommand: MarkNoShowHandler,
    UpdateBookingCommand: UpdateBookingHandler,
}
