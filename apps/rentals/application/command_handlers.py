"""
Rental Command Handlers

Use cases that create and transition standalone rentals. Each handler
runs as one unit of work: the contended rows are locked before the
availability read, and every write (rental, payment, legacy unit
status) commits or rolls back together.

Commands:
- CreateVariantRentalCommand: Rent a quantity of one equipment variant
- CreateUnitRentalCommand: Rent a single legacy equipment unit
- ReturnRentalCommand: Equipment came back
- CancelRentalCommand: Cancel a rental that hasn't started
- ExtendRentalCommand: Move a rental's end
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import logging

from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import ConflictError, ValidationError
from shared.domain.value_objects import Money, TimeWindow
from apps.businesses import lookups
from apps.equipment.models import Equipment
from apps.equipment.repositories import EquipmentRepository, EquipmentVariantRepository
from apps.equipment.services import ensure_capacity
from apps.finances.services import parse_payment_method, record_payment
from apps.rentals.models import Rental
from apps.rentals.repositories import RentalRepository

logger = logging.getLogger(__name__)


def _positive_quantity(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError("quantity must be a positive integer.")
    try:
        quantity = int(value)
    except ValueError:
        raise ValidationError("quantity must be a positive integer.")
    if quantity < 1:
        raise ValidationError("quantity must be a positive integer.")
    return quantity


# ===== Commands =====

@dataclass
class CreateVariantRentalCommand:
    """
    Command to rent ``quantity`` units of a variant for a window

    The price is precomputed by the caller; a matching payment is
    recorded in the same transaction.
    """
    business: object
    customer_id: int
    equipment_variant_id: int
    quantity: int
    start_at: datetime
    end_at: datetime
    price_total: Decimal
    payment_method: str

    def __post_init__(self):
        self.quantity = _positive_quantity(self.quantity)
        self.window = TimeWindow(self.start_at, self.end_at)
        if self.price_total is None:
            raise ValidationError("price_total is required and must be positive for variant rentals.")
        self.price = Money(self.price_total)
        if not self.price.is_positive:
            raise ValidationError("price_total is required and must be positive for variant rentals.")
        self.payment_method = parse_payment_method(self.payment_method)


@dataclass
class CreateUnitRentalCommand:
    """Command to rent one legacy equipment unit"""
    business: object
    customer_id: int
    equipment_id: int
    start_at: datetime
    end_at: datetime
    price_total: Decimal | None = None
    payment_method: str | None = None

    def __post_init__(self):
        self.window = TimeWindow(self.start_at, self.end_at)
        self.price = Money(self.price_total) if self.price_total is not None else None
        if self.payment_method:
            self.payment_method = parse_payment_method(self.payment_method)
        elif self.price is not None and self.price.is_positive:
            raise ValidationError(
                "payment_method is required when price_total is given.",
                reason="invalid_payment_method",
            )


@dataclass
class ReturnRentalCommand:
    business: object
    rental_id: int


@dataclass
class CancelRentalCommand:
    business: object
    rental_id: int


@dataclass
class ExtendRentalCommand:
    """Command to move a rental's end (earlier or later)"""
    business: object
    rental_id: int
    end_at: datetime


# ===== Command Handlers =====

class CreateVariantRentalHandler:
    """
    Handler for CreateVariantRental command

    1. Validate customer and variant references (tenant-scoped)
    2. Lock the variant row (SELECT FOR UPDATE)
    3. Re-read committed usage for the window under the lock
    4. Create the rental and its payment
    5. Publish RentalCreated after commit
    """

    def __init__(self, rental_repo=None, variant_repo=None):
        self.rental_repo = rental_repo or RentalRepository()
        self.variant_repo = variant_repo or EquipmentVariantRepository()

    def handle(self, command: CreateVariantRentalCommand) -> Rental:
        business = command.business
        logger.info(
            f"Creating rental of variant {command.equipment_variant_id} x{command.quantity} "
            f"for customer {command.customer_id}, window {command.window}"
        )

        with DjangoUnitOfWork() as uow:
            customer = lookups.get_customer(business, command.customer_id)
            variants = self.variant_repo.lock_many(business, [command.equipment_variant_id])
            variant = next(iter(variants.values()))
            if not variant.is_active:
                raise ValidationError("Equipment variant is inactive.", reason="variant_inactive")

            ensure_capacity(business, variants, {variant.pk: command.quantity}, command.window)

            rental = self.rental_repo.add(
                business=business,
                customer=customer,
                equipment_variant=variant,
                quantity=command.quantity,
                start_at=command.window.start_at,
                end_at=command.window.end_at,
                price_total=command.price.amount,
                status=Rental.Status.ACTIVE.value,
            )
            record_payment(business, command.price, command.payment_method, rental=rental)
            uow.collect_events(rental)

        logger.info(f"Rental {rental.pk} created for variant {variant.pk}")
        return rental


class CreateUnitRentalHandler:
    """Handler for renting a single legacy unit; the unit must be AVAILABLE"""

    def __init__(self, rental_repo=None, unit_repo=None):
        self.rental_repo = rental_repo or RentalRepository()
        self.unit_repo = unit_repo or EquipmentRepository()

    def handle(self, command: CreateUnitRentalCommand) -> Rental:
        business = command.business
        logger.info(f"Creating rental of unit {command.equipment_id} for customer {command.customer_id}")

        with DjangoUnitOfWork() as uow:
            customer = lookups.get_customer(business, command.customer_id)
            unit = self.unit_repo.lock(business, command.equipment_id)
            if unit.status != Equipment.Status.AVAILABLE:
                raise ConflictError("Equipment is not available.", reason="equipment_unavailable")

            rental = self.rental_repo.add(
                business=business,
                customer=customer,
                equipment=unit,
                quantity=1,
                start_at=command.window.start_at,
                end_at=command.window.end_at,
                price_total=command.price.amount if command.price else None,
                status=Rental.Status.ACTIVE.value,
            )
            unit.mark_rented()
            if command.price is not None and command.payment_method:
                record_payment(business, command.price, command.payment_method, rental=rental)
            uow.collect_events(rental)

        logger.info(f"Rental {rental.pk} created for unit {unit.pk}")
        return rental


class ReturnRentalHandler:
    def __init__(self, rental_repo=None):
        self.rental_repo = rental_repo or RentalRepository()

    def handle(self, command: ReturnRentalCommand) -> Rental:
        logger.info(f"Returning rental {command.rental_id}")
        with DjangoUnitOfWork() as uow:
            rental = self.rental_repo.lock(command.business, command.rental_id)
            rental.mark_returned(timezone.now())
            uow.collect_events(rental)
        logger.info(f"Rental {rental.pk} returned")
        return rental


class CancelRentalHandler:
    def __init__(self, rental_repo=None):
        self.rental_repo = rental_repo or RentalRepository()

    def handle(self, command: CancelRentalCommand) -> Rental:
        logger.info(f"Cancelling rental {command.rental_id}")
        with DjangoUnitOfWork() as uow:
            rental = self.rental_repo.lock(command.business, command.rental_id)
            rental.mark_cancelled(timezone.now())
            uow.collect_events(rental)
        logger.info(f"Rental {rental.pk} cancelled")
        return rental


class ExtendRentalHandler:
    """
    Handler for ExtendRental command

    Moving the end later re-checks the variant's capacity for the added
    span under the variant lock. Shortening never needs a check.
    """

    def __init__(self, rental_repo=None, variant_repo=None):
        self.rental_repo = rental_repo or RentalRepository()
        self.variant_repo = variant_repo or EquipmentVariantRepository()

    def handle(self, command: ExtendRentalCommand) -> Rental:
        if command.end_at is None:
            raise ValidationError("end_at is required.")
        logger.info(f"Changing end of rental {command.rental_id} to {command.end_at.isoformat()}")

        with DjangoUnitOfWork() as uow:
            current = self.rental_repo.get(command.business, command.rental_id)
            variants = {}
            if current.equipment_variant_id is not None:
                # variant before rental, same order as creation
                variants = self.variant_repo.lock_many(command.business, [current.equipment_variant_id])
            rental = self.rental_repo.lock(command.business, command.rental_id)
            rental.state.ensure_can_edit_end(rental.start_at, command.end_at)

            if variants and command.end_at > rental.end_at:
                ensure_capacity(
                    command.business,
                    variants,
                    {rental.equipment_variant_id: rental.quantity},
                    TimeWindow(rental.end_at, command.end_at),
                )
            rental.change_end(command.end_at)
            uow.collect_events(rental)

        logger.info(f"Rental {rental.pk} now ends {rental.end_at.isoformat()}")
        return rental


COMMAND_HANDLERS = {
    CreateVariantRentalCommand: CreateVariantRentalHandler,
    CreateUnitRentalCommand: CreateUnitRentalHandler,
    ReturnRentalCommand: ReturnRentalHandler,
    CancelRentalCommand: CancelRentalHandler,
    ExtendRentalCommand: ExtendRentalHandler,
}
