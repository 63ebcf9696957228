"""Payment recording."""

from __future__ import annotations

import logging

from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import Money

from .models import Payment

logger = logging.getLogger(__name__)


def parse_payment_method(value) -> str:  # type: ignore
    method = (value or "").strip().upper() if isinstance(value, str) else ""
    if method not in Payment.Method.values:
        raise ValidationError(
            f"method is required ({', '.join(Payment.Method.values)}).",
            reason="invalid_payment_method",
        )
    return method


def record_payment(business, amount: Money, method: str, *, booking=None, rental=None) -> Payment:  # type: ignore
    """
    Record a completed charge for a booking or a rental

    Called from inside the reservation's unit of work, so a failure
    later in the transaction removes the payment too.
    """
    if (booking is None) == (rental is None):
        raise ValueError("A payment links to exactly one booking or rental.")

    payment = Payment.objects.create(
        business=business,
        booking=booking,
        rental=rental,
        amount=amount.amount,
        method=parse_payment_method(method),
        status=Payment.Status.SUCCESS,
    )
    logger.info(
        f"Recorded payment {payment.pk}: {amount} via {payment.method} "
        f"for {'booking %s' % booking.pk if booking else 'rental %s' % rental.pk}"
    )
    return payment
