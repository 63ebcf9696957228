"""
Common Value Objects

Value objects used across multiple domains:
- Money: Represents monetary amounts
- TimeWindow: Half-open datetime interval [start_at, end_at)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation

from shared.domain.base import ValueObject
from shared.domain.exceptions import ValidationError


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a non-negative monetary amount with two decimal places.
    """
    amount: Decimal

    def __post_init__(self):
        try:
            amount = Decimal(str(self.amount))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Invalid amount: {self.amount!r}")
        if not amount.is_finite():
            raise ValidationError(f"Invalid amount: {self.amount!r}")
        if amount < 0:
            raise ValidationError("Amount cannot be negative")
        object.__setattr__(self, 'amount', amount.quantize(Decimal('0.01')))

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    def __mul__(self, factor) -> 'Money':
        if not isinstance(factor, (int, Decimal)):
            raise TypeError("Can only multiply Money by int or Decimal")
        return Money(self.amount * factor)

    def __str__(self):
        return f"{self.amount:,.2f}"

    def __repr__(self):
        return f"Money({self.amount})"


@dataclass(frozen=True)
class TimeWindow(ValueObject):
    """
    Time window value object

    Represents a range from start_at (inclusive) to end_at (exclusive).
    Used for rental and booking windows and availability queries.
    """
    start_at: datetime
    end_at: datetime

    def __post_init__(self):
        if self.start_at is None or self.end_at is None:
            raise ValidationError("start_at and end_at are required.")
        if self.start_at >= self.end_at:
            raise ValidationError("end_at must be after start_at.")

    @classmethod
    def instant(cls, moment: datetime) -> 'TimeWindow':
        """Smallest window covering a single instant"""
        return cls(moment, moment + timedelta(microseconds=1))

    def overlaps_with(self, other: 'TimeWindow') -> bool:
        """
        Check if this window overlaps with another

        Touching windows do not overlap:
            - [10:00, 11:00) overlaps [10:30, 12:00) -> True
            - [10:00, 11:00) overlaps [11:00, 12:00) -> False
        """
        if not isinstance(other, TimeWindow):
            raise TypeError("Can only check overlap with another TimeWindow")
        return self.start_at < other.end_at and self.end_at > other.start_at

    def clip(self, start_at: datetime, end_at: datetime) -> tuple:
        """Clip an interval to this window"""
        return max(start_at, self.start_at), min(end_at, self.end_at)

    def __str__(self):
        return f"{self.start_at.isoformat()} - {self.end_at.isoformat()}"

    def __repr__(self):
        return f"TimeWindow({self.start_at!r}, {self.end_at!r})"
