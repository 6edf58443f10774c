"""
Money helpers and order total calculation.

All amounts share one implicit currency with two decimal places. Rounding uses
banker's rounding (ROUND_HALF_EVEN) so repeated sums carry no systematic bias.
"""

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Iterable, Union

from .exceptions import ValidationError

MONEY_PLACES = Decimal("0.01")

Amount = Union[Decimal, str, int, float]


def to_decimal(amount: Amount, field: str = "amount") -> Decimal:
    """
    Convert a user-supplied amount to Decimal.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather
    than its binary expansion.
    """
    if isinstance(amount, Decimal):
        value = amount
    else:
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError(f"'{amount}' is not a valid {field}", {"field": field})
    if not value.is_finite():
        raise ValidationError(f"'{amount}' is not a valid {field}", {"field": field})
    return value


def quantize(amount: Amount) -> Decimal:
    """Round to two decimals using banker's rounding."""
    return to_decimal(amount).quantize(MONEY_PLACES, rounding=ROUND_HALF_EVEN)


class OrderCalculator:
    """
    Calculates line subtotals and order totals.

    Works on anything exposing ``subtotal`` (OrderItem instances) or on
    plain Decimal iterables.
    """

    @staticmethod
    def line_subtotal(price: Amount, quantity: int) -> Decimal:
        return quantize(to_decimal(price, "price") * quantity)

    @staticmethod
    def sum_amounts(amounts: Iterable[Amount]) -> Decimal:
        total = Decimal("0.00")
        for amount in amounts:
            total += to_decimal(amount)
        return quantize(total)

    @classmethod
    def items_total(cls, items) -> Decimal:
        """Sum of item subtotals; 0.00 for no items."""
        return cls.sum_amounts(item.subtotal for item in items)
