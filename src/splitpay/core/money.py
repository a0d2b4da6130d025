"""
Money parsing and the marketplace fee calculation.

All arithmetic is done on ``Decimal`` values built from the textual form of
the input, so ``10.005`` is really ten and five thousandths and not the
nearest binary float.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from splitpay.core.errors import ValidationError

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Convert an external representation (string or JSON number) to a finite Decimal.

    Raises:
        ValidationError: If the value is missing, boolean, non-numeric or not finite.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"'{field}' must be a number.", detail={field: value})
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"'{field}' must be a number.", detail={field: value}) from e
    if not number.is_finite():
        raise ValidationError(f"'{field}' must be a finite number.", detail={field: value})
    return number


def parse_amount(value: Any) -> Decimal:
    """Parse a transaction amount: positive, with at most two decimal places."""
    amount = to_decimal(value, "amount")
    if amount <= 0:
        raise ValidationError("'amount' must be greater than zero.", detail={"amount": value})
    try:
        in_cents = amount == amount.quantize(CENTS)
    except InvalidOperation as e:
        raise ValidationError("'amount' is out of range.", detail={"amount": value}) from e
    if not in_cents:
        raise ValidationError(
            "'amount' must have at most two decimal places.", detail={"amount": value}
        )
    return amount


def parse_fee_percentage(value: Any) -> Decimal:
    """Parse the marketplace fee percentage, which must lie in [0, 100]."""
    percentage = to_decimal(value, "fee")
    if percentage < 0 or percentage > HUNDRED:
        raise ValidationError("'fee' must be between 0 and 100.", detail={"fee": value})
    return percentage


def compute_fee(amount: Decimal, percentage: Decimal) -> Decimal:
    """
    Platform share of ``amount`` for a ``percentage`` fee, rounded half-up to cents.

    >>> compute_fee(Decimal("99.99"), Decimal("7.5"))
    Decimal('7.50')
    """
    return (amount * percentage / HUNDRED).quantize(CENTS, rounding=ROUND_HALF_UP)
