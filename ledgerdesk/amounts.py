"""
Monetary Amount Module

Decimal parsing and rounding for ATM amounts. NEVER uses float for
monetary values.
"""

from decimal import Decimal, Inexact, InvalidOperation, ROUND_HALF_UP, getcontext, localcontext
from typing import Union

from .errors import ValidationError

# Set global decimal context for financial precision
getcontext().prec = 28

AMOUNT_PRECISION = 2
ZERO = Decimal("0.00")

AmountLike = Union[Decimal, str, int]


def quantize(value: Decimal) -> Decimal:
    """
    Round to cents

    Raises:
        ValidationError: If the value has more digits than the context precision
    """
    try:
        return value.quantize(Decimal('0.1') ** AMOUNT_PRECISION, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Amount out of range: {value}")


def add_amounts(left: Decimal, right: Decimal) -> Decimal:
    """
    Exact sum of two amounts

    Raises:
        ValidationError: If the sum cannot be held to the cent
    """
    with localcontext() as ctx:
        ctx.traps[Inexact] = True
        try:
            return quantize(left + right)
        except Inexact:
            raise ValidationError(f"Amount out of range: {left} + {right}")


def to_decimal(value: AmountLike) -> Decimal:
    """
    Convert input to a rounded Decimal

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}")
    if isinstance(value, float):
        # Go through repr so 0.1 stays 0.1
        value = repr(value)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return quantize(amount)


def validate_amount(value: AmountLike) -> Decimal:
    """
    Parse a transaction amount, which must be strictly positive

    Raises:
        ValidationError: If the amount is invalid, zero or negative
    """
    amount = to_decimal(value)
    if amount <= ZERO:
        raise ValidationError("Amount must be greater than zero")
    return amount


def format_amount(amount: Decimal) -> str:
    """Format for display"""
    return f"{amount:,.{AMOUNT_PRECISION}f}"
