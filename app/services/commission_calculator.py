"""
Commission Calculator

commission = round(amount * rate, 2), half-up, on Decimal values.
Invoked exactly once per confirmed payment, when it is recorded.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

from app.config import settings
from app.core.exceptions import InvalidArgumentError


CENTS = Decimal("0.01")

Amount = Union[Decimal, int, float, str]


def normalize_amount(value: Amount, field: str = "amount") -> Decimal:
    """Coerce a money input to Decimal rounded to 2 places (naira, never kobo)."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidArgumentError("Amount must be a number", field=field)
    if not amount.is_finite():
        raise InvalidArgumentError("Amount must be a number", field=field)
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_commission(amount: Amount, rate: Optional[Decimal] = None) -> Decimal:
    """
    Commission owed on a confirmed payment.

    Args:
        amount: Payment amount, positive
        rate: Commission rate as a fraction (0.05 = 5%). Defaults to COMMISSION_RATE.

    Returns:
        Commission rounded to 2 decimal places
    """
    amount = normalize_amount(amount)
    if amount <= 0:
        raise InvalidArgumentError("Amount must be greater than 0", field="amount")

    if rate is None:
        rate = settings.COMMISSION_RATE
    rate = Decimal(str(rate))

    return (amount * rate).quantize(CENTS, rounding=ROUND_HALF_UP)
