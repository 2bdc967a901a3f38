"""
Money helpers.

Amounts are Decimals with at most CURRENCY_PLACES decimal places.
Floats are converted through str() so 0.1 stays 0.1.
"""

from decimal import Decimal, InvalidOperation
from typing import Annotated

from pydantic import Field

from shop_ledger.config import get_settings
from shop_ledger.exceptions import ValidationFailedError

ZERO = Decimal("0")

CURRENCY_PLACES = get_settings().CURRENCY_PLACES

# Positive amount accepted at the API boundary.
PositiveMoney = Annotated[
    Decimal, Field(gt=0, max_digits=17, decimal_places=CURRENCY_PLACES)
]
# Non-negative amount, e.g. an amount already paid at creation time.
NonNegativeMoney = Annotated[
    Decimal, Field(ge=0, max_digits=17, decimal_places=CURRENCY_PLACES)
]


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationFailedError(f"Invalid amount: {value!r}")


def validate_amount(value, field: str = "amount") -> Decimal:
    """
    Return value as a Decimal that is finite, positive and has no
    more than CURRENCY_PLACES decimal places.
    """
    amount = to_decimal(value)
    if not amount.is_finite():
        raise ValidationFailedError(f"{field} must be a finite number")
    if amount <= 0:
        raise ValidationFailedError(f"{field} must be positive")

    places = CURRENCY_PLACES
    quantum = Decimal(1).scaleb(-places)
    if amount != amount.quantize(quantum):
        raise ValidationFailedError(
            f"{field} cannot have more than {places} decimal places"
        )
    return amount
