"""
Decimal helpers for sale amounts.

Money is stored with 2 fractional digits, quantities and unit prices with 6.
All arithmetic is done on ``Decimal``; floats are converted through ``str``
so 0.1 stays 0.1.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from practice_api.core.exceptions import ValidationError


MONEY_PLACES = Decimal("0.01")
QUANTITY_PLACES = Decimal("0.000001")

ZERO = Decimal("0")


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """
    Convert a number or numeric string to Decimal.

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} is not a valid number", field=field)

    if not result.is_finite():
        raise ValidationError(f"{field} is not a valid number", field=field)
    return result


def money(value: Any, field: str = "amount") -> Decimal:
    """Quantize to 2 places, rounding half up."""
    return to_decimal(value, field).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def quantity(value: Any, field: str = "quantity") -> Decimal:
    """Quantize to 6 places, rounding half up."""
    return to_decimal(value, field).quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def optional_money(value: Optional[Any], field: str = "amount") -> Optional[Decimal]:
    return None if value is None else money(value, field)


def money_sum(values: Iterable[Decimal]) -> Decimal:
    return money(sum(values, ZERO))
