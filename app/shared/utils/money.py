from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Quantize to cents with ROUND_HALF_UP. Floats go through str() first."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_money(value: Number) -> Optional[Decimal]:
    """to_money() that returns None for anything that is not a finite number."""
    try:
        amount = to_money(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def percent_of(base: Decimal, percent: Number) -> Decimal:
    return to_money(to_money(base) * Decimal(str(percent)) / Decimal(100))
