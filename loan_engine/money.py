"""Fixed-point money arithmetic shared by every engine component.

Money is always a ``Decimal`` with two fractional digits. Rates are kept at
``RATE_PLACES`` fractional digits so that percentage and division steps do not
drift across the hundreds of payments of a long loan.
"""

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
RATE_PLACES = 10
RATE_QUANTUM = Decimal(1).scaleb(-RATE_PLACES)

MoneyLike = Decimal | int | float | str


def to_decimal(value: MoneyLike) -> Decimal:
    """Convert a value to ``Decimal`` without rounding.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary value")
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_cents(value: MoneyLike) -> Decimal:
    """Round to the cent, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value: MoneyLike) -> Decimal:
    """Parse an input amount into a two-digit ``Decimal``."""
    return round_cents(value)


def ceil_cents(value: MoneyLike) -> Decimal:
    """Round up to the next cent."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_CEILING)


def monthly_rate(annual_rate_percent: MoneyLike) -> Decimal:
    """Monthly rate from an annual percentage (``18`` -> ``0.015``)."""
    rate = to_decimal(annual_rate_percent) / Decimal(100) / Decimal(12)
    return rate.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)


def money_sum(values: Iterable[MoneyLike]) -> Decimal:
    """Sum amounts and round the total to the cent."""
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return round_cents(total)


def take(available: Decimal, owed: Decimal) -> tuple[Decimal, Decimal]:
    """Pay ``owed`` out of ``available``.

    Returns
    -------
    tuple[Decimal, Decimal]
        The amount applied (capped at ``owed``) and what is left over.
    """
    applied = min(available, max(owed, ZERO))
    return applied, available - applied
