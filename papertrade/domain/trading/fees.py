"""Transaction fees for a trade, computed in Decimal.

Fee schedule, applied to the gross notional (price × quantity):

  transaction levy              0.005 %
  trading fee                   0.005 %
  investor compensation levy    0.002 %
  stamp duty                    0.1 %, rounded UP to a whole currency unit
  trading tariff                0.50 flat

The total is rounded to 4 decimal places, half up. The flat tariff makes
0.5000 the smallest possible fee.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Union

TRANSACTION_LEVY_RATE = Decimal("0.00005")
TRADING_FEE_RATE = Decimal("0.00005")
INVESTOR_COMPENSATION_LEVY_RATE = Decimal("0.00002")
STAMP_DUTY_RATE = Decimal("0.001")
TRADING_TARIFF = Decimal("0.50")

FEE_PLACES = Decimal("0.0001")
_WHOLE_UNIT = Decimal("1")
_ZERO = Decimal("0")


def to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    """Boundary conversion; floats go through str() to drop binary noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def stamp_duty(transaction_cost: Decimal) -> Decimal:
    return (transaction_cost * STAMP_DUTY_RATE).quantize(_WHOLE_UNIT, rounding=ROUND_CEILING)


def calculate_fees(transaction_cost: Union[Decimal, int, float, str]) -> Decimal:
    """Return the total fees (4 dp) for a gross notional ``transaction_cost``.

    Raises:
        ValueError: if ``transaction_cost`` is negative.
    """
    cost = to_decimal(transaction_cost)
    if cost < _ZERO:
        raise ValueError(f"transaction cost must be non-negative, got {cost}")

    transaction_levy = cost * TRANSACTION_LEVY_RATE
    trading_fee = cost * TRADING_FEE_RATE
    investor_compensation_levy = cost * INVESTOR_COMPENSATION_LEVY_RATE

    total = (
        transaction_levy
        + trading_fee
        + investor_compensation_levy
        + stamp_duty(cost)
        + TRADING_TARIFF
    )
    return total.quantize(FEE_PLACES, rounding=ROUND_HALF_UP)
