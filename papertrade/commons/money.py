from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

# deposits and balances must stay strictly below this
DEFAULT_AMOUNT_LIMIT = Decimal("1000000000000")

DEFAULT_MINOR_UNITS = 2


def format_amount(amount: Decimal) -> str:
    """1001.62 -> '1,001.6200'"""
    return f"{amount:,.4f}"


def quantize_for_display(amount: Decimal, minor_units: Optional[int]) -> Decimal:
    """Scale a full-precision amount to the currency's minor units."""
    places = DEFAULT_MINOR_UNITS if minor_units is None else minor_units
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
