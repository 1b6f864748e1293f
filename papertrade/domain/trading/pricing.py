import logging
from decimal import Decimal
from typing import Union

from papertrade.commons.enums.trading_enums import TradingDeed
from papertrade.domain.trading.dtos.transaction_dto import CostEstimate
from papertrade.domain.trading.fees import calculate_fees, to_decimal

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


def estimate_cost(
    deed: TradingDeed,
    unit_price: Union[Decimal, int, float, str],
    quantity: int,
) -> CostEstimate:
    """
    Cost of a trade including fees.

    - BUY  → notional + fees (cash required)
    - SELL → notional - fees (cash received), floored at zero with
      ``clamped=True`` when fees swallow the whole notional
    """
    price = to_decimal(unit_price)
    if price < _ZERO:
        raise ValueError(f"unit price must be non-negative, got {price}")
    if quantity <= 0:
        raise ValueError(f"quantity must be positive, got {quantity}")

    notional = price * Decimal(quantity)
    fees = calculate_fees(notional)

    if deed == TradingDeed.BUY:
        return CostEstimate(
            deed=deed,
            unit_price=price,
            quantity=quantity,
            notional=notional,
            fees=fees,
            total_cost=notional + fees,
        )

    proceeds = notional - fees
    clamped = proceeds < _ZERO
    if clamped:
        logger.warning(
            f"Sell proceeds floored at zero: notional={notional}, fees={fees}"
        )
        proceeds = _ZERO

    return CostEstimate(
        deed=deed,
        unit_price=price,
        quantity=quantity,
        notional=notional,
        fees=fees,
        total_cost=proceeds,
        clamped=clamped,
    )
