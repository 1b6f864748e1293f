"""
FIFO aggregates for a portfolio.

Each BUY linked to the portfolio opens a lot. Each linked SELL closes the
oldest open lots of the same symbol first. What survives is what the
portfolio still holds:

    invested_amount    = sum(lot.cost * remaining / lot.quantity)
    current_amount     = sum(remaining * latest price)
    profit_loss_amount = current_amount - invested_amount

A symbol without a price is carried at its invested amount (zero P/L).
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from decimal import Decimal
from typing import Deque, Dict, Iterable, List, Mapping

from papertrade.commons.enums.trading_enums import TradingDeed
from papertrade.domain.portfolio.dtos.portfolio_dto import PortfolioAggregates
from papertrade.domain.trading.dtos.transaction_dto import TradingTransactionDTO

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


@dataclass
class Lot:
    transaction_id: int
    quantity: int
    cost: Decimal
    remaining: int

    @property
    def invested(self) -> Decimal:
        if self.remaining == self.quantity:
            return self.cost
        return self.cost * Decimal(self.remaining) / Decimal(self.quantity)


def open_lots(transactions: Iterable[TradingTransactionDTO]) -> Dict[str, List[Lot]]:
    """
    Replay transactions in id order and return the surviving lots per symbol.
    """
    lots: Dict[str, Deque[Lot]] = defaultdict(deque)

    for txn in sorted(transactions, key=lambda t: t.id or 0):
        if txn.deed == TradingDeed.BUY:
            lots[txn.symbol].append(
                Lot(transaction_id=txn.id, quantity=txn.quantity, cost=txn.cost, remaining=txn.quantity)
            )
            continue

        queue = lots[txn.symbol]
        to_close = txn.quantity
        while to_close > 0 and queue:
            lot = queue[0]
            consume = min(lot.remaining, to_close)
            lot.remaining -= consume
            to_close -= consume
            if lot.remaining == 0:
                queue.popleft()

        if to_close > 0:
            # the rest of the sell closes lots that were never linked here
            logger.debug(
                f"Sell {txn.id} of {txn.symbol} exceeds linked holdings by {to_close}, ignored"
            )

    return {symbol: list(queue) for symbol, queue in lots.items() if queue}


def compute_aggregates(
    transactions: Iterable[TradingTransactionDTO],
    prices: Mapping[str, Decimal],
) -> PortfolioAggregates:
    invested = _ZERO
    current = _ZERO

    for symbol, lots in open_lots(transactions).items():
        symbol_invested = sum((lot.invested for lot in lots), _ZERO)
        invested += symbol_invested

        price = prices.get(symbol)
        if price is None:
            current += symbol_invested
        else:
            current += price * sum(lot.remaining for lot in lots)

    return PortfolioAggregates(
        invested_amount=invested,
        current_amount=current,
        profit_loss_amount=current - invested,
    )
