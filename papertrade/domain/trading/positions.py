import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.domain.trading.dtos.position_dto import OutstandingPositionDTO
from papertrade.domain.trading.dtos.transaction_dto import TradingTransactionDTO
from papertrade.infrastructure.database.client import PostgresClient
from papertrade.infrastructure.database.repositories.trading_transaction_repository import (
    TradingTransactionRepository,
)
from papertrade.infrastructure.quotes.quote_base import QuoteProvider, QuoteProviderError

logger = logging.getLogger(__name__)


def net_outstanding(transactions: Iterable[TradingTransactionDTO]) -> int:
    """
    Net held quantity: +quantity per BUY, -quantity per SELL, in id order.

    A ledger that only accepted valid sells never goes below zero; a negative
    total means the history is corrupt and is reported as 0.
    """
    total = 0
    for txn in sorted(transactions, key=lambda t: t.id or 0):
        total += txn.signed_quantity

    if total < 0:
        logger.error(f"Ledger nets to {total} (more sold than bought), reporting 0")
        return 0
    return total


class PositionTracker:
    def __init__(self, db_client: PostgresClient, quote_provider: QuoteProvider):
        self.db_client = db_client
        self.quote_provider = quote_provider

    async def outstanding_quantity(
        self,
        trader_id: str,
        symbol: str,
        session: Optional[AsyncSession] = None,
    ) -> int:
        """
        Net quantity of ``symbol`` held by the trader.

        Pass ``session`` to read inside an open transaction (the order
        executor does this while holding the balance row lock).
        """
        if session is not None:
            history = await TradingTransactionRepository(session).list_for_symbol(trader_id, symbol)
            return net_outstanding(history)

        async with self.db_client.get_session() as own_session:
            history = await TradingTransactionRepository(own_session).list_for_symbol(trader_id, symbol)
        return net_outstanding(history)

    async def outstanding_positions(
        self,
        trader_id: str,
        currency: Optional[str] = None,
    ) -> List[OutstandingPositionDTO]:
        """
        Every symbol the trader still holds, valued at the latest quote.

        Symbols netting to zero are left out ("nothing to sell").
        """
        async with self.db_client.get_session() as session:
            txns = await TradingTransactionRepository(session).list_for_trader(trader_id, currency)

        grouped: Dict[Tuple[str, str], List[TradingTransactionDTO]] = defaultdict(list)
        names: Dict[str, str] = {}
        for txn in txns:
            grouped[(txn.symbol, txn.currency)].append(txn)
            names[txn.symbol] = txn.symbol_name

        positions: List[OutstandingPositionDTO] = []
        for (symbol, ccy), history in sorted(grouped.items()):
            quantity = net_outstanding(history)
            if quantity <= 0:
                continue

            position = OutstandingPositionDTO(
                symbol=symbol,
                symbol_name=names[symbol],
                currency=ccy,
                outstanding_quantity=quantity,
            )

            try:
                quote = await self.quote_provider.get_quote(symbol)
            except QuoteProviderError as e:
                logger.warning(f"No quote for {symbol}, reporting without valuation: {e}")
                quote = None

            if quote is not None:
                position.current_price = quote.price
                position.current_amount = quote.price * quantity

            positions.append(position)

        return positions
