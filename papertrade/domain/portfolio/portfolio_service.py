import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.commons.locks import KeyedLocks
from papertrade.commons.results import (
    AbortTransaction,
    Conflict,
    NoChange,
    NotFound,
    Ok,
    OperationResult,
    Rejected,
)
from papertrade.domain.portfolio.aggregation import compute_aggregates
from papertrade.domain.portfolio.dtos.portfolio_dto import (
    CreatePortfolioRequest,
    LinkResultDTO,
    PortfolioDetailDTO,
    PortfolioDTO,
)
from papertrade.domain.trading.dtos.transaction_dto import TradingTransactionDTO
from papertrade.infrastructure.database.client import PostgresClient
from papertrade.infrastructure.database.repositories.iso_data_repository import IsoDataRepository
from papertrade.infrastructure.database.repositories.portfolio_repository import PortfolioRepository
from papertrade.infrastructure.database.repositories.trading_transaction_repository import (
    TradingTransactionRepository,
)
from papertrade.infrastructure.quotes.quote_base import QuoteProvider, QuoteProviderError

logger = logging.getLogger(__name__)


def portfolio_lock_key(portfolio_id: int) -> tuple:
    return ("portfolio", portfolio_id)


class PortfolioService:
    """
    Portfolios group a trader's transactions by currency.

    Linking or unlinking transactions recomputes the portfolio's invested,
    current and profit/loss amounts from its linked transactions (FIFO),
    inside the same database transaction.
    """

    def __init__(
        self,
        db_client: PostgresClient,
        quote_provider: QuoteProvider,
        locks: KeyedLocks,
    ):
        self.db_client = db_client
        self.quote_provider = quote_provider
        self.locks = locks

    # ------------------ CREATE / READ ------------------

    async def create_portfolio(
        self,
        trader_id: str,
        name: str,
        currency: str,
    ) -> OperationResult[PortfolioDTO]:
        name = (name or "").strip()
        currency = (currency or "").strip().upper()
        if not name:
            return Rejected("Portfolio name is required")
        if len(currency) != 3:
            return Rejected("Currency must be a 3-letter ISO code")

        try:
            async with self.db_client.transaction() as session:
                portfolio = await self._create(session, trader_id, name, currency)
        except AbortTransaction as e:
            logger.warning(f"Portfolio '{name}' not created for {trader_id}: {e.result.reason}")
            return e.result

        return Ok(portfolio)

    async def list_portfolios(
        self,
        trader_id: str,
        currency: Optional[str] = None,
    ) -> List[PortfolioDTO]:
        """Portfolios whose currency is still active, oldest first."""
        async with self.db_client.get_session() as session:
            active = await IsoDataRepository(session).active_currencies()
            portfolios = await PortfolioRepository(session).list_for_trader(trader_id, currency)

        return [p for p in portfolios if p.currency in active]

    async def portfolio_details(
        self,
        trader_id: str,
        portfolio_id: int,
    ) -> OperationResult[PortfolioDetailDTO]:
        async with self.db_client.get_session() as session:
            portfolio = await PortfolioRepository(session).get(portfolio_id)
            if portfolio is None:
                return NotFound(f"Portfolio {portfolio_id} not found")
            if portfolio.trader_id != trader_id:
                return Conflict(f"Portfolio {portfolio_id} does not belong to {trader_id}")

            transactions = await TradingTransactionRepository(session).list_by_portfolio(
                trader_id, portfolio_id
            )

        return Ok(PortfolioDetailDTO(portfolio=portfolio, transactions=transactions))

    # ------------------ LINK / UNLINK ------------------

    async def link_transactions(
        self,
        trader_id: str,
        transaction_ids: Iterable[int],
        portfolio_id: Optional[int] = None,
        new_portfolio: Optional[CreatePortfolioRequest] = None,
    ) -> OperationResult[LinkResultDTO]:
        """
        Attach unlinked transactions to an existing portfolio or to one created
        on the spot. All or nothing: the first offending transaction aborts the
        whole batch.
        """
        if (portfolio_id is None) == (new_portfolio is None):
            return Rejected("Give either an existing portfolio or a new one, not both")

        ids = sorted(set(transaction_ids))
        if not ids:
            return NoChange()

        lock_key = portfolio_lock_key(portfolio_id) if portfolio_id is not None else ("trader", trader_id)

        try:
            async with self.locks.hold(lock_key):
                async with self.db_client.transaction() as session:
                    portfolios = PortfolioRepository(session)
                    ledger = TradingTransactionRepository(session)

                    if portfolio_id is not None:
                        portfolio = await self._owned_portfolio(portfolios, trader_id, portfolio_id)
                        currency = portfolio.currency
                    else:
                        currency = new_portfolio.currency.strip().upper()

                    transactions = await ledger.get_by_ids(ids)
                    self._check_linkable(trader_id, ids, transactions, currency)

                    if portfolio_id is None:
                        portfolio = await self._create(session, trader_id, new_portfolio.name.strip(), currency)

                    await ledger.set_portfolio(ids, portfolio.id)
                    portfolio = await self._recompute(session, trader_id, portfolio.id)
        except AbortTransaction as e:
            logger.warning(f"Link of {ids} refused for {trader_id}: {e.result.reason}")
            return e.result

        logger.info(f"🔗 Linked {len(ids)} transactions to portfolio {portfolio.id}")
        return Ok(
            LinkResultDTO(
                portfolio=portfolio,
                transaction_ids=ids,
                portfolio_created=new_portfolio is not None,
            )
        )

    async def unlink_transactions(
        self,
        trader_id: str,
        portfolio_id: int,
        transaction_ids: Iterable[int],
    ) -> OperationResult[PortfolioDTO]:
        """Detach transactions; the portfolio stays even when emptied."""
        ids = sorted(set(transaction_ids))
        if not ids:
            return NoChange()

        try:
            async with self.locks.hold(portfolio_lock_key(portfolio_id)):
                async with self.db_client.transaction() as session:
                    portfolios = PortfolioRepository(session)
                    ledger = TradingTransactionRepository(session)

                    await self._owned_portfolio(portfolios, trader_id, portfolio_id)

                    transactions = {t.id: t for t in await ledger.get_by_ids(ids)}
                    for txn_id in ids:
                        txn = transactions.get(txn_id)
                        if txn is None or txn.trader_id != trader_id:
                            raise AbortTransaction(NotFound(f"Transaction {txn_id} not found"))
                        if txn.portfolio_id != portfolio_id:
                            raise AbortTransaction(
                                Conflict(f"Transaction {txn_id} is not linked to portfolio {portfolio_id}")
                            )

                    await ledger.set_portfolio(ids, None)
                    portfolio = await self._recompute(session, trader_id, portfolio_id)
        except AbortTransaction as e:
            logger.warning(f"Unlink of {ids} refused for {trader_id}: {e.result.reason}")
            return e.result

        logger.info(f"Unlinked {len(ids)} transactions from portfolio {portfolio_id}")
        return Ok(portfolio)

    async def refresh_aggregates(
        self,
        trader_id: str,
        portfolio_id: int,
    ) -> OperationResult[PortfolioDTO]:
        """Re-mark a portfolio to the latest quotes."""
        try:
            async with self.locks.hold(portfolio_lock_key(portfolio_id)):
                async with self.db_client.transaction() as session:
                    await self._owned_portfolio(PortfolioRepository(session), trader_id, portfolio_id)
                    portfolio = await self._recompute(session, trader_id, portfolio_id)
        except AbortTransaction as e:
            return e.result

        return Ok(portfolio)

    # ------------------ HELPERS ------------------

    async def _create(
        self,
        session: AsyncSession,
        trader_id: str,
        name: str,
        currency: str,
    ) -> PortfolioDTO:
        if not name:
            raise AbortTransaction(Rejected("Portfolio name is required"))
        if not await IsoDataRepository(session).is_currency_active(currency):
            raise AbortTransaction(NotFound(f"Currency {currency} is not active"))

        return await PortfolioRepository(session).create(trader_id, name, currency)

    @staticmethod
    async def _owned_portfolio(
        portfolios: PortfolioRepository,
        trader_id: str,
        portfolio_id: int,
    ) -> PortfolioDTO:
        portfolio = await portfolios.get_for_update(portfolio_id)
        if portfolio is None:
            raise AbortTransaction(NotFound(f"Portfolio {portfolio_id} not found"))
        if portfolio.trader_id != trader_id:
            raise AbortTransaction(Conflict(f"Portfolio {portfolio_id} does not belong to {trader_id}"))
        return portfolio

    @staticmethod
    def _check_linkable(
        trader_id: str,
        ids: List[int],
        transactions: List[TradingTransactionDTO],
        currency: str,
    ) -> None:
        by_id = {t.id: t for t in transactions}
        for txn_id in ids:
            txn = by_id.get(txn_id)
            if txn is None or txn.trader_id != trader_id:
                raise AbortTransaction(NotFound(f"Transaction {txn_id} not found"))
            if txn.is_linked:
                raise AbortTransaction(
                    Conflict(f"Transaction {txn_id} is already linked to portfolio {txn.portfolio_id}")
                )
            if txn.currency != currency:
                raise AbortTransaction(
                    Conflict(f"Transaction {txn_id} is in {txn.currency}, portfolio is in {currency}")
                )

    async def _recompute(
        self,
        session: AsyncSession,
        trader_id: str,
        portfolio_id: int,
    ) -> PortfolioDTO:
        linked = await TradingTransactionRepository(session).list_by_portfolio(trader_id, portfolio_id)
        prices = await self._latest_prices(t.symbol for t in linked)
        aggregates = compute_aggregates(linked, prices)

        portfolio = await PortfolioRepository(session).update_aggregates(portfolio_id, aggregates)
        logger.info(
            f"💼 Portfolio {portfolio_id} balance updated: invested={aggregates.invested_amount} "
            f"current={aggregates.current_amount} p/l={aggregates.profit_loss_amount}"
        )
        return portfolio

    async def _latest_prices(self, symbols: Iterable[str]) -> Dict[str, Decimal]:
        prices: Dict[str, Decimal] = {}
        for symbol in sorted(set(symbols)):
            try:
                quote = await self.quote_provider.get_quote(symbol)
            except QuoteProviderError as e:
                logger.warning(f"No quote for {symbol}, carried at cost: {e}")
                continue
            if quote is not None:
                prices[symbol] = quote.price
        return prices
