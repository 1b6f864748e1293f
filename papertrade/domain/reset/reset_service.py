import logging
from typing import Optional

from papertrade.commons.locks import KeyedLocks
from papertrade.commons.results import (
    AbortTransaction,
    NoChange,
    NotFound,
    Ok,
    OperationResult,
    Rejected,
)
from papertrade.domain.portfolio.portfolio_service import portfolio_lock_key
from papertrade.domain.reset.dtos.reset_dto import ResetSummary
from papertrade.infrastructure.database.client import PostgresClient
from papertrade.infrastructure.database.repositories.iso_data_repository import IsoDataRepository
from papertrade.infrastructure.database.repositories.portfolio_repository import PortfolioRepository
from papertrade.infrastructure.database.repositories.trading_transaction_repository import (
    TradingTransactionRepository,
)

logger = logging.getLogger(__name__)


class ResetService:
    """
    Clears a trader's portfolio groupings.

    Transactions are detached and the portfolios deleted; the trading ledger
    and the balances are left untouched.
    """

    def __init__(self, db_client: PostgresClient, locks: KeyedLocks):
        self.db_client = db_client
        self.locks = locks

    async def reset_portfolios(
        self,
        trader_id: str,
        reset_all: bool,
        currency: Optional[str] = None,
    ) -> OperationResult[ResetSummary]:
        currency = (currency or "").strip().upper() or None
        if not reset_all and currency is None:
            return Rejected("Currency is required unless resetting all portfolios")

        scope_currency = None if reset_all else currency
        try:
            async with self.locks.hold(("reset", trader_id)), self.locks.hold(("trader", trader_id)):
                async with self.db_client.transaction() as session:
                    if not reset_all:
                        if not await IsoDataRepository(session).is_currency_active(currency):
                            raise AbortTransaction(NotFound(f"Currency {currency} is not active"))

                    portfolios = PortfolioRepository(session)
                    scope = await portfolios.list_for_trader(trader_id, scope_currency)
                    if not scope:
                        return NoChange(ResetSummary())

                    # same per-portfolio keys as link/unlink/refresh, in id order
                    async with self.locks.hold_many(portfolio_lock_key(p.id) for p in scope):
                        scope = await portfolios.list_for_trader(trader_id, scope_currency, for_update=True)
                        if not scope:
                            return NoChange(ResetSummary())

                        portfolio_ids = [p.id for p in scope]
                        unlinked = await TradingTransactionRepository(session).unlink_portfolios(portfolio_ids)
                        deleted = await portfolios.delete_many(portfolio_ids)
        except AbortTransaction as e:
            logger.warning(f"Reset refused for {trader_id}: {e.result.reason}")
            return e.result

        summary = ResetSummary(portfolios_deleted=deleted, transactions_unlinked=unlinked)
        logger.info(
            f"🧹 Reset for {trader_id} ({'all currencies' if reset_all else currency}): "
            f"{deleted} portfolios deleted, {unlinked} transactions unlinked"
        )
        return Ok(summary)
