import logging
from typing import Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.commons.enums.trading_enums import TradingDeed
from papertrade.domain.trading.dtos.transaction_dto import TradingTransactionDTO
from papertrade.infrastructure.database.models.trading_transaction_model import (
    TradingTransactionModel,
)

logger = logging.getLogger(__name__)


class TradingTransactionRepository:
    """
    Repository for the trading ledger.

    Rows are append-only; the only update allowed is (un)setting portfolio_id.
    Every list is ordered by id, which is the chronological order.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize repository.

        Args:
            session: Database session (the caller owns the transaction)
        """
        self.session = session

    async def add(self, txn: TradingTransactionDTO) -> TradingTransactionDTO:
        """
        Append a transaction.

        Args:
            txn: Transaction to record (id is ignored)

        Returns:
            Recorded transaction with its database id
        """
        model = TradingTransactionModel(
            trader_id=txn.trader_id,
            symbol=txn.symbol,
            symbol_name=txn.symbol_name,
            transaction_date=txn.transaction_date,
            deed=txn.deed,
            quantity=txn.quantity,
            currency=txn.currency,
            price=txn.price,
            cost=txn.cost,
            portfolio_id=None,
        )

        self.session.add(model)
        await self.session.flush()
        await self.session.refresh(model)

        return self._model_to_dto(model)

    async def get_by_ids(self, ids: Iterable[int]) -> List[TradingTransactionDTO]:
        ids = list(ids)
        if not ids:
            return []

        stmt = (
            select(TradingTransactionModel)
            .where(TradingTransactionModel.id.in_(ids))
            .order_by(TradingTransactionModel.id)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return [self._model_to_dto(m) for m in result.scalars().all()]

    async def list_for_symbol(
        self,
        trader_id: str,
        symbol: str,
    ) -> List[TradingTransactionDTO]:
        stmt = (
            select(TradingTransactionModel)
            .where(TradingTransactionModel.trader_id == trader_id)
            .where(TradingTransactionModel.symbol == symbol)
            .order_by(TradingTransactionModel.id)
        )
        result = await self.session.execute(stmt)
        return [self._model_to_dto(m) for m in result.scalars().all()]

    async def list_for_trader(
        self,
        trader_id: str,
        currency: Optional[str] = None,
        unlinked: bool = False,
    ) -> List[TradingTransactionDTO]:
        stmt = (
            select(TradingTransactionModel)
            .where(TradingTransactionModel.trader_id == trader_id)
            .order_by(TradingTransactionModel.id)
        )
        if currency:
            stmt = stmt.where(TradingTransactionModel.currency == currency)
        if unlinked:
            stmt = stmt.where(TradingTransactionModel.portfolio_id.is_(None))

        result = await self.session.execute(stmt)
        return [self._model_to_dto(m) for m in result.scalars().all()]

    async def list_by_portfolio(
        self,
        trader_id: str,
        portfolio_id: int,
    ) -> List[TradingTransactionDTO]:
        stmt = (
            select(TradingTransactionModel)
            .where(TradingTransactionModel.trader_id == trader_id)
            .where(TradingTransactionModel.portfolio_id == portfolio_id)
            .order_by(TradingTransactionModel.id)
        )
        result = await self.session.execute(stmt)
        return [self._model_to_dto(m) for m in result.scalars().all()]

    async def set_portfolio(
        self,
        ids: Iterable[int],
        portfolio_id: Optional[int],
    ) -> int:
        """Link (or, with None, unlink) the given transactions. Returns rows touched."""
        ids = list(ids)
        if not ids:
            return 0

        stmt = (
            update(TradingTransactionModel)
            .where(TradingTransactionModel.id.in_(ids))
            .values(portfolio_id=portfolio_id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def unlink_portfolios(self, portfolio_ids: Iterable[int]) -> int:
        """Detach every transaction from the given portfolios."""
        portfolio_ids = list(portfolio_ids)
        if not portfolio_ids:
            return 0

        stmt = (
            update(TradingTransactionModel)
            .where(TradingTransactionModel.portfolio_id.in_(portfolio_ids))
            .values(portfolio_id=None)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    def _model_to_dto(model: TradingTransactionModel) -> TradingTransactionDTO:
        return TradingTransactionDTO(
            id=model.id,
            trader_id=model.trader_id,
            symbol=model.symbol,
            symbol_name=model.symbol_name,
            transaction_date=model.transaction_date,
            deed=TradingDeed(model.deed),
            quantity=model.quantity,
            currency=model.currency,
            price=model.price,
            cost=model.cost,
            portfolio_id=model.portfolio_id,
            created_at=model.created_at,
        )
