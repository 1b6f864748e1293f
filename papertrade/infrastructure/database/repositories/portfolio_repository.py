import logging
from typing import Iterable, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.infrastructure.database.models.portfolio_model import PortfolioModel
from papertrade.domain.portfolio.dtos.portfolio_dto import (
    PortfolioDTO,
    PortfolioAggregates,
)

logger = logging.getLogger(__name__)


class PortfolioRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ------------------ READS ------------------

    async def _get_model(
        self,
        portfolio_id: int,
        for_update: bool = False,
    ) -> Optional[PortfolioModel]:
        stmt = select(PortfolioModel).where(PortfolioModel.id == portfolio_id)
        if for_update:
            stmt = stmt.with_for_update()
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def get(self, portfolio_id: int) -> Optional[PortfolioDTO]:
        model = await self._get_model(portfolio_id)
        return self._model_to_dto(model) if model else None

    async def get_for_update(self, portfolio_id: int) -> Optional[PortfolioDTO]:
        """Row-locks the portfolio so aggregate rewrites don't interleave."""
        model = await self._get_model(portfolio_id, for_update=True)
        return self._model_to_dto(model) if model else None

    async def list_for_trader(
        self,
        trader_id: str,
        currency: Optional[str] = None,
        for_update: bool = False,
    ) -> List[PortfolioDTO]:
        stmt = (
            select(PortfolioModel)
            .where(PortfolioModel.trader_id == trader_id)
            .order_by(PortfolioModel.id)
        )
        if currency:
            stmt = stmt.where(PortfolioModel.currency == currency)
        if for_update:
            stmt = stmt.with_for_update()

        res = await self.session.execute(stmt)
        return [self._model_to_dto(m) for m in res.scalars().all()]

    # ------------------ WRITES ------------------

    async def create(self, trader_id: str, name: str, currency: str) -> PortfolioDTO:
        """
        Create an empty portfolio (all amounts zero).
        """
        model = PortfolioModel(
            trader_id=trader_id,
            name=name,
            currency=currency,
        )

        self.session.add(model)
        await self.session.flush()
        await self.session.refresh(model)

        logger.info(f"💼 Portfolio {model.id} '{name}' created in {currency}")
        return self._model_to_dto(model)

    async def update_aggregates(
        self,
        portfolio_id: int,
        aggregates: PortfolioAggregates,
    ) -> PortfolioDTO:
        model = await self._get_model(portfolio_id, for_update=True)
        if model is None:
            raise LookupError(f"Portfolio {portfolio_id} not found")

        model.invested_amount = aggregates.invested_amount
        model.current_amount = aggregates.current_amount
        model.profit_loss_amount = aggregates.profit_loss_amount

        await self.session.flush()
        await self.session.refresh(model)

        return self._model_to_dto(model)

    async def delete_many(self, portfolio_ids: Iterable[int]) -> int:
        portfolio_ids = list(portfolio_ids)
        if not portfolio_ids:
            return 0

        stmt = (
            delete(PortfolioModel)
            .where(PortfolioModel.id.in_(portfolio_ids))
            .execution_options(synchronize_session=False)
        )
        res = await self.session.execute(stmt)
        return res.rowcount or 0

    @staticmethod
    def _model_to_dto(model: PortfolioModel) -> PortfolioDTO:
        return PortfolioDTO(
            id=model.id,
            trader_id=model.trader_id,
            name=model.name,
            currency=model.currency,
            invested_amount=model.invested_amount,
            current_amount=model.current_amount,
            profit_loss_amount=model.profit_loss_amount,
            created_at=model.created_at,
        )
