import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.domain.accounts.dtos.account_dto import AccountBalanceDTO
from papertrade.infrastructure.database.models.account_balance_model import (
    AccountBalanceModel,
)

logger = logging.getLogger(__name__)


class AccountBalanceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _get_model(
        self,
        trader_id: str,
        currency: str,
        for_update: bool = False,
    ) -> Optional[AccountBalanceModel]:
        stmt = (
            select(AccountBalanceModel)
            .where(AccountBalanceModel.trader_id == trader_id)
            .where(AccountBalanceModel.currency == currency)
        )
        if for_update:
            stmt = stmt.with_for_update()
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def get(self, trader_id: str, currency: str) -> Optional[AccountBalanceDTO]:
        model = await self._get_model(trader_id, currency)
        return self._model_to_dto(model) if model else None

    async def get_for_update(self, trader_id: str, currency: str) -> Optional[AccountBalanceDTO]:
        """
        Same as get() but takes a row lock until the surrounding transaction
        ends, so concurrent orders on one (trader, currency) queue up.
        """
        model = await self._get_model(trader_id, currency, for_update=True)
        return self._model_to_dto(model) if model else None

    async def list_for_trader(self, trader_id: str) -> List[AccountBalanceDTO]:
        stmt = (
            select(AccountBalanceModel)
            .where(AccountBalanceModel.trader_id == trader_id)
            .order_by(AccountBalanceModel.currency)
        )
        res = await self.session.execute(stmt)
        return [self._model_to_dto(m) for m in res.scalars().all()]

    async def create(
        self,
        trader_id: str,
        currency: str,
        non_trading_amount: Decimal,
    ) -> AccountBalanceDTO:
        model = AccountBalanceModel(
            trader_id=trader_id,
            currency=currency,
            trading_amount=Decimal("0"),
            non_trading_amount=non_trading_amount,
        )
        self.session.add(model)
        await self.session.flush()

        logger.info(f"Account balance created for {trader_id} in {currency}")
        return self._model_to_dto(model)

    async def update_amounts(
        self,
        trader_id: str,
        currency: str,
        trading_amount: Decimal,
        non_trading_amount: Decimal,
    ) -> AccountBalanceDTO:
        """
        Overwrite both amounts. Callers read with get_for_update() first.
        """
        model = await self._get_model(trader_id, currency, for_update=True)
        if model is None:
            raise LookupError(f"No account balance for {trader_id} in {currency}")

        model.trading_amount = trading_amount
        model.non_trading_amount = non_trading_amount
        await self.session.flush()

        return self._model_to_dto(model)

    @staticmethod
    def _model_to_dto(model: AccountBalanceModel) -> AccountBalanceDTO:
        return AccountBalanceDTO(
            trader_id=model.trader_id,
            currency=model.currency,
            trading_amount=model.trading_amount,
            non_trading_amount=model.non_trading_amount,
        )
