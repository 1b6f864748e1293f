import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.domain.accounts.dtos.account_dto import BankAccountDTO
from papertrade.infrastructure.database.models.bank_account_model import (
    BankAccountModel,
    BankAccountTransactionModel,
)

logger = logging.getLogger(__name__)


class BankAccountRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, bank_account_id: int, for_update: bool = False) -> Optional[BankAccountDTO]:
        stmt = select(BankAccountModel).where(BankAccountModel.id == bank_account_id)
        if for_update:
            stmt = stmt.with_for_update()
        res = await self.session.execute(stmt)
        model = res.scalar_one_or_none()
        if not model:
            return None
        return BankAccountDTO.model_validate(model)

    async def create(
        self,
        trader_id: str,
        currency: str,
        bank_name: str,
        bank_account_number: str,
    ) -> BankAccountDTO:
        model = BankAccountModel(
            trader_id=trader_id,
            currency=currency,
            bank_name=bank_name,
            bank_account_number=bank_account_number,
            in_use=True,
        )
        self.session.add(model)
        await self.session.flush()
        return BankAccountDTO.model_validate(model)

    async def mark_not_in_use(self, bank_account_id: int) -> BankAccountDTO:
        stmt = select(BankAccountModel).where(BankAccountModel.id == bank_account_id)
        res = await self.session.execute(stmt)
        model = res.scalar_one()
        model.in_use = False
        await self.session.flush()
        return BankAccountDTO.model_validate(model)

    async def add_transaction(
        self,
        bank_account: BankAccountDTO,
        description: str,
    ) -> int:
        model = BankAccountTransactionModel(
            trader_id=bank_account.trader_id,
            bank_account_id=bank_account.id,
            currency=bank_account.currency,
            description=description,
        )
        self.session.add(model)
        await self.session.flush()

        logger.info(f"Bank account transaction created for account {bank_account.id}")
        return model.id
