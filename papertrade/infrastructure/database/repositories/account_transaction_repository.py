from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.infrastructure.database.models.account_transaction_model import (
    AccountTransactionModel,
)


class AccountTransactionRepository:
    """Audit trail of balance movements."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, trader_id: str, currency: str, description: str) -> int:
        model = AccountTransactionModel(
            trader_id=trader_id,
            currency=currency,
            description=description,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id
