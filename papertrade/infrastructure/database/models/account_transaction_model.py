from sqlalchemy import Column, String, BigInteger, Text

from papertrade.infrastructure.database.models.base import BaseModel


class AccountTransactionModel(BaseModel):
    """Human readable audit line for every balance movement."""

    __tablename__ = "account_transactions"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    trader_id = Column(String, nullable=False, index=True)
    currency = Column(String(3), nullable=False)
    description = Column(Text, nullable=False)
