from sqlalchemy import Column, String, BigInteger, Boolean, Text

from papertrade.infrastructure.database.models.base import BaseModel


class BankAccountModel(BaseModel):
    """External bank account a trader can move sale proceeds to."""

    __tablename__ = "bank_accounts"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    trader_id = Column(String, nullable=False, index=True)
    currency = Column(String(3), nullable=False)
    bank_name = Column(String, nullable=False)
    bank_account_number = Column(String, nullable=False)
    in_use = Column(Boolean, nullable=False, default=True)


class BankAccountTransactionModel(BaseModel):
    __tablename__ = "bank_account_transactions"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    trader_id = Column(String, nullable=False, index=True)
    bank_account_id = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False)
    description = Column(Text, nullable=False)
