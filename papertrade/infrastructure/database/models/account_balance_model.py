"""
Account Balance Database Model

One row per (trader, currency).
"""

from decimal import Decimal

from sqlalchemy import Column, String

from papertrade.infrastructure.database.models.base import BaseModel, MONEY


class AccountBalanceModel(BaseModel):
    """Account balance database model."""

    __tablename__ = "account_balances"

    trader_id = Column(String, primary_key=True)
    currency = Column(String(3), primary_key=True)
    trading_amount = Column(MONEY, nullable=False, default=Decimal("0"))
    non_trading_amount = Column(MONEY, nullable=False, default=Decimal("0"))
