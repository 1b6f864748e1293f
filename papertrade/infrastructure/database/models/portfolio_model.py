"""
Portfolio Database Model

Named, single-currency bucket of trading transactions with derived amounts.
"""

from decimal import Decimal

from sqlalchemy import Column, String, BigInteger, Index

from papertrade.infrastructure.database.models.base import BaseModel, MONEY


class PortfolioModel(BaseModel):
    """Portfolio database model."""
    __tablename__ = "portfolios"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    trader_id = Column(String, nullable=False)
    name = Column(String, nullable=False)
    currency = Column(String(3), nullable=False)
    invested_amount = Column(MONEY, nullable=False, default=Decimal("0"))
    current_amount = Column(MONEY, nullable=False, default=Decimal("0"))
    profit_loss_amount = Column(MONEY, nullable=False, default=Decimal("0"))

    __table_args__ = (
        Index("ix_portfolio_trader_currency", "trader_id", "currency"),
    )
