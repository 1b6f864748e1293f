"""
Trading Transaction Database Model

One row per executed buy or sell. Rows are never updated except for
``portfolio_id``.
"""

from datetime import date

from sqlalchemy import (
    Column,
    String,
    Integer,
    BigInteger,
    Date,
    ForeignKey,
    Enum as SQLEnum,
    Index,
)

from papertrade.commons.enums.trading_enums import TradingDeed
from papertrade.infrastructure.database.models.base import BaseModel, MONEY


class TradingTransactionModel(BaseModel):
    """Trading transaction database model."""

    __tablename__ = "trading_transactions"

    # monotonic; FIFO netting sorts by it
    id = Column(BigInteger, primary_key=True, autoincrement=True)
    trader_id = Column(String, nullable=False)
    symbol = Column(String, nullable=False)
    symbol_name = Column(String, nullable=False, default="")
    transaction_date = Column(Date, nullable=False, default=date.today)
    deed = Column(SQLEnum(TradingDeed), nullable=False)
    quantity = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    price = Column(MONEY, nullable=False)
    cost = Column(MONEY, nullable=False)
    portfolio_id = Column(
        BigInteger,
        ForeignKey("portfolios.id"),
        nullable=True,
        index=True,
    )

    __table_args__ = (
        Index("ix_trading_txn_trader_symbol", "trader_id", "symbol"),
        Index("ix_trading_txn_trader_currency", "trader_id", "currency"),
    )
