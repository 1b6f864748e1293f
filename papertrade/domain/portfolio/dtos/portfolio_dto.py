from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict

from papertrade.domain.trading.dtos.transaction_dto import TradingTransactionDTO

ZERO = Decimal("0")


class PortfolioDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    trader_id: str
    name: str
    currency: str
    invested_amount: Decimal = ZERO
    current_amount: Decimal = ZERO
    profit_loss_amount: Decimal = ZERO
    created_at: Optional[datetime] = None


class CreatePortfolioRequest(BaseModel):
    name: str = Field(..., min_length=1)
    currency: str = Field(..., min_length=3, max_length=3)


class PortfolioAggregates(BaseModel):
    invested_amount: Decimal = ZERO
    current_amount: Decimal = ZERO
    profit_loss_amount: Decimal = ZERO


class PortfolioDetailDTO(BaseModel):
    portfolio: PortfolioDTO
    transactions: List[TradingTransactionDTO]


class LinkResultDTO(BaseModel):
    portfolio: PortfolioDTO
    transaction_ids: List[int]
    portfolio_created: bool = False
