from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from papertrade.commons.enums.trading_enums import TradingDeed


class TradingTransactionDTO(BaseModel):
    """
    Executed buy or sell (Pydantic model).
    """

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    trader_id: str
    symbol: str
    symbol_name: str = ""
    transaction_date: date = Field(default_factory=date.today)
    deed: TradingDeed
    quantity: int = Field(..., gt=0)
    currency: str
    price: Decimal = Field(..., ge=0)
    cost: Decimal
    portfolio_id: Optional[int] = None

    created_at: Optional[datetime] = None

    @property
    def is_linked(self) -> bool:
        return self.portfolio_id is not None

    @property
    def signed_quantity(self) -> int:
        """+quantity for a buy, -quantity for a sell."""
        return self.quantity if self.deed == TradingDeed.BUY else -self.quantity


class CostEstimate(BaseModel):
    deed: TradingDeed
    unit_price: Decimal
    quantity: int
    notional: Decimal
    fees: Decimal
    total_cost: Decimal
    # sell proceeds would have gone negative and were floored at zero
    clamped: bool = False


class TradeReceipt(BaseModel):
    transaction_id: int
    deed: TradingDeed
    symbol: str
    quantity: int
    currency: str
    unit_price: Decimal
    total_cost: Decimal
    transferred_to_bank_account_id: Optional[int] = None
    description: str
