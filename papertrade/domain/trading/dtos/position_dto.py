from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class OutstandingPositionDTO(BaseModel):
    symbol: str
    symbol_name: str
    currency: str
    outstanding_quantity: int
    current_price: Optional[Decimal] = None
    current_amount: Optional[Decimal] = None
