from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from papertrade.commons.money import quantize_for_display

ZERO = Decimal("0")


class AccountBalanceDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    trader_id: str
    currency: str
    trading_amount: Decimal = ZERO
    non_trading_amount: Decimal = ZERO
    decimal_places_to_display: Optional[int] = None

    @property
    def total_amount(self) -> Decimal:
        return self.trading_amount + self.non_trading_amount

    def for_display(self) -> "AccountBalanceDTO":
        """Copy with both amounts scaled to the currency's minor units."""
        return self.model_copy(
            update={
                "trading_amount": quantize_for_display(self.trading_amount, self.decimal_places_to_display),
                "non_trading_amount": quantize_for_display(self.non_trading_amount, self.decimal_places_to_display),
            }
        )


class BankAccountDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    trader_id: str
    currency: str
    bank_name: str
    bank_account_number: str
    in_use: bool = True
