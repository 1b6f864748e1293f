"""
Sell eligibility policies.

A policy looks at the trader's full history for the symbol and the fresh
quote, and either lets the sell through (None) or names why not.
"""

from typing import List, Optional, Protocol

from papertrade.domain.trading.dtos.transaction_dto import TradingTransactionDTO
from papertrade.domain.trading.positions import net_outstanding
from papertrade.infrastructure.quotes.quote_base import QuoteDTO


class SellPolicy(Protocol):
    def refusal_reason(
        self,
        trader_id: str,
        quote: QuoteDTO,
        history: List[TradingTransactionDTO],
    ) -> Optional[str]: ...


class AllowAllSellPolicy(SellPolicy):
    def refusal_reason(self, trader_id, quote, history) -> Optional[str]:
        return None


class CurrencyConsistencySellPolicy(SellPolicy):
    """
    Refuses to sell a symbol in the quoted currency while the trader still
    holds it in a different currency (e.g. the listing switched currency
    after the shares were bought).
    """

    def refusal_reason(
        self,
        trader_id: str,
        quote: QuoteDTO,
        history: List[TradingTransactionDTO],
    ) -> Optional[str]:
        other_currencies = sorted({t.currency for t in history} - {quote.currency})

        for currency in other_currencies:
            held = net_outstanding(t for t in history if t.currency == currency)
            if held > 0:
                return (
                    f"{trader_id} still holds {held} shares of {quote.symbol} "
                    f"in {currency}; cannot sell in {quote.currency}"
                )
        return None


def build_sell_policy(guard_enabled: bool) -> SellPolicy:
    return CurrencyConsistencySellPolicy() if guard_enabled else AllowAllSellPolicy()
