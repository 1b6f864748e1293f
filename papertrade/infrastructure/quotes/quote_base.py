from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol


# ==========================
# Domain: generic interface
# ==========================

class QuoteProvider(Protocol):
    async def get_quote(self, symbol: str) -> Optional["QuoteDTO"]:
        """
        Latest quote for ``symbol`` or None when the symbol is unknown.
        Raises QuoteProviderError when the source itself is unreachable.
        """
        ...


@dataclass(frozen=True)
class QuoteDTO:
    symbol: str
    name: str
    price: Decimal
    currency: str
    is_index: bool = False


class QuoteProviderError(Exception):
    """Quote source failed (network, parsing, ...)."""
    pass


class QuoteUnavailableError(QuoteProviderError):
    """No answer within the configured timeout."""
    pass
