from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, List, Optional, Union

from papertrade.commons.enums.trading_enums import QuoteType
from .quote_base import QuoteDTO, QuoteProvider, QuoteProviderError

logger = logging.getLogger(__name__)


# ==========================
# Infrastructure: JSON catalog
# ==========================

class StaticQuoteProvider(QuoteProvider):
    """
    Quotes from a JSON catalog:

        {"stocks": [{"symbol": "0005.HK", "name": "HSBC HOLDINGS",
                     "type": "equity", "currency": "HKD", "price": "61.25"}, ...]}

    Deterministic, so it backs development and tests. Prices can be moved with
    ``set_price`` to simulate the market.
    """

    def __init__(
        self,
        catalog_path: Optional[Union[str, Path]] = None,
        quotes: Optional[List[QuoteDTO]] = None,
    ) -> None:
        self.catalog_path = Path(catalog_path) if catalog_path else None
        self._quotes: Optional[Dict[str, QuoteDTO]] = None
        if quotes is not None:
            self._quotes = {q.symbol.upper(): q for q in quotes}

    # -------- internal helpers --------

    def _load(self) -> Dict[str, QuoteDTO]:
        if self._quotes is not None:
            return self._quotes

        if self.catalog_path is None:
            raise QuoteProviderError("No quote catalog configured")

        try:
            raw = json.loads(self.catalog_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise QuoteProviderError(f"Cannot read quote catalog {self.catalog_path}: {e}") from e

        if "stocks" not in raw:
            raise QuoteProviderError("Invalid quote catalog: missing 'stocks'")

        quotes: Dict[str, QuoteDTO] = {}
        for entry in raw["stocks"]:
            try:
                quote = QuoteDTO(
                    symbol=entry["symbol"],
                    name=entry.get("name", entry["symbol"]),
                    price=Decimal(str(entry["price"])),
                    currency=entry["currency"].upper(),
                    is_index=entry.get("type", QuoteType.EQUITY.value).lower() == QuoteType.INDEX.value,
                )
            except (KeyError, InvalidOperation) as e:
                logger.warning(f"Skipping malformed catalog entry {entry}: {e}")
                continue
            quotes[quote.symbol.upper()] = quote

        logger.info(f"Loaded {len(quotes)} quotes from {self.catalog_path}")
        self._quotes = quotes
        return quotes

    # -------- public API --------

    async def get_quote(self, symbol: str) -> Optional[QuoteDTO]:
        return self._load().get(symbol.strip().upper())

    async def all_quotes(self) -> List[QuoteDTO]:
        return sorted(self._load().values(), key=lambda q: q.symbol)

    def set_price(self, symbol: str, price: Decimal) -> None:
        quotes = self._load()
        key = symbol.upper()
        if key not in quotes:
            raise KeyError(f"{symbol} is not in the quote catalog")
        old = quotes[key]
        quotes[key] = QuoteDTO(
            symbol=old.symbol,
            name=old.name,
            price=Decimal(price),
            currency=old.currency,
            is_index=old.is_index,
        )
