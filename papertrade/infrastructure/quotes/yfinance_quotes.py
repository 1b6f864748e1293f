from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

import anyio
import yfinance as yf

from .quote_base import QuoteDTO, QuoteProvider, QuoteProviderError

logger = logging.getLogger(__name__)


# ==========================
# Infrastructure: yfinance
# ==========================

class YFinanceQuoteProvider(QuoteProvider):
    INDEX_QUOTE_TYPES = {"INDEX"}

    def _fetch(self, symbol: str) -> Optional[QuoteDTO]:
        """Blocking call into yfinance; always run in a worker thread."""
        ticker = yf.Ticker(symbol)
        try:
            fast = ticker.fast_info
            last_price = fast["lastPrice"]
            currency = fast["currency"]
            quote_type = fast["quoteType"]
        except KeyError:
            logger.warning(f"YFinance returned no quote data for {symbol}")
            return None

        if last_price is None or currency is None:
            logger.warning(f"YFinance quote for {symbol} is incomplete")
            return None

        name = symbol
        try:
            name = ticker.info.get("shortName") or symbol
        except Exception as e:
            logger.debug(f"No display name for {symbol}: {e}")

        return QuoteDTO(
            symbol=symbol.upper(),
            name=name,
            # str() first so the float's binary noise isn't carried over
            price=Decimal(str(last_price)),
            currency=str(currency).upper(),
            is_index=str(quote_type).upper() in self.INDEX_QUOTE_TYPES,
        )

    async def get_quote(self, symbol: str) -> Optional[QuoteDTO]:
        try:
            return await anyio.to_thread.run_sync(self._fetch, symbol.strip())
        except Exception as e:
            logger.error(f"Error getting quote for {symbol} from yfinance: {e}")
            raise QuoteProviderError(str(e)) from e
