import logging
from typing import Optional

import anyio

from .quote_base import QuoteDTO, QuoteProvider, QuoteProviderError, QuoteUnavailableError

logger = logging.getLogger(__name__)


class TimedQuoteProvider(QuoteProvider):
    """
    Wraps any provider so a lookup never hangs an order.

    Timeouts and unexpected provider errors both surface as
    QuoteProviderError subclasses; "unknown symbol" stays None.
    """

    def __init__(self, provider: QuoteProvider, timeout_seconds: float = 5.0):
        self._provider = provider
        self.timeout_seconds = timeout_seconds

    async def get_quote(self, symbol: str) -> Optional[QuoteDTO]:
        try:
            with anyio.fail_after(self.timeout_seconds):
                return await self._provider.get_quote(symbol)
        except TimeoutError as e:
            logger.error(
                f"Quote lookup for {symbol} timed out after {self.timeout_seconds}s"
            )
            raise QuoteUnavailableError(f"No quote for {symbol}: timed out") from e
        except QuoteProviderError:
            raise
        except Exception as e:
            logger.error(f"Quote provider failed for {symbol}: {e}")
            raise QuoteProviderError(f"No quote for {symbol}: {e}") from e
