import logging
from typing import Dict, Union

from papertrade.infrastructure.database.client import PostgresClient
from papertrade.infrastructure.quotes.quote_base import QuoteProvider

logger = logging.getLogger(__name__)


class HealthService:
    def __init__(self, db_client: PostgresClient, quote_provider: QuoteProvider):
        self.db_client = db_client
        self.quote_provider = quote_provider

    async def check_database_health(self) -> bool:
        try:
            return await self.db_client.health_check()
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    def quote_source(self) -> str:
        inner = getattr(self.quote_provider, "_provider", self.quote_provider)
        return type(inner).__name__

    async def report(self) -> Dict[str, Union[str, bool]]:
        db_health = await self.check_database_health()
        return {
            "status": "healthy" if db_health else "unhealthy",
            "database": db_health,
            "quote_provider": self.quote_source(),
        }
