from dependency_injector import containers, providers
from papertrade.commons.locks import KeyedLocks
from papertrade.infrastructure.database.client import PostgresClient
from papertrade.infrastructure.config.settings import Settings
from papertrade.infrastructure.quotes.static_quotes import StaticQuoteProvider
from papertrade.infrastructure.quotes.timed_provider import TimedQuoteProvider
from papertrade.infrastructure.quotes.yfinance_quotes import YFinanceQuoteProvider


class Container(containers.DeclarativeContainer):
    config = providers.Singleton(Settings)

    db_client = providers.Singleton(
        PostgresClient,
        db_url=config().async_database_url,
        pool_size=config().db_pool_size,
        max_overflow=config().db_max_overflow,
        pool_timeout=config().db_pool_timeout,
        pool_recycle=config().db_pool_recycle,
        echo=config().db_echo,
    )

    quote_source = providers.Selector(
        config.provided.quote_provider,
        static=providers.Singleton(
            StaticQuoteProvider,
            catalog_path=config().quote_catalog_path,
        ),
        yfinance=providers.Singleton(
            YFinanceQuoteProvider,
        ),
    )

    quote_provider = providers.Singleton(
        TimedQuoteProvider,
        provider=quote_source,
        timeout_seconds=config().quote_timeout_seconds,
    )

    locks = providers.Singleton(
        KeyedLocks,
    )


container = Container()
