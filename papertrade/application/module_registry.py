from fastapi import FastAPI
from dependency_injector import providers
from papertrade.application.container import container as root_container


def register_modules(app: FastAPI):
    # Register Health Module
    from papertrade.domain.health.module import HealthModule
    from papertrade.domain.health.controller import router as health_router

    health_container = HealthModule(
        root=providers.DependenciesContainer(
            db_client=root_container.db_client,
            quote_provider=root_container.quote_provider,
        )
    )
    health_container.wire(modules=["papertrade.domain.health.controller"])

    app.include_router(health_router)
    app.state.health_container = health_container

    # Register ISO Module
    from papertrade.domain.iso.iso_module import IsoModule
    from papertrade.domain.iso.controller import router as iso_router

    iso_module = IsoModule(
        root=providers.DependenciesContainer(
            db_client=root_container.db_client,
        ),
    )
    iso_module.wire(modules=["papertrade.domain.iso.controller"])

    app.include_router(iso_router)
    app.state.iso_module = iso_module

    # Register Accounts Module
    from papertrade.domain.accounts.accounts_module import AccountsModule
    from papertrade.domain.accounts.controller import router as accounts_router

    accounts_module = AccountsModule(
        root=providers.DependenciesContainer(
            db_client=root_container.db_client,
            locks=root_container.locks,
            config=root_container.config,
        ),
    )
    accounts_module.wire(modules=["papertrade.domain.accounts.controller"])

    app.include_router(accounts_router)
    app.state.accounts_module = accounts_module

    # Register Trading Module
    from papertrade.domain.trading.trading_module import TradingModule
    from papertrade.domain.trading.controller import router as trading_router

    trading_module = TradingModule(
        root=providers.DependenciesContainer(
            db_client=root_container.db_client,
            quote_provider=root_container.quote_provider,
            locks=root_container.locks,
            config=root_container.config,
        ),
    )
    trading_module.wire(modules=["papertrade.domain.trading.controller"])

    app.include_router(trading_router)
    app.state.trading_module = trading_module

    # Register Reset Module
    from papertrade.domain.reset.reset_module import ResetModule
    from papertrade.domain.reset.controller import router as reset_router

    reset_module = ResetModule(
        root=providers.DependenciesContainer(
            db_client=root_container.db_client,
            locks=root_container.locks,
        ),
    )
    reset_module.wire(modules=["papertrade.domain.reset.controller"])

    app.include_router(reset_router)
    app.state.reset_module = reset_module

    # Register Portfolio Module
    from papertrade.domain.portfolio.portfolio_module import PortfolioModule
    from papertrade.domain.portfolio.controller import router as portfolio_router

    portfolio_module = PortfolioModule(
        root=providers.DependenciesContainer(
            db_client=root_container.db_client,
            quote_provider=root_container.quote_provider,
            locks=root_container.locks,
        ),
    )
    portfolio_module.wire(modules=["papertrade.domain.portfolio.controller"])

    app.include_router(portfolio_router)
    app.state.portfolio_module = portfolio_module
