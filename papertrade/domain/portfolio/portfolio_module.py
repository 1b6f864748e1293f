from dependency_injector import containers, providers
from papertrade.domain.portfolio.portfolio_service import PortfolioService


class PortfolioModule(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=[".controller"])
    root = providers.DependenciesContainer()

    portfolio_service = providers.Factory(
        PortfolioService,
        db_client=root.db_client,
        quote_provider=root.quote_provider,
        locks=root.locks,
    )
