from dependency_injector import containers, providers
from .positions import PositionTracker
from .sell_policy import build_sell_policy
from .trading_service import TradingService


class TradingModule(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=[".controller"])
    root = providers.DependenciesContainer()

    sell_policy = providers.Singleton(
        build_sell_policy,
        guard_enabled=root.config.provided.sell_guard_enabled,
    )

    position_tracker = providers.Factory(
        PositionTracker,
        db_client=root.db_client,
        quote_provider=root.quote_provider,
    )

    trading_service = providers.Factory(
        TradingService,
        db_client=root.db_client,
        quote_provider=root.quote_provider,
        locks=root.locks,
        sell_policy=sell_policy,
        amount_limit=root.config.provided.amount_limit,
    )
