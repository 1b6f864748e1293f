from dependency_injector import containers, providers
from .account_service import AccountService


class AccountsModule(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=[".controller"])
    root = providers.DependenciesContainer()

    account_service = providers.Factory(
        AccountService,
        db_client=root.db_client,
        locks=root.locks,
        amount_limit=root.config.provided.amount_limit,
    )
