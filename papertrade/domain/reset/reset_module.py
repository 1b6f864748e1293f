from dependency_injector import containers, providers
from .reset_service import ResetService


class ResetModule(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=[".controller"])
    root = providers.DependenciesContainer()

    reset_service = providers.Factory(
        ResetService,
        db_client=root.db_client,
        locks=root.locks,
    )
