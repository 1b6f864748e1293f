from dependency_injector import containers, providers
from .iso_service import IsoService


class IsoModule(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=[".controller"])
    root = providers.DependenciesContainer()

    iso_service = providers.Factory(
        IsoService,
        db_client=root.db_client,
    )
