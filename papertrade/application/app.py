from fastapi import FastAPI
from papertrade.application.lifecycle import lifespan
from papertrade.application.module_registry import register_modules
from papertrade.infrastructure.config.settings import settings


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    register_modules(app)
    return app


app = create_app()
