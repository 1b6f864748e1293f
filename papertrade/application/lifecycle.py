from contextlib import asynccontextmanager
import logging
import logging.config
from fastapi import FastAPI
from papertrade.application.container import container
from papertrade.domain.iso.iso_module import IsoModule
from papertrade.infrastructure.config.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.config.dictConfig(settings.get_logging_config())
    logger.info(f"Starting {settings.app_name} ({settings.environment.value})...")

    try:
        # 1) DB first: schema must exist before anything reads it
        await container.db_client().init()
        logger.info("Database initialized successfully")

        # 2) In development, make the bundled catalog's currencies tradeable
        if settings.is_development and settings.seed_iso_data:
            iso_module: IsoModule = app.state.iso_module
            added = await iso_module.iso_service().seed_defaults()
            logger.info(f"Default ISO data ensured (development mode, {added} added)")

        logger.info(f"Quote provider: {settings.quote_provider}")

        yield

    except Exception as e:
        logger.error(f"Error during startup: {str(e)}")
        raise

    finally:
        logger.info("Shutting down application...")
        await container.db_client().close()
        logger.info("Application shut down successfully")
