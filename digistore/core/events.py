"""
Application lifecycle events
Handles startup and shutdown tasks
"""

from fastapi import FastAPI
import logging
from contextlib import asynccontextmanager

from .config import settings
from .exceptions import PrecacheError
from .logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager
    Handles startup and shutdown events
    """
    try:
        setup_logging()
        logger.info(f"Starting {settings.APP_NAME}...")

        await app.state.storage.connect()
        logger.info(f"State storage ready ({app.state.storage.backend})")

        manager = app.state.offline_cache
        if app.state.precache:
            try:
                await manager.install()
            except PrecacheError as e:
                # The service still proxies; only the offline page is missing
                logger.warning(f"Install incomplete: {e.detail}")
        await manager.activate()
        logger.info("Offline cache manager activated")

        yield

    finally:
        logger.info(f"Shutting down {settings.APP_NAME}...")

        await app.state.offline_cache.drain()
        await app.state.origin_http.aclose()
        await app.state.backend_http.aclose()
        logger.info("HTTP clients closed")

        await app.state.storage.disconnect()
        logger.info("Shutdown complete")
