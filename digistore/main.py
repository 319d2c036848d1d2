"""Main FastAPI application"""

from fastapi import FastAPI
from typing import Optional
import logging

import httpx
from slowapi.errors import RateLimitExceeded

from digistore.core.config import settings
from digistore.core.events import lifespan
from digistore.core.exceptions import DigistoreException, digistore_exception_handler
from digistore.core.middleware import setup_middleware
from digistore.core.rate_limit import limiter, custom_rate_limit_handler
from digistore.core.storage import StateStorage
from digistore.services.api_client import create_http_client
from digistore.services.cart_service import CartRepository
from digistore.services.offline_cache import OfflineCacheManager
from digistore.services.push_notifications import ClientRegistry, NotificationCenter

logger = logging.getLogger(__name__)


def create_app(
    storage: Optional[StateStorage] = None,
    backend_transport: Optional[httpx.AsyncBaseTransport] = None,
    origin_transport: Optional[httpx.AsyncBaseTransport] = None,
    precache: Optional[bool] = None
) -> FastAPI:
    """
    Build the application. The storage and HTTP transports can be swapped
    so the app runs against in-memory state and mocked upstreams.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="Digistore1 storefront edge: cart engine and offline cache",
        version=settings.APP_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan
    )

    # Application-owned state, injected into handlers through api.deps
    app.state.storage = storage or StateStorage()
    app.state.backend_http = create_http_client(backend_transport)
    app.state.origin_http = httpx.AsyncClient(
        timeout=settings.ORIGIN_TIMEOUT,
        transport=origin_transport,
    )
    app.state.carts = CartRepository(app.state.storage)
    app.state.offline_cache = OfflineCacheManager(app.state.origin_http)
    app.state.notifications = NotificationCenter(ClientRegistry())
    app.state.precache = settings.PRECACHE_ON_STARTUP if precache is None else precache

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)
    app.add_exception_handler(DigistoreException, digistore_exception_handler)

    setup_middleware(app)

    # Include routers; the storefront catch-all goes last
    from digistore.api.health import router as health_router
    from digistore.api.v1 import api_router
    from digistore.api.proxy import router as proxy_router

    app.include_router(health_router)
    app.include_router(api_router, prefix="/api/v1")
    app.include_router(proxy_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "digistore.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else settings.WORKERS
    )
