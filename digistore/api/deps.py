"""
Request dependencies: shopper session, storage and the stores it owns
"""

from fastapi import Depends, Request, Response
import uuid

from digistore.core.config import settings
from digistore.core.storage import StateStorage, StoreRepository
from digistore.services.api_client import BackendClient
from digistore.services.cart_service import CartRepository, CartStore
from digistore.services.offline_cache import OfflineCacheManager
from digistore.services.push_notifications import NotificationCenter


def get_session_id(request: Request, response: Response) -> str:
    """
    Shopper session from the session header or cookie.
    A new session is issued as a cookie when neither is present.
    """
    session_id = (
        request.headers.get(settings.SESSION_HEADER)
        or request.cookies.get(settings.SESSION_COOKIE_NAME)
    )
    if not session_id:
        session_id = uuid.uuid4().hex
        response.set_cookie(
            settings.SESSION_COOKIE_NAME,
            session_id,
            max_age=settings.SESSION_MAX_AGE,
            httponly=True,
            samesite="lax",
        )
    return session_id


def get_storage(request: Request) -> StateStorage:
    return request.app.state.storage


def get_backend(
    request: Request,
    session_id: str = Depends(get_session_id),
    storage: StateStorage = Depends(get_storage)
) -> BackendClient:
    return BackendClient(request.app.state.backend_http, storage, session_id)


def get_cart_repository(request: Request) -> CartRepository:
    return request.app.state.carts


async def get_cart(
    session_id: str = Depends(get_session_id),
    carts: CartRepository = Depends(get_cart_repository),
    backend: BackendClient = Depends(get_backend)
) -> CartStore:
    return await carts.get(session_id, backend)


def get_store_repository(key: str, store_cls):
    """Dependency factory for a StoreRepository over one storage key"""
    def dependency(storage: StateStorage = Depends(get_storage)) -> StoreRepository:
        return StoreRepository(storage, key, store_cls)
    return dependency


def get_offline_cache(request: Request) -> OfflineCacheManager:
    return request.app.state.offline_cache


def get_notification_center(request: Request) -> NotificationCenter:
    return request.app.state.notifications
