"""
Persisted shopper state backed by Redis
Stands in for browser local storage: JSON values under per-session keys
"""

import redis.asyncio as redis
from typing import Optional, Any, Dict, Generic, Type, TypeVar, Protocol
import json
import logging

from .config import settings

logger = logging.getLogger(__name__)

PERSIST_VERSION = 0

# Local storage keys
CART_KEY = "digistore1-cart"
WISHLIST_KEY = "digistore1-wishlist"
COMPARE_KEY = "digistore1-compare"
GIFT_CARDS_KEY = "digistore1-giftcards"
RECENTLY_VIEWED_KEY = "digistore1-recently-viewed"
HAS_PURCHASED_KEY = "digistore1-has-purchased"
ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"


class StateStorage:
    """Redis state storage with in-memory fallback"""

    def __init__(self, url: Optional[str] = None):
        self.url = settings.REDIS_URL if url is None else url
        self.redis_client: Optional[redis.Redis] = None
        self._fallback_store: Dict[str, str] = {}  # In-memory fallback for development
        self._use_redis = False

    async def connect(self):
        """Initialize Redis connection"""
        if not self.url:
            logger.info("No Redis URL configured, keeping state in memory")
            return
        try:
            self.redis_client = redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=settings.REDIS_MAX_CONNECTIONS
            )
            await self.redis_client.ping()
            logger.info("Redis connection established")
            self._use_redis = True
        except Exception as e:
            logger.warning(f"Failed to connect to Redis, using in-memory fallback: {e}")
            self.redis_client = None
            self._use_redis = False

    async def disconnect(self):
        """Close Redis connection"""
        if self.redis_client:
            await self.redis_client.aclose()
            logger.info("Redis connection closed")

    @staticmethod
    def session_key(session_id: str, key: str) -> str:
        return f"{session_id}:{key}"

    async def get(self, session_id: str, key: str) -> Optional[Any]:
        """Get a JSON value for a session"""
        full_key = self.session_key(session_id, key)
        if self._use_redis and self.redis_client:
            raw = await self.redis_client.get(full_key)
        else:
            raw = self._fallback_store.get(full_key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable value under {full_key}")
            return None

    async def set(self, session_id: str, key: str, value: Any) -> bool:
        """Store a JSON-serializable value for a session"""
        full_key = self.session_key(session_id, key)
        raw = json.dumps(value)
        if self._use_redis and self.redis_client:
            return bool(await self.redis_client.set(full_key, raw))
        self._fallback_store[full_key] = raw
        return True

    async def delete(self, session_id: str, key: str) -> bool:
        """Delete a session key"""
        full_key = self.session_key(session_id, key)
        if self._use_redis and self.redis_client:
            return bool(await self.redis_client.delete(full_key))
        return self._fallback_store.pop(full_key, None) is not None

    async def exists(self, session_id: str, key: str) -> bool:
        """Check if a session key exists"""
        full_key = self.session_key(session_id, key)
        if self._use_redis and self.redis_client:
            return bool(await self.redis_client.exists(full_key))
        return full_key in self._fallback_store

    async def ping(self) -> bool:
        if self._use_redis and self.redis_client:
            return bool(await self.redis_client.ping())
        return True

    @property
    def backend(self) -> str:
        return "redis" if self._use_redis else "memory"


class PersistedStore(Protocol):
    def to_state(self) -> Dict[str, Any]: ...

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "PersistedStore": ...


S = TypeVar("S", bound=PersistedStore)


class StoreRepository(Generic[S]):
    """
    Loads and saves a client-side store under one storage key, using the
    {"state": ..., "version": ...} envelope
    """

    def __init__(self, storage: StateStorage, key: str, store_cls: Type[S]):
        self.storage = storage
        self.key = key
        self.store_cls = store_cls

    async def load(self, session_id: str) -> S:
        data = await self.storage.get(session_id, self.key)
        state = (data or {}).get("state") if isinstance(data, dict) else None
        return self.store_cls.from_state(state or {})

    async def save(self, session_id: str, store: S) -> None:
        await self.storage.set(
            session_id,
            self.key,
            {"state": store.to_state(), "version": PERSIST_VERSION}
        )


# Global storage instance
storage = StateStorage()
