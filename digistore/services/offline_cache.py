"""
Offline cache manager
Routes storefront GET requests through one of three caching strategies:

- static assets: cache first
- images: stale while revalidate, bounded cache
- pages and everything else: network first, bounded cache, offline fallback

Caches are versioned; activation drops every cache of older versions.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set
from urllib.parse import urljoin, urlsplit
import asyncio
import logging
import re

import httpx

from digistore.core.config import settings
from digistore.core.exceptions import PrecacheError
from digistore.services.cache_storage import CacheStorage, CachedResponse

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = re.compile(r"\.(jpg|jpeg|png|gif|webp|svg|ico)$", re.IGNORECASE)
STATIC_EXTENSIONS = re.compile(r"\.(js|css|woff|woff2|ttf|eot)$", re.IGNORECASE)
STATIC_PATH_MARKER = "/_next/static/"

# Not forwarded to the origin
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
    "accept-encoding",
}


@dataclass
class FetchRequest:
    """What the manager needs to know about an intercepted request"""
    url: str
    method: str = "GET"
    mode: str = "cors"
    destination: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def origin(self) -> str:
        parts = urlsplit(self.url)
        return f"{parts.scheme}://{parts.netloc}"


def offline_response(url: str) -> CachedResponse:
    """Last-resort response when neither network nor cache can answer"""
    return CachedResponse(
        url=url,
        status=503,
        body=b"Offline",
        headers=(("Content-Type", "text/plain"),),
        status_text="Service Unavailable",
    )


class OfflineCacheManager:
    """Caching front for the storefront origin"""

    def __init__(
        self,
        http: httpx.AsyncClient,
        origin: Optional[str] = None,
        caches: Optional[CacheStorage] = None,
        version: Optional[str] = None,
        dynamic_limit: Optional[int] = None,
        image_limit: Optional[int] = None
    ):
        self.http = http
        self.origin = (origin or settings.ORIGIN_URL).rstrip("/")
        self.caches = caches or CacheStorage()
        self.version = version or settings.CACHE_VERSION
        self.dynamic_limit = dynamic_limit or settings.DYNAMIC_CACHE_LIMIT
        self.image_limit = image_limit or settings.IMAGE_CACHE_LIMIT

        prefix = settings.STORAGE_PREFIX
        self.static_cache = f"{prefix}-static-{self.version}"
        self.dynamic_cache = f"{prefix}-dynamic-{self.version}"
        self.image_cache = f"{prefix}-images-{self.version}"

        self._background: Set[asyncio.Task] = set()

    def absolute_url(self, path: str) -> str:
        return urljoin(self.origin + "/", path.lstrip("/"))

    @property
    def offline_url(self) -> str:
        return self.absolute_url(settings.OFFLINE_URL)

    # Lifecycle

    async def install(self, assets: Optional[List[str]] = None) -> None:
        """
        Precache the app shell into the static cache.
        All-or-nothing: if any asset fails nothing is stored.
        """
        assets = settings.PRECACHE_ASSETS if assets is None else assets
        logger.info("Precaching static assets")

        urls = [self.absolute_url(asset) for asset in assets]
        responses = []
        for url in urls:
            try:
                response = await self.fetch(FetchRequest(url=url))
            except httpx.TransportError as e:
                raise PrecacheError(url, str(e)) from e
            if not response.ok:
                raise PrecacheError(url, f"status {response.status}")
            responses.append(response)

        cache = await self.caches.open(self.static_cache)
        for url, response in zip(urls, responses):
            await cache.put(url, response)

    async def activate(self) -> List[str]:
        """Delete caches that do not belong to the current version"""
        whitelist = {self.static_cache, self.dynamic_cache, self.image_cache}
        deleted = []
        for name in await self.caches.keys():
            if name not in whitelist:
                logger.info(f"Deleting old cache: {name}")
                await self.caches.delete(name)
                deleted.append(name)
        return deleted

    # Classification

    @staticmethod
    def is_image(request: FetchRequest) -> bool:
        return bool(IMAGE_EXTENSIONS.search(request.path)) or request.destination == "image"

    @staticmethod
    def is_static_asset(request: FetchRequest) -> bool:
        return bool(STATIC_EXTENSIONS.search(request.path)) or STATIC_PATH_MARKER in request.url

    def intercepts(self, request: FetchRequest) -> bool:
        # Cross-origin requests are only handled for images
        if request.origin != self.origin and not self.is_image(request):
            return False
        # API calls always go to the network
        if "/api/" in request.path:
            return False
        return request.method.upper() == "GET"

    # Fetch handling

    async def fetch(self, request: FetchRequest) -> CachedResponse:
        """Network fetch; transport failures raise httpx.TransportError"""
        headers = {
            name: value for name, value in request.headers.items()
            if name.lower() not in HOP_BY_HOP_HEADERS
        }
        response = await self.http.request(request.method, request.url, headers=headers)
        return CachedResponse.from_httpx(response)

    async def handle_fetch(self, request: FetchRequest) -> Optional[CachedResponse]:
        """
        Answer an intercepted request. Returns None when the request is
        not intercepted, or when an image is neither cached nor reachable.
        """
        if not self.intercepts(request):
            return None

        if self.is_static_asset(request):
            return await self.cache_first(request)

        if self.is_image(request):
            return await self.stale_while_revalidate(request)

        return await self.network_first(request)

    async def cache_first(self, request: FetchRequest) -> CachedResponse:
        cached = await self.caches.match(request.url)
        if cached is not None:
            return cached

        response = await self.fetch(request)
        if response.ok:
            cache = await self.caches.open(self.static_cache)
            await cache.put(request.url, response)
        return response

    async def stale_while_revalidate(self, request: FetchRequest) -> Optional[CachedResponse]:
        cached = await self.caches.match(request.url)

        task = asyncio.create_task(self._revalidate_image(request, cached))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

        if cached is not None:
            return cached
        return await task

    async def _revalidate_image(
        self,
        request: FetchRequest,
        cached: Optional[CachedResponse]
    ) -> Optional[CachedResponse]:
        try:
            response = await self.fetch(request)
        except httpx.TransportError as e:
            logger.debug(f"Image revalidation failed for {request.url}: {e}")
            return cached

        if response.ok:
            cache = await self.caches.open(self.image_cache)
            await cache.put(request.url, response)
            await self.limit_cache_size(self.image_cache, self.image_limit)
        return response

    async def network_first(self, request: FetchRequest) -> CachedResponse:
        try:
            response = await self.fetch(request)
        except httpx.TransportError as e:
            logger.info(f"Network failed for {request.url}, trying cache: {e}")
            cached = await self.caches.match(request.url)
            if cached is not None:
                return cached

            if request.mode == "navigate":
                offline_page = await self.caches.match(self.offline_url)
                if offline_page is not None:
                    return offline_page

            return offline_response(request.url)

        if response.ok:
            cache = await self.caches.open(self.dynamic_cache)
            await cache.put(request.url, response)
            await self.limit_cache_size(self.dynamic_cache, self.dynamic_limit)
        return response

    async def limit_cache_size(self, cache_name: str, max_items: int) -> None:
        """Evict the oldest-inserted entry until the cache fits (FIFO)"""
        cache = await self.caches.open(cache_name)
        keys = await cache.keys()
        if len(keys) > max_items:
            logger.debug(f"Evicting {keys[0]} from {cache_name}")
            await cache.delete(keys[0])
            await self.limit_cache_size(cache_name, max_items)

    async def drain(self) -> None:
        """Wait for background revalidations to finish"""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # Background sync

    async def handle_sync(self, tag: str) -> bool:
        if tag == "sync-cart":
            await self.sync_cart()
            return True
        logger.debug(f"Ignoring unknown sync tag: {tag}")
        return False

    async def sync_cart(self) -> None:
        # Hook for replaying offline cart changes once reconnected
        logger.info("Syncing cart...")
