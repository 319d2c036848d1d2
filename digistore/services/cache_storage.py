"""
Named response caches for the offline cache manager
Entries are keyed by request URL and kept in insertion order
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import urldefrag
import logging

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedResponse:
    """An immutable snapshot of an HTTP response"""
    url: str
    status: int
    body: bytes = b""
    headers: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
    status_text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> Optional[str]:
        for name, value in self.headers:
            if name.lower() == "content-type":
                return value
        return None

    def header_dict(self) -> Dict[str, str]:
        return dict(self.headers)

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> "CachedResponse":
        # Body is already decoded, so transfer framing headers no longer apply
        skip = {"content-encoding", "content-length", "transfer-encoding", "connection"}
        return cls(
            url=str(response.request.url) if response.request else "",
            status=response.status_code,
            body=response.content,
            headers=tuple(
                (name, value) for name, value in response.headers.items()
                if name.lower() not in skip
            ),
            status_text=response.reason_phrase,
        )


def cache_key(url: str) -> str:
    return urldefrag(url)[0]


class Cache:
    """A single named cache"""

    def __init__(self, name: str):
        self.name = name
        self._entries: "OrderedDict[str, CachedResponse]" = OrderedDict()

    async def match(self, url: str) -> Optional[CachedResponse]:
        return self._entries.get(cache_key(url))

    async def put(self, url: str, response: CachedResponse) -> None:
        key = cache_key(url)
        # Replacing an entry makes it the newest
        self._entries.pop(key, None)
        self._entries[key] = response

    async def delete(self, url: str) -> bool:
        return self._entries.pop(cache_key(url), None) is not None

    async def keys(self) -> List[str]:
        """Keys, oldest insertion first"""
        return list(self._entries.keys())

    def __len__(self) -> int:
        return len(self._entries)


class CacheStorage:
    """All named caches of the origin"""

    def __init__(self):
        self._caches: "OrderedDict[str, Cache]" = OrderedDict()

    async def open(self, name: str) -> Cache:
        cache = self._caches.get(name)
        if cache is None:
            cache = Cache(name)
            self._caches[name] = cache
        return cache

    async def has(self, name: str) -> bool:
        return name in self._caches

    async def delete(self, name: str) -> bool:
        return self._caches.pop(name, None) is not None

    async def keys(self) -> List[str]:
        return list(self._caches.keys())

    async def match(self, url: str) -> Optional[CachedResponse]:
        """First match across caches, in cache creation order"""
        for cache in self._caches.values():
            response = await cache.match(url)
            if response is not None:
                return response
        return None
