import os

# Settings are read at import time
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("PRECACHE_ON_STARTUP", "false")
os.environ.setdefault("ORIGIN_URL", "http://shop.test")
os.environ.setdefault("API_URL", "http://backend.test/api")

from decimal import Decimal
from typing import Dict, Tuple

import httpx
import pytest

from digistore.core.storage import StateStorage
from digistore.schemas.product import Product
from digistore.services.offline_cache import OfflineCacheManager

ORIGIN = "http://shop.test"


class FakeOrigin:
    """Storefront origin double; flip ``offline`` to simulate losing the network"""

    def __init__(self):
        self.offline = False
        self.requests = []
        self.routes: Dict[str, Tuple[int, bytes, str]] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("network down", request=request)
        status, body, content_type = self.routes.get(
            request.url.path,
            (200, f"content of {request.url.path}".encode(), "text/html")
        )
        return httpx.Response(status, content=body, headers={"Content-Type": content_type})

    def hits(self, path: str) -> int:
        return sum(1 for request in self.requests if request.url.path == path)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def make_product(product_id: str = "p1", price: str = "50", **extra) -> Product:
    return Product(
        id=product_id,
        title=extra.pop("title", f"Product {product_id}"),
        slug=extra.pop("slug", product_id),
        price=Decimal(price),
        **extra
    )


@pytest.fixture
def product() -> Product:
    return make_product()


@pytest.fixture
def storage() -> StateStorage:
    return StateStorage(url="")


@pytest.fixture
def origin() -> FakeOrigin:
    return FakeOrigin()


@pytest.fixture
async def manager(origin):
    http = httpx.AsyncClient(transport=origin.transport)
    manager = OfflineCacheManager(http, origin=ORIGIN)
    yield manager
    await manager.drain()
    await http.aclose()
