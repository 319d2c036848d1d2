import httpx
import pytest

from digistore.core.exceptions import PrecacheError
from digistore.services.cache_storage import CachedResponse, CacheStorage
from digistore.services.offline_cache import FetchRequest, OfflineCacheManager

from .conftest import ORIGIN


def page(path, **kwargs):
    return FetchRequest(url=f"{ORIGIN}{path}", **kwargs)


@pytest.mark.parametrize("url,expected", [
    ("/images/logo.PNG", True),
    ("/photo.webp?w=200", True),
    ("/favicon.ico", True),
    ("/products/planner", False),
    ("/styles.css", False),
])
def test_is_image(url, expected):
    assert OfflineCacheManager.is_image(page(url)) is expected


def test_image_destination_counts_as_image():
    assert OfflineCacheManager.is_image(page("/thumbnail", destination="image")) is True


@pytest.mark.parametrize("url,expected", [
    ("/app.js", True),
    ("/fonts/inter.woff2", True),
    ("/_next/static/chunks/main", True),
    ("/products", False),
    ("/logo.png", False),
])
def test_is_static_asset(url, expected):
    assert OfflineCacheManager.is_static_asset(page(url)) is expected


async def test_interception_rules(manager):
    assert manager.intercepts(page("/products")) is True
    assert manager.intercepts(page("/products", method="POST")) is False
    assert manager.intercepts(page("/api/products")) is False
    assert manager.intercepts(FetchRequest(url="https://cdn.other.test/app.js")) is False
    assert manager.intercepts(FetchRequest(url="https://cdn.other.test/cover.jpg")) is True


async def test_non_intercepted_request_is_not_handled(manager, origin):
    assert await manager.handle_fetch(page("/api/cart")) is None
    assert origin.requests == []


async def test_install_precaches_shell(manager, origin):
    await manager.install(["/", "/offline", "/manifest.json"])

    cache = await manager.caches.open(manager.static_cache)
    assert await cache.keys() == [f"{ORIGIN}/", f"{ORIGIN}/offline", f"{ORIGIN}/manifest.json"]


async def test_install_is_all_or_nothing(manager, origin):
    origin.routes["/manifest.json"] = (404, b"", "text/plain")

    with pytest.raises(PrecacheError):
        await manager.install(["/", "/manifest.json"])

    assert await manager.caches.has(manager.static_cache) is False


async def test_activate_deletes_other_versions(origin):
    caches = CacheStorage()
    async with httpx.AsyncClient(transport=origin.transport) as http:
        old = OfflineCacheManager(http, origin=ORIGIN, caches=caches, version="v1")
        await caches.open(old.static_cache)
        await caches.open(old.image_cache)

        new = OfflineCacheManager(http, origin=ORIGIN, caches=caches, version="v2")
        await caches.open(new.static_cache)

        deleted = await new.activate()

    assert deleted == ["digistore1-static-v1", "digistore1-images-v1"]
    assert await caches.keys() == ["digistore1-static-v2"]


async def test_static_asset_is_cache_first(manager, origin):
    first = await manager.handle_fetch(page("/_next/static/chunks/app.js"))
    origin.offline = True
    second = await manager.handle_fetch(page("/_next/static/chunks/app.js"))

    assert second == first
    assert origin.hits("/_next/static/chunks/app.js") == 1


async def test_static_asset_miss_offline_raises(manager, origin):
    origin.offline = True
    with pytest.raises(httpx.TransportError):
        await manager.handle_fetch(page("/missing.css"))


async def test_failed_static_response_is_not_cached(manager, origin):
    origin.routes["/broken.js"] = (500, b"", "text/plain")
    response = await manager.handle_fetch(page("/broken.js"))
    assert response.status == 500
    assert await manager.caches.match(f"{ORIGIN}/broken.js") is None


async def test_image_served_from_cache_when_offline(manager, origin):
    origin.routes["/cover.png"] = (200, b"png-v1", "image/png")
    first = await manager.handle_fetch(page("/cover.png"))
    assert first.body == b"png-v1"

    origin.offline = True
    cached = await manager.handle_fetch(page("/cover.png"))
    await manager.drain()

    assert cached.body == b"png-v1"


async def test_image_is_revalidated_in_background(manager, origin):
    origin.routes["/cover.png"] = (200, b"png-v1", "image/png")
    await manager.handle_fetch(page("/cover.png"))

    origin.routes["/cover.png"] = (200, b"png-v2", "image/png")
    stale = await manager.handle_fetch(page("/cover.png"))
    await manager.drain()
    fresh = await manager.handle_fetch(page("/cover.png"))
    await manager.drain()

    assert stale.body == b"png-v1"
    assert fresh.body == b"png-v2"


async def test_uncached_image_offline_returns_none(manager, origin):
    origin.offline = True
    assert await manager.handle_fetch(page("/never.png")) is None


async def test_image_cache_is_bounded(origin):
    async with httpx.AsyncClient(transport=origin.transport) as http:
        manager = OfflineCacheManager(http, origin=ORIGIN, image_limit=3)
        for i in range(5):
            await manager.handle_fetch(page(f"/img-{i}.jpg"))
        await manager.drain()
        keys = await (await manager.caches.open(manager.image_cache)).keys()

    assert keys == [f"{ORIGIN}/img-{i}.jpg" for i in (2, 3, 4)]


async def test_dynamic_cache_evicts_oldest(manager):
    for i in range(51):
        await manager.handle_fetch(page(f"/page-{i}", mode="navigate"))

    keys = await (await manager.caches.open(manager.dynamic_cache)).keys()
    assert len(keys) == 50
    assert f"{ORIGIN}/page-0" not in keys
    assert keys[0] == f"{ORIGIN}/page-1"
    assert keys[-1] == f"{ORIGIN}/page-50"


async def test_page_served_from_cache_when_offline(manager, origin):
    online = await manager.handle_fetch(page("/products/planner", mode="navigate"))
    origin.offline = True
    offline = await manager.handle_fetch(page("/products/planner", mode="navigate"))

    assert offline.body == online.body


async def test_navigation_falls_back_to_offline_page(manager, origin):
    origin.routes["/offline"] = (200, b"You are offline", "text/html")
    await manager.install(["/offline"])
    origin.offline = True

    response = await manager.handle_fetch(page("/checkout", mode="navigate"))

    assert response.body == b"You are offline"


async def test_non_navigation_offline_gets_503(manager, origin):
    await manager.install(["/offline"])
    origin.offline = True

    response = await manager.handle_fetch(page("/data.json"))

    assert response.status == 503
    assert response.body == b"Offline"
    assert response.content_type == "text/plain"


async def test_error_pages_are_not_cached(manager, origin):
    origin.routes["/gone"] = (404, b"missing", "text/html")
    response = await manager.handle_fetch(page("/gone"))
    assert response.status == 404
    assert await manager.caches.match(f"{ORIGIN}/gone") is None


async def test_sync_cart_tag(manager):
    assert await manager.handle_sync("sync-cart") is True
    assert await manager.handle_sync("sync-other") is False


async def test_cache_put_replaces_and_moves_to_end():
    caches = CacheStorage()
    cache = await caches.open("c")
    await cache.put("http://a.test/1", CachedResponse(url="1", status=200, body=b"one"))
    await cache.put("http://a.test/2", CachedResponse(url="2", status=200))
    await cache.put("http://a.test/1#top", CachedResponse(url="1", status=200, body=b"uno"))

    assert await cache.keys() == ["http://a.test/2", "http://a.test/1"]
    assert (await caches.match("http://a.test/1")).body == b"uno"
