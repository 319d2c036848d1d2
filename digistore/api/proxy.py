"""Storefront route: every remaining request goes through the offline cache manager"""

from fastapi import APIRouter, Depends, Request, Response
import logging

import httpx

from digistore.api.deps import get_offline_cache
from digistore.core.exceptions import BadGatewayException, GatewayTimeoutException
from digistore.services.cache_storage import CachedResponse
from digistore.services.offline_cache import FetchRequest, OfflineCacheManager

logger = logging.getLogger(__name__)

router = APIRouter()

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def build_fetch_request(request: Request, manager: OfflineCacheManager, path: str) -> FetchRequest:
    url = manager.absolute_url(path)
    if request.url.query:
        url = f"{url}?{request.url.query}"

    fetch_mode = request.headers.get("sec-fetch-mode")
    accepts_html = "text/html" in request.headers.get("accept", "")
    if fetch_mode == "navigate" or (fetch_mode is None and accepts_html):
        mode = "navigate"
    else:
        mode = fetch_mode or "cors"

    return FetchRequest(
        url=url,
        method=request.method,
        mode=mode,
        destination=request.headers.get("sec-fetch-dest", ""),
        headers=dict(request.headers),
    )


def to_response(cached: CachedResponse) -> Response:
    response = Response(content=cached.body, status_code=cached.status)
    for name, value in cached.headers:
        response.headers.append(name, value)
    return response


async def pass_through(request: Request, fetch: FetchRequest, manager: OfflineCacheManager) -> Response:
    """Requests the cache manager does not intercept go straight to the origin"""
    try:
        upstream = await manager.http.request(
            fetch.method,
            fetch.url,
            headers={
                name: value for name, value in fetch.headers.items()
                if name.lower() not in ("host", "content-length")
            },
            content=await request.body(),
        )
    except httpx.TransportError as e:
        logger.warning(f"Origin unreachable for {fetch.method} {fetch.url}: {e}")
        raise BadGatewayException() from e
    return to_response(CachedResponse.from_httpx(upstream))


@router.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def storefront(
    path: str,
    request: Request,
    manager: OfflineCacheManager = Depends(get_offline_cache)
):
    fetch = build_fetch_request(request, manager, path)

    if not manager.intercepts(fetch):
        return await pass_through(request, fetch, manager)

    try:
        cached = await manager.handle_fetch(fetch)
    except httpx.TransportError as e:
        # Static asset neither cached nor reachable
        raise BadGatewayException() from e

    if cached is None:
        raise GatewayTimeoutException()
    return to_response(cached)
