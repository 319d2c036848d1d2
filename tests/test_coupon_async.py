import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from digistore.core.storage import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY
from digistore.schemas.cart import LicenseType
from digistore.services.api_client import BackendClient, create_http_client
from digistore.services.cart_service import CartRepository, CartStore

from .conftest import make_product


def backend_for(handler, storage, session_id="s1"):
    return BackendClient(create_http_client(httpx.MockTransport(handler)), storage, session_id)


def unreachable(request):
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture
def cart():
    store = CartStore()
    store.add_item(make_product(price="50"), LicenseType.COMMERCIAL)
    return store


async def test_backend_validation_applies_coupon(cart, storage):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "data": {"valid": True, "code": "SPRING15", "discount": 15, "type": "percentage"}
        })

    cart.backend = backend_for(handler, storage)
    result = await cart.apply_coupon_async("spring15")

    assert result.success is True
    assert seen["path"] == "/api/coupons/validate"
    assert seen["body"]["code"] == "SPRING15"
    assert Decimal(seen["body"]["subtotal"]) == Decimal("150")
    assert cart.coupon.code == "SPRING15"
    assert cart.discount() == Decimal("22.50")
    assert cart.is_validating_coupon is False


async def test_backend_rejection_keeps_current_coupon(cart, storage):
    cart.apply_coupon("SAVE10")

    def handler(request):
        return httpx.Response(200, json={"valid": False, "message": "Coupon expired"})

    cart.backend = backend_for(handler, storage)
    result = await cart.apply_coupon_async("OLD50")

    assert result.success is False
    assert result.message == "Coupon expired"
    assert cart.coupon.code == "SAVE10"


async def test_unreachable_backend_falls_back_to_local_table(cart, storage):
    cart.backend = backend_for(unreachable, storage)

    result = await cart.apply_coupon_async("SAVE10")

    assert result.success is True
    assert cart.total() == Decimal("135")
    assert cart.is_validating_coupon is False


async def test_server_error_falls_back_to_local_table(cart, storage):
    cart.backend = backend_for(lambda request: httpx.Response(502), storage)

    result = await cart.apply_coupon_async("NOTREAL")

    assert result.success is False
    assert result.message == "Invalid coupon code"


async def test_stale_response_is_discarded(cart, storage):
    started = asyncio.Event()
    release = asyncio.Event()

    async def handler(request):
        code = json.loads(request.content)["code"]
        if code == "SLOW10":
            started.set()
            await release.wait()
            return httpx.Response(200, json={"valid": True, "code": "SLOW10", "discount": 10, "type": "percentage"})
        return httpx.Response(200, json={"valid": True, "code": "FAST20", "discount": 20, "type": "percentage"})

    cart.backend = backend_for(handler, storage)

    slow = asyncio.create_task(cart.apply_coupon_async("SLOW10"))
    await started.wait()
    assert cart.is_validating_coupon is True

    fast = await cart.apply_coupon_async("FAST20")
    release.set()
    stale = await slow

    assert fast.success is True
    assert stale.success is False
    assert stale.message == "Coupon request superseded"
    assert cart.coupon.code == "FAST20"
    assert cart.is_validating_coupon is False


async def test_first_time_check_auto_applies_welcome(cart, storage):
    def handler(request):
        assert request.url.params["email"] == "new@example.com"
        return httpx.Response(200, json={"isFirstTimeBuyer": True})

    cart.backend = backend_for(handler, storage)
    assert await cart.check_first_time_buyer_async("new@example.com") is True

    assert cart.coupon.code == "WELCOME30"
    assert cart.coupon.is_auto_applied is True
    assert cart.discount() == Decimal("45.00")


async def test_first_time_check_revokes_auto_applied_welcome(cart, storage):
    cart._apply_first_time_status(True)
    cart.backend = backend_for(
        lambda request: httpx.Response(200, json={"data": {"isFirstTimeBuyer": False}}),
        storage
    )

    assert await cart.check_first_time_buyer_async() is False
    assert cart.coupon is None


async def test_first_time_check_does_not_replace_existing_coupon(cart, storage):
    cart.apply_coupon("FLAT5")
    cart.backend = backend_for(lambda request: httpx.Response(200, json={"isFirstTimeBuyer": True}), storage)

    await cart.check_first_time_buyer_async()

    assert cart.coupon.code == "FLAT5"


async def test_first_time_check_offline_uses_purchase_marker(storage):
    cart = CartStore(has_purchased=True, backend=backend_for(unreachable, storage))
    assert await cart.check_first_time_buyer_async() is False
    assert cart.coupon is None


async def test_repository_keeps_live_store_and_persists(storage):
    carts = CartRepository(storage)
    cart = await carts.get("s1")
    cart.add_item(make_product())
    cart.complete_purchase()
    cart.add_item(make_product("p2"))
    await carts.save("s1", cart)

    assert await carts.get("s1") is cart
    reloaded = await CartRepository(storage).get("s1")
    assert [item.product.id for item in reloaded.items] == ["p2"]
    assert reloaded.is_open is False
    assert reloaded.is_first_time_buyer is False


async def test_repository_evicts_least_recently_used(storage):
    carts = CartRepository(storage, max_live=2)
    first = await carts.get("a")
    await carts.get("b")
    await carts.get("c")
    assert await carts.get("a") is not first


async def test_bearer_token_is_sent(storage):
    await storage.set("s1", ACCESS_TOKEN_KEY, "abc")
    headers = {}

    def handler(request):
        headers.update(request.headers)
        return httpx.Response(200, json={"isFirstTimeBuyer": True})

    await backend_for(handler, storage).check_first_time_buyer()
    assert headers["authorization"] == "Bearer abc"


def unauthorized(request):
    return httpx.Response(401)


async def test_guest_without_refresh_token_falls_back_to_local_table(cart, storage):
    cart.backend = backend_for(unauthorized, storage)

    result = await cart.apply_coupon_async("SAVE10")

    assert result.success is True
    assert cart.total() == Decimal("135")
    assert cart.is_validating_coupon is False


async def test_expired_session_falls_back_to_local_table(cart, storage):
    await storage.set("s1", ACCESS_TOKEN_KEY, "expired")
    await storage.set("s1", REFRESH_TOKEN_KEY, "revoked")
    cart.backend = backend_for(unauthorized, storage)

    result = await cart.apply_coupon_async("FLAT5")

    assert result.success is True
    assert cart.discount() == Decimal("5")
    assert await storage.exists("s1", REFRESH_TOKEN_KEY) is False


async def test_first_time_check_unauthorized_uses_purchase_marker(storage):
    cart = CartStore(backend=backend_for(unauthorized, storage))
    cart.add_item(make_product())

    assert await cart.check_first_time_buyer_async() is True
    assert cart.coupon.code == "WELCOME30"


def gated_backend(storage):
    """Backend that holds every validation until ``release`` is set"""
    started = asyncio.Event()
    release = asyncio.Event()

    async def handler(request):
        code = json.loads(request.content)["code"]
        started.set()
        await release.wait()
        return httpx.Response(200, json={"valid": True, "code": code, "discount": 10, "type": "percentage"})

    return backend_for(handler, storage), started, release


async def test_local_coupon_supersedes_in_flight_validation(cart, storage):
    cart.backend, started, release = gated_backend(storage)

    pending = asyncio.create_task(cart.apply_coupon_async("SAVE10"))
    await started.wait()
    assert cart.apply_coupon("FLAT5").success is True
    assert cart.is_validating_coupon is False

    release.set()
    stale = await pending

    assert stale.success is False
    assert cart.coupon.code == "FLAT5"
    assert cart.is_validating_coupon is False


async def test_removed_coupon_stays_removed(cart, storage):
    cart.backend, started, release = gated_backend(storage)

    pending = asyncio.create_task(cart.apply_coupon_async("SAVE10"))
    await started.wait()
    cart.remove_coupon()
    release.set()
    await pending

    assert cart.coupon is None


async def test_completed_purchase_is_not_given_a_coupon(cart, storage):
    cart.backend, started, release = gated_backend(storage)

    pending = asyncio.create_task(cart.apply_coupon_async("SAVE10"))
    await started.wait()
    cart.complete_purchase()
    release.set()
    await pending

    assert cart.items == []
    assert cart.coupon is None
