"""Cart router: licence pricing, coupons and checkout completion"""

from fastapi import APIRouter, Depends, Request
from typing import Optional

from digistore.api.deps import get_cart, get_cart_repository, get_session_id
from digistore.core.rate_limit import coupon_limit
from digistore.schemas.cart import (
    AddToCartRequest,
    ApplyCouponRequest,
    CartResponse,
    CouponResult,
    FirstTimeBuyerCheckRequest,
    LicenseType,
    UpdateQuantityRequest,
)
from digistore.services.cart_service import CartRepository, CartStore

router = APIRouter()


@router.get("", response_model=CartResponse)
async def get_cart_state(cart: CartStore = Depends(get_cart)):
    """Cart contents with subtotal, discount and total"""
    return cart.to_response()


@router.post("/items", response_model=CartResponse)
async def add_item(
    body: AddToCartRequest,
    session_id: str = Depends(get_session_id),
    cart: CartStore = Depends(get_cart),
    carts: CartRepository = Depends(get_cart_repository)
):
    cart.add_item(body.product, body.license)
    await carts.save(session_id, cart)
    return cart.to_response()


@router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_item(
    product_id: str,
    license: Optional[LicenseType] = None,
    session_id: str = Depends(get_session_id),
    cart: CartStore = Depends(get_cart),
    carts: CartRepository = Depends(get_cart_repository)
):
    """Remove a product; pass ?license= to remove a single licence line"""
    cart.remove_item(product_id, license)
    await carts.save(session_id, cart)
    return cart.to_response()


@router.patch("/items/{product_id}", response_model=CartResponse)
async def update_quantity(
    product_id: str,
    body: UpdateQuantityRequest,
    session_id: str = Depends(get_session_id),
    cart: CartStore = Depends(get_cart),
    carts: CartRepository = Depends(get_cart_repository)
):
    cart.update_quantity(product_id, body.quantity, body.license)
    await carts.save(session_id, cart)
    return cart.to_response()


@router.post("/clear", response_model=CartResponse)
async def clear_cart(
    session_id: str = Depends(get_session_id),
    cart: CartStore = Depends(get_cart),
    carts: CartRepository = Depends(get_cart_repository)
):
    cart.clear_cart()
    await carts.save(session_id, cart)
    return cart.to_response()


@router.post("/toggle", response_model=CartResponse)
async def toggle_cart(cart: CartStore = Depends(get_cart)):
    cart.toggle_cart()
    return cart.to_response()


@router.post("/open", response_model=CartResponse)
async def open_cart(cart: CartStore = Depends(get_cart)):
    cart.open_cart()
    return cart.to_response()


@router.post("/close", response_model=CartResponse)
async def close_cart(cart: CartStore = Depends(get_cart)):
    cart.close_cart()
    return cart.to_response()


@router.post("/coupon", response_model=CouponResult)
@coupon_limit
async def apply_coupon(
    request: Request,
    body: ApplyCouponRequest,
    session_id: str = Depends(get_session_id),
    cart: CartStore = Depends(get_cart),
    carts: CartRepository = Depends(get_cart_repository)
):
    """Validate with the backend, falling back to local codes when it is down"""
    result = await cart.apply_coupon_async(body.code, body.email)
    if result.success:
        await carts.save(session_id, cart)
    return result


@router.post("/coupon/local", response_model=CouponResult)
@coupon_limit
async def apply_coupon_local(
    request: Request,
    body: ApplyCouponRequest,
    session_id: str = Depends(get_session_id),
    cart: CartStore = Depends(get_cart),
    carts: CartRepository = Depends(get_cart_repository)
):
    result = cart.apply_coupon(body.code)
    if result.success:
        await carts.save(session_id, cart)
    return result


@router.delete("/coupon", response_model=CartResponse)
async def remove_coupon(
    session_id: str = Depends(get_session_id),
    cart: CartStore = Depends(get_cart),
    carts: CartRepository = Depends(get_cart_repository)
):
    cart.remove_coupon()
    await carts.save(session_id, cart)
    return cart.to_response()


@router.post("/first-time-check", response_model=CartResponse)
async def first_time_check(
    body: Optional[FirstTimeBuyerCheckRequest] = None,
    session_id: str = Depends(get_session_id),
    cart: CartStore = Depends(get_cart),
    carts: CartRepository = Depends(get_cart_repository)
):
    """Auto-apply or revoke the welcome coupon"""
    await cart.check_first_time_buyer_async(body.email if body else None)
    await carts.save(session_id, cart)
    return cart.to_response()


@router.post("/complete", response_model=CartResponse)
async def complete_purchase(
    session_id: str = Depends(get_session_id),
    cart: CartStore = Depends(get_cart),
    carts: CartRepository = Depends(get_cart_repository)
):
    """Called once the order is paid"""
    cart.complete_purchase()
    await carts.save(session_id, cart)
    return cart.to_response()
