"""Wishlist router"""

from fastapi import APIRouter, Depends

from digistore.api.deps import get_cart, get_cart_repository, get_session_id, get_store_repository
from digistore.core.exceptions import NotFoundException
from digistore.core.storage import StoreRepository, WISHLIST_KEY
from digistore.schemas.lists import ProductRequest, WishlistResponse
from digistore.services.cart_service import CartRepository, CartStore
from digistore.services.wishlist_service import WishlistStore

router = APIRouter()

get_wishlists = get_store_repository(WISHLIST_KEY, WishlistStore)


def to_response(wishlist: WishlistStore) -> WishlistResponse:
    return WishlistResponse(items=wishlist.items, item_count=wishlist.item_count())


@router.get("", response_model=WishlistResponse)
async def get_wishlist(
    session_id: str = Depends(get_session_id),
    wishlists: StoreRepository = Depends(get_wishlists)
):
    return to_response(await wishlists.load(session_id))


@router.post("/items", response_model=WishlistResponse)
async def add_item(
    body: ProductRequest,
    session_id: str = Depends(get_session_id),
    wishlists: StoreRepository = Depends(get_wishlists)
):
    wishlist = await wishlists.load(session_id)
    wishlist.add_item(body.product)
    await wishlists.save(session_id, wishlist)
    return to_response(wishlist)


@router.post("/toggle", response_model=WishlistResponse)
async def toggle_item(
    body: ProductRequest,
    session_id: str = Depends(get_session_id),
    wishlists: StoreRepository = Depends(get_wishlists)
):
    wishlist = await wishlists.load(session_id)
    wishlist.toggle_item(body.product)
    await wishlists.save(session_id, wishlist)
    return to_response(wishlist)


@router.delete("/items/{product_id}", response_model=WishlistResponse)
async def remove_item(
    product_id: str,
    session_id: str = Depends(get_session_id),
    wishlists: StoreRepository = Depends(get_wishlists)
):
    wishlist = await wishlists.load(session_id)
    wishlist.remove_item(product_id)
    await wishlists.save(session_id, wishlist)
    return to_response(wishlist)


@router.post("/clear", response_model=WishlistResponse)
async def clear_wishlist(
    session_id: str = Depends(get_session_id),
    wishlists: StoreRepository = Depends(get_wishlists)
):
    wishlist = await wishlists.load(session_id)
    wishlist.clear_wishlist()
    await wishlists.save(session_id, wishlist)
    return to_response(wishlist)


@router.post("/items/{product_id}/move-to-cart", response_model=WishlistResponse)
async def move_to_cart(
    product_id: str,
    session_id: str = Depends(get_session_id),
    wishlists: StoreRepository = Depends(get_wishlists),
    cart: CartStore = Depends(get_cart),
    carts: CartRepository = Depends(get_cart_repository)
):
    """Add the product to the cart with a personal licence"""
    wishlist = await wishlists.load(session_id)
    if not wishlist.move_to_cart(product_id, cart.add_item):
        raise NotFoundException("Product not in wishlist")
    await carts.save(session_id, cart)
    await wishlists.save(session_id, wishlist)
    return to_response(wishlist)
