"""API v1 routes aggregation"""

from fastapi import APIRouter

from .cart.router import router as cart_router
from .wishlist.router import router as wishlist_router
from .compare.router import router as compare_router
from .recently_viewed.router import router as recently_viewed_router
from .gift_cards.router import router as gift_cards_router
from .worker.router import router as worker_router

# Create v1 router
api_router = APIRouter()

# Include all routers
api_router.include_router(cart_router, prefix="/cart", tags=["Cart"])
api_router.include_router(wishlist_router, prefix="/wishlist", tags=["Wishlist"])
api_router.include_router(compare_router, prefix="/compare", tags=["Compare"])
api_router.include_router(recently_viewed_router, prefix="/recently-viewed", tags=["Recently Viewed"])
api_router.include_router(gift_cards_router, prefix="/gift-cards", tags=["Gift Cards"])
api_router.include_router(worker_router, prefix="/worker", tags=["Offline Cache"])
