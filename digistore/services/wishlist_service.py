"""
Wishlist service
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import logging

from pydantic import ValidationError

from digistore.schemas.lists import WishlistItem
from digistore.schemas.product import Product

logger = logging.getLogger(__name__)


class WishlistStore:
    """Saved-for-later products, one entry per product"""

    def __init__(self, items: Optional[List[WishlistItem]] = None):
        self.items: List[WishlistItem] = list(items or [])

    def add_item(self, product: Product) -> None:
        if not self.is_in_wishlist(product.id):
            self.items.append(
                WishlistItem(product=product, added_at=datetime.now(timezone.utc))
            )

    def remove_item(self, product_id: str) -> None:
        self.items = [item for item in self.items if item.product.id != product_id]

    def toggle_item(self, product: Product) -> bool:
        """Returns True when the product is in the wishlist afterwards"""
        if self.is_in_wishlist(product.id):
            self.remove_item(product.id)
            return False
        self.add_item(product)
        return True

    def clear_wishlist(self) -> None:
        self.items = []

    def is_in_wishlist(self, product_id: str) -> bool:
        return any(item.product.id == product_id for item in self.items)

    def move_to_cart(self, product_id: str, add_to_cart: Callable[[Product], Any]) -> bool:
        for item in self.items:
            if item.product.id == product_id:
                add_to_cart(item.product)
                self.remove_item(product_id)
                return True
        return False

    def item_count(self) -> int:
        return len(self.items)

    def to_state(self) -> Dict[str, Any]:
        return {"items": [item.to_json_dict() for item in self.items]}

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "WishlistStore":
        items = []
        for raw in state.get("items") or []:
            try:
                items.append(WishlistItem.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Dropping unreadable wishlist item: {e}")
        return cls(items)
