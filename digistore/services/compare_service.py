"""
Product comparison service
"""

from typing import Any, Dict, List, Optional
import logging

from pydantic import ValidationError

from digistore.core.config import settings
from digistore.schemas.product import Product

logger = logging.getLogger(__name__)


class CompareStore:
    """Products picked for side-by-side comparison"""

    def __init__(self, items: Optional[List[Product]] = None, max_items: Optional[int] = None):
        self.items: List[Product] = list(items or [])
        self.max_items = max_items or settings.COMPARE_MAX_ITEMS

    def add_item(self, product: Product) -> bool:
        """False when already compared or the comparison is full"""
        if self.is_in_compare(product.id):
            return False
        if len(self.items) >= self.max_items:
            return False
        self.items.append(product)
        return True

    def remove_item(self, product_id: str) -> None:
        self.items = [item for item in self.items if item.id != product_id]

    def clear_all(self) -> None:
        self.items = []

    def is_in_compare(self, product_id: str) -> bool:
        return any(item.id == product_id for item in self.items)

    def to_state(self) -> Dict[str, Any]:
        return {
            "items": [item.to_json_dict() for item in self.items],
            "maxItems": self.max_items,
        }

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "CompareStore":
        items = []
        for raw in state.get("items") or []:
            try:
                items.append(Product.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Dropping unreadable compare item: {e}")
        return cls(items)
