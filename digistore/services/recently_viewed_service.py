"""
Recently viewed products service
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from pydantic import ValidationError

from digistore.core.config import settings
from digistore.schemas.lists import RecentlyViewedItem
from digistore.schemas.product import Product

logger = logging.getLogger(__name__)


class RecentlyViewedStore:
    """Most recent first, bounded to ``max_items``"""

    def __init__(
        self,
        items: Optional[List[RecentlyViewedItem]] = None,
        max_items: Optional[int] = None
    ):
        self.max_items = max_items or settings.RECENTLY_VIEWED_MAX_ITEMS
        self.items: List[RecentlyViewedItem] = list(items or [])[:self.max_items]

    def add_item(self, product: Product) -> None:
        # Re-viewing moves the product to the front with a fresh timestamp
        remaining = [item for item in self.items if item.product.id != product.id]
        entry = RecentlyViewedItem(product=product, viewed_at=datetime.now(timezone.utc))
        self.items = [entry, *remaining][:self.max_items]

    def remove_item(self, product_id: str) -> None:
        self.items = [item for item in self.items if item.product.id != product_id]

    def clear_all(self) -> None:
        self.items = []

    def get_recent_items(self, limit: int = 10) -> List[RecentlyViewedItem]:
        return self.items[:limit]

    def to_state(self) -> Dict[str, Any]:
        return {"items": [item.to_json_dict() for item in self.items]}

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "RecentlyViewedStore":
        items = []
        for raw in state.get("items") or []:
            try:
                items.append(RecentlyViewedItem.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Dropping unreadable recently viewed item: {e}")
        return cls(items)
