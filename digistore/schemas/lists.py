"""
Wishlist, compare, recently-viewed and gift card schemas
"""

from pydantic import Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum

from .base import BaseSchema
from .product import Product


class WishlistItem(BaseSchema):
    product: Product
    added_at: datetime


class RecentlyViewedItem(BaseSchema):
    product: Product
    viewed_at: datetime


class ProductRequest(BaseSchema):
    """Body carrying a single product"""
    product: Product


class WishlistResponse(BaseSchema):
    items: List[WishlistItem]
    item_count: int


class CompareResponse(BaseSchema):
    items: List[Product]
    max_items: int


class CompareAddResponse(BaseSchema):
    added: bool
    items: List[Product]


class RecentlyViewedResponse(BaseSchema):
    items: List[RecentlyViewedItem]


class GiftCardStatus(str, Enum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class GiftCard(BaseSchema):
    id: str
    code: str
    amount: Decimal = Field(..., ge=0)
    balance: Decimal = Field(..., ge=0)
    expires_at: datetime
    purchased_at: datetime
    recipient_email: Optional[str] = None
    recipient_name: Optional[str] = None
    message: Optional[str] = None
    status: GiftCardStatus = GiftCardStatus.ACTIVE


class AppliedGiftCard(BaseSchema):
    code: str
    balance: Decimal = Field(..., ge=0)


class ApplyGiftCardRequest(BaseSchema):
    code: str = Field(..., min_length=1)
    balance: Decimal = Field(..., ge=0)


class UseBalanceRequest(BaseSchema):
    amount: Decimal = Field(..., ge=0)


class UseBalanceResponse(BaseSchema):
    remaining_to_pay: Decimal
    applied_gift_card: Optional[AppliedGiftCard] = None


class GiftCardWalletResponse(BaseSchema):
    purchased_cards: List[GiftCard]
    received_cards: List[GiftCard]
    applied_gift_card: Optional[AppliedGiftCard] = None
