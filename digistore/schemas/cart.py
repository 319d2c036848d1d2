"""
Cart schemas for request/response validation
"""

from pydantic import Field
from typing import Optional, List
from decimal import Decimal
from enum import Enum

from .base import BaseSchema
from .product import Product


class LicenseType(str, Enum):
    PERSONAL = "personal"
    COMMERCIAL = "commercial"
    EXTENDED = "extended"


class CouponType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CartItem(BaseSchema):
    """A cart line; price is the per-unit price fixed when the line was added"""
    product: Product
    quantity: int = Field(..., ge=1)
    license: LicenseType = LicenseType.PERSONAL
    price: Decimal = Field(..., ge=0)


class Coupon(BaseSchema):
    """The single active coupon on a cart"""
    code: str
    discount: Decimal = Field(..., ge=0)
    type: CouponType
    is_auto_applied: bool = False
    discount_amount: Optional[Decimal] = None


class CouponResult(BaseSchema):
    """Outcome of a coupon operation, shown to the shopper as a toast"""
    success: bool
    message: str
    coupon: Optional[Coupon] = None


class CartTotals(BaseSchema):
    """Schema for cart totals"""
    subtotal: Decimal
    discount: Decimal = Field(default=Decimal("0"))
    total: Decimal
    item_count: int


class CartResponse(BaseSchema):
    """Schema for cart response"""
    items: List[CartItem]
    coupon: Optional[Coupon] = None
    is_open: bool
    is_first_time_buyer: bool
    is_validating_coupon: bool
    totals: CartTotals


class AddToCartRequest(BaseSchema):
    """Schema for add to cart request"""
    product: Product
    license: LicenseType = LicenseType.PERSONAL


class UpdateQuantityRequest(BaseSchema):
    """Schema for updating a cart line quantity"""
    quantity: int = Field(..., description="New quantity; zero or less removes the line")
    license: Optional[LicenseType] = None


class ApplyCouponRequest(BaseSchema):
    """Schema for coupon submission"""
    code: str = Field(..., min_length=1, max_length=64)
    email: Optional[str] = None


class FirstTimeBuyerCheckRequest(BaseSchema):
    email: Optional[str] = None


class CouponValidationRequest(BaseSchema):
    """Body sent to the backend coupon validation endpoint"""
    code: str
    subtotal: Decimal
    email: Optional[str] = None


class CouponValidationResponse(BaseSchema):
    """Schema for the backend coupon validation response"""
    valid: bool
    code: Optional[str] = None
    discount: Optional[Decimal] = None
    type: Optional[CouponType] = None
    discount_amount: Optional[Decimal] = None
    message: Optional[str] = None
