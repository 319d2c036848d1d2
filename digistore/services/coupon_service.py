"""
Coupon service: local coupon table and discount calculation
Used directly when the backend validation endpoint is unreachable
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from digistore.core.config import settings
from digistore.schemas.cart import Coupon, CouponResult, CouponType
from digistore.utils.helpers import format_currency, format_number, round_money


@dataclass(frozen=True)
class CouponDefinition:
    discount: Decimal
    type: CouponType
    first_time_only: bool = False


VALID_COUPONS: Dict[str, CouponDefinition] = {
    settings.WELCOME_COUPON_CODE: CouponDefinition(
        Decimal("30"), CouponType.PERCENTAGE, first_time_only=True
    ),
    "SAVE10": CouponDefinition(Decimal("10"), CouponType.PERCENTAGE),
    "SAVE20": CouponDefinition(Decimal("20"), CouponType.PERCENTAGE),
    "FLAT5": CouponDefinition(Decimal("5"), CouponType.FIXED),
    "FLAT10": CouponDefinition(Decimal("10"), CouponType.FIXED),
}


def normalize_code(code: str) -> str:
    return code.strip().upper()


def calculate_discount(coupon: Optional[Coupon], subtotal: Decimal) -> Decimal:
    """
    Discount for a subtotal. Percentage coupons take pct/100 of the
    subtotal (rounded to cents), fixed coupons their face value; both are
    clamped so the discount never exceeds the subtotal.
    """
    if coupon is None or subtotal <= 0:
        return Decimal("0")

    if coupon.type == CouponType.PERCENTAGE:
        discount = round_money(subtotal * coupon.discount / Decimal("100"))
    else:
        discount = coupon.discount

    return min(discount, subtotal)


def describe_discount(coupon: Coupon) -> str:
    if coupon.type == CouponType.PERCENTAGE:
        return f"{format_number(coupon.discount)}% off"
    return f"{format_currency(coupon.discount, settings.CURRENCY)} off"


def welcome_coupon(auto_applied: bool = True) -> Coupon:
    definition = VALID_COUPONS[settings.WELCOME_COUPON_CODE]
    return Coupon(
        code=settings.WELCOME_COUPON_CODE,
        discount=definition.discount,
        type=definition.type,
        is_auto_applied=auto_applied,
    )


def validate_local(
    code: str,
    current: Optional[Coupon],
    is_first_time_buyer: bool
) -> CouponResult:
    """
    Validate a code against the local table.
    Rejects unknown codes, the welcome code for returning customers, and
    re-application of the active code.
    """
    normalized = normalize_code(code)
    definition = VALID_COUPONS.get(normalized)

    if definition is None:
        return CouponResult(success=False, message="Invalid coupon code")

    if definition.first_time_only and not is_first_time_buyer:
        return CouponResult(
            success=False,
            message=f"{normalized} is only valid for first-time buyers"
        )

    if current is not None and current.code == normalized:
        return CouponResult(success=False, message="This coupon is already applied")

    coupon = Coupon(
        code=normalized,
        discount=definition.discount,
        type=definition.type,
        is_auto_applied=False,
    )
    return CouponResult(
        success=True,
        message=f"Coupon {normalized} applied: {describe_discount(coupon)}",
        coupon=coupon
    )
