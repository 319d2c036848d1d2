"""
Cart service: cart state, licence pricing, coupons and totals
"""

from typing import List, Optional, Dict, Any
from collections import OrderedDict
from decimal import Decimal
import logging

from pydantic import ValidationError

from digistore.core.config import settings
from digistore.core.exceptions import BackendUnavailableError, UnauthorizedException
from digistore.core.storage import (
    StateStorage,
    CART_KEY,
    HAS_PURCHASED_KEY,
    PERSIST_VERSION,
)
from digistore.schemas.cart import (
    CartItem,
    CartResponse,
    CartTotals,
    Coupon,
    CouponResult,
    LicenseType,
)
from digistore.schemas.product import Product
from digistore.services.api_client import BackendClient
from digistore.services import coupon_service

logger = logging.getLogger(__name__)

LICENSE_MULTIPLIERS: Dict[LicenseType, int] = {
    LicenseType.PERSONAL: 1,
    LicenseType.COMMERCIAL: 3,
    LicenseType.EXTENDED: 5,
}


def calculate_price(base_price: Decimal, license: LicenseType) -> Decimal:
    """Per-unit price for a licence tier"""
    return base_price * LICENSE_MULTIPLIERS.get(license, 1)


class CartStore:
    """
    Shopping cart for one shopper.

    Lines are unique per (product id, licence). Only ``items`` and
    ``coupon`` are persisted; the open flag and the validation flag live
    for the lifetime of the object.
    """

    def __init__(
        self,
        items: Optional[List[CartItem]] = None,
        coupon: Optional[Coupon] = None,
        has_purchased: bool = False,
        backend: Optional[BackendClient] = None
    ):
        self.items: List[CartItem] = list(items or [])
        self.coupon: Optional[Coupon] = coupon
        self.is_open = False
        self.is_first_time_buyer = not has_purchased
        self.has_purchased = has_purchased
        self.is_validating_coupon = False
        self.backend = backend
        self._coupon_request_seq = 0

    # Items

    def _find(self, product_id: str, license: LicenseType) -> Optional[CartItem]:
        for item in self.items:
            if item.product.id == product_id and item.license == license:
                return item
        return None

    @staticmethod
    def _matches(item: CartItem, product_id: str, license: Optional[LicenseType]) -> bool:
        if item.product.id != product_id:
            return False
        return license is None or item.license == license

    def add_item(self, product: Product, license: LicenseType = LicenseType.PERSONAL) -> CartItem:
        """Add one unit; an existing (product, licence) line keeps its stored price"""
        existing = self._find(product.id, license)
        if existing:
            existing.quantity += 1
            item = existing
        else:
            item = CartItem(
                product=product,
                quantity=1,
                license=license,
                price=calculate_price(product.price, license),
            )
            self.items.append(item)

        # Open cart when item is added
        self.is_open = True
        return item

    def remove_item(self, product_id: str, license: Optional[LicenseType] = None) -> int:
        """
        Remove lines for a product. With a licence only that line goes;
        without one every licence tier of the product is removed.
        Returns the number of lines removed.
        """
        before = len(self.items)
        self.items = [
            item for item in self.items
            if not self._matches(item, product_id, license)
        ]
        return before - len(self.items)

    def update_quantity(
        self,
        product_id: str,
        quantity: int,
        license: Optional[LicenseType] = None
    ) -> None:
        if quantity <= 0:
            self.remove_item(product_id, license)
            return

        for item in self.items:
            if self._matches(item, product_id, license):
                item.quantity = quantity

    def clear_cart(self) -> None:
        self.items = []

    def toggle_cart(self) -> None:
        self.is_open = not self.is_open

    def open_cart(self) -> None:
        self.is_open = True

    def close_cart(self) -> None:
        self.is_open = False

    # Derived values

    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def subtotal(self) -> Decimal:
        return sum((item.price * item.quantity for item in self.items), Decimal("0"))

    def discount(self) -> Decimal:
        return coupon_service.calculate_discount(self.coupon, self.subtotal())

    def total(self) -> Decimal:
        return self.subtotal() - self.discount()

    def totals(self) -> CartTotals:
        subtotal = self.subtotal()
        discount = coupon_service.calculate_discount(self.coupon, subtotal)
        return CartTotals(
            subtotal=subtotal,
            discount=discount,
            total=subtotal - discount,
            item_count=self.item_count(),
        )

    # Coupons

    def _supersede_coupon_requests(self) -> None:
        # Responses of in-flight async validations are discarded from here on
        self._coupon_request_seq += 1
        self.is_validating_coupon = False

    def apply_coupon(self, code: str) -> CouponResult:
        """Validate against the local coupon table and replace the active coupon"""
        self._supersede_coupon_requests()
        return self._apply_local(code)

    def _apply_local(self, code: str) -> CouponResult:
        result = coupon_service.validate_local(code, self.coupon, self.is_first_time_buyer)
        if result.success:
            self.coupon = result.coupon
        return result

    async def apply_coupon_async(self, code: str, email: Optional[str] = None) -> CouponResult:
        """
        Validate through the backend, falling back to the local table when
        the backend is unreachable or rejects the session. A response that arrives after a newer
        request was started is discarded.
        """
        if self.backend is None:
            return self.apply_coupon(code)

        self._coupon_request_seq += 1
        seq = self._coupon_request_seq
        self.is_validating_coupon = True
        try:
            try:
                validation = await self.backend.validate_coupon(
                    coupon_service.normalize_code(code), self.subtotal(), email
                )
            except (BackendUnavailableError, UnauthorizedException) as e:
                if seq != self._coupon_request_seq:
                    return CouponResult(success=False, message="Coupon request superseded")
                logger.info(f"Coupon validation fell back to local table: {e.detail}")
                return self._apply_local(code)

            if seq != self._coupon_request_seq:
                logger.info(f"Discarding stale coupon response for {code}")
                return CouponResult(success=False, message="Coupon request superseded")

            if not validation.valid or validation.discount is None or validation.type is None:
                return CouponResult(
                    success=False,
                    message=validation.message or "Invalid coupon code"
                )

            self.coupon = Coupon(
                code=validation.code or coupon_service.normalize_code(code),
                discount=validation.discount,
                type=validation.type,
                is_auto_applied=False,
                discount_amount=validation.discount_amount,
            )
            message = validation.message or (
                f"Coupon {self.coupon.code} applied: "
                f"{coupon_service.describe_discount(self.coupon)}"
            )
            return CouponResult(success=True, message=message, coupon=self.coupon)
        finally:
            if seq == self._coupon_request_seq:
                self.is_validating_coupon = False

    def remove_coupon(self) -> None:
        self._supersede_coupon_requests()
        self.coupon = None

    def _apply_first_time_status(self, is_first_time: bool) -> None:
        self.is_first_time_buyer = is_first_time
        if is_first_time:
            if self.coupon is None:
                self.coupon = coupon_service.welcome_coupon(auto_applied=True)
        elif self.coupon is not None and self.coupon.is_auto_applied:
            self.coupon = None

    async def check_first_time_buyer_async(self, email: Optional[str] = None) -> bool:
        """
        Ask the backend whether this shopper has bought before and sync the
        welcome coupon. Without a reachable backend the local purchase
        marker decides.
        """
        is_first_time = not self.has_purchased
        if self.backend is not None:
            try:
                is_first_time = await self.backend.check_first_time_buyer(email)
            except (BackendUnavailableError, UnauthorizedException) as e:
                logger.info(f"First-time buyer check fell back to local marker: {e.detail}")

        self._apply_first_time_status(is_first_time)
        return is_first_time

    def mark_as_returning_customer(self) -> None:
        self.has_purchased = True
        self._apply_first_time_status(False)

    def complete_purchase(self) -> None:
        """Order went through: empty the cart and drop any coupon"""
        self.clear_cart()
        self.remove_coupon()
        self.mark_as_returning_customer()

    # Persistence

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": {
                "items": [item.to_json_dict() for item in self.items],
                "coupon": self.coupon.to_json_dict() if self.coupon else None,
            },
            "version": PERSIST_VERSION,
        }

    @classmethod
    def from_dict(
        cls,
        data: Optional[Dict[str, Any]],
        has_purchased: bool = False,
        backend: Optional[BackendClient] = None
    ) -> "CartStore":
        items: List[CartItem] = []
        coupon: Optional[Coupon] = None
        state = (data or {}).get("state") or {}

        for raw in state.get("items") or []:
            try:
                items.append(CartItem.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Dropping unreadable cart item: {e}")

        if state.get("coupon"):
            try:
                coupon = Coupon.model_validate(state["coupon"])
            except ValidationError as e:
                logger.warning(f"Dropping unreadable coupon: {e}")

        return cls(items=items, coupon=coupon, has_purchased=has_purchased, backend=backend)

    def to_response(self) -> CartResponse:
        return CartResponse(
            items=self.items,
            coupon=self.coupon,
            is_open=self.is_open,
            is_first_time_buyer=self.is_first_time_buyer,
            is_validating_coupon=self.is_validating_coupon,
            totals=self.totals(),
        )


class CartRepository:
    """
    Owns the live cart stores of this process, keyed by session.

    A store is loaded from storage on first use and kept in memory so
    transient flags and in-flight coupon requests are shared by
    overlapping requests of the same session. Persisted state is written
    back explicitly with ``save``.
    """

    def __init__(self, storage: StateStorage, max_live: Optional[int] = None):
        self.storage = storage
        self.max_live = max_live or settings.LIVE_CART_LIMIT
        self._live: "OrderedDict[str, CartStore]" = OrderedDict()

    async def get(self, session_id: str, backend: Optional[BackendClient] = None) -> CartStore:
        store = self._live.get(session_id)
        if store is None:
            store = await self.load(session_id, backend)
            self._live[session_id] = store
            while len(self._live) > self.max_live:
                self._live.popitem(last=False)
        else:
            self._live.move_to_end(session_id)
            if backend is not None:
                store.backend = backend
        return store

    async def load(self, session_id: str, backend: Optional[BackendClient] = None) -> CartStore:
        data = await self.storage.get(session_id, CART_KEY)
        has_purchased = bool(await self.storage.get(session_id, HAS_PURCHASED_KEY))
        return CartStore.from_dict(data, has_purchased=has_purchased, backend=backend)

    async def save(self, session_id: str, store: CartStore) -> None:
        await self.storage.set(session_id, CART_KEY, store.to_dict())
        if store.has_purchased:
            await self.storage.set(session_id, HAS_PURCHASED_KEY, True)
