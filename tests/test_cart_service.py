from decimal import Decimal

import pytest

from digistore.schemas.cart import Coupon, CouponType, LicenseType
from digistore.services.cart_service import CartStore, calculate_price

from .conftest import make_product


@pytest.mark.parametrize("license,multiplier", [
    (LicenseType.PERSONAL, 1),
    (LicenseType.COMMERCIAL, 3),
    (LicenseType.EXTENDED, 5),
])
def test_license_price_multiplier(license, multiplier):
    cart = CartStore()
    item = cart.add_item(make_product(price="19.99"), license)
    assert item.price == Decimal("19.99") * multiplier
    assert calculate_price(Decimal("19.99"), license) == item.price


def test_add_item_opens_cart(product):
    cart = CartStore()
    assert cart.is_open is False
    cart.add_item(product)
    assert cart.is_open is True
    assert cart.items[0].license == LicenseType.PERSONAL


def test_readding_line_increments_quantity_and_keeps_price():
    cart = CartStore()
    cart.add_item(make_product("p1", "50"), LicenseType.COMMERCIAL)

    # Catalog price changed since the first add
    cart.add_item(make_product("p1", "80"), LicenseType.COMMERCIAL)

    assert len(cart.items) == 1
    assert cart.items[0].quantity == 2
    assert cart.items[0].price == Decimal("150")


def test_same_product_different_license_is_separate_line(product):
    cart = CartStore()
    cart.add_item(product, LicenseType.PERSONAL)
    cart.add_item(product, LicenseType.EXTENDED)
    assert len(cart.items) == 2
    assert cart.subtotal() == Decimal("300")


def test_remove_item_without_license_removes_every_tier(product):
    cart = CartStore()
    cart.add_item(product, LicenseType.PERSONAL)
    cart.add_item(product, LicenseType.COMMERCIAL)
    cart.add_item(make_product("p2"))

    assert cart.remove_item("p1") == 2
    assert [item.product.id for item in cart.items] == ["p2"]


def test_remove_item_with_license_keeps_other_tier(product):
    cart = CartStore()
    cart.add_item(product, LicenseType.PERSONAL)
    cart.add_item(product, LicenseType.COMMERCIAL)

    cart.remove_item("p1", LicenseType.PERSONAL)

    assert len(cart.items) == 1
    assert cart.items[0].license == LicenseType.COMMERCIAL


def test_update_quantity_sets_quantity(product):
    cart = CartStore()
    cart.add_item(product)
    cart.update_quantity("p1", 4)
    assert cart.item_count() == 4
    assert cart.subtotal() == Decimal("200")


def test_update_quantity_zero_is_removal(product):
    removed = CartStore()
    removed.add_item(product)
    removed.add_item(make_product("p2"))
    removed.remove_item("p1")

    updated = CartStore()
    updated.add_item(product)
    updated.add_item(make_product("p2"))
    updated.update_quantity("p1", 0)

    assert [i.product.id for i in updated.items] == [i.product.id for i in removed.items]


def test_commercial_item_with_save10():
    cart = CartStore()
    cart.add_item(make_product(price="50"), LicenseType.COMMERCIAL)
    assert cart.items[0].price == Decimal("150")

    result = cart.apply_coupon("SAVE10")

    assert result.success is True
    assert "10% off" in result.message
    assert cart.discount() == Decimal("15")
    assert cart.total() == Decimal("135")


def test_fixed_coupon_is_clamped_to_subtotal():
    cart = CartStore()
    cart.add_item(make_product(price="3"))
    cart.apply_coupon("FLAT10")

    assert cart.discount() == cart.subtotal() == Decimal("3")
    assert cart.total() == Decimal("0")


@pytest.mark.parametrize("code", ["SAVE10", "SAVE20", "FLAT5", "FLAT10", "WELCOME30"])
@pytest.mark.parametrize("price,quantity", [("0.99", 1), ("4.50", 3), ("129", 2)])
def test_totals_invariant(code, price, quantity):
    cart = CartStore()
    cart.add_item(make_product(price=price), LicenseType.EXTENDED)
    cart.update_quantity("p1", quantity)
    cart.apply_coupon(code)

    assert cart.total() == cart.subtotal() - cart.discount()
    assert Decimal("0") <= cart.discount() <= cart.subtotal()


def test_empty_cart_has_no_discount():
    cart = CartStore(coupon=Coupon(code="FLAT10", discount=Decimal("10"), type=CouponType.FIXED))
    assert cart.subtotal() == Decimal("0")
    assert cart.discount() == Decimal("0")
    assert cart.total() == Decimal("0")


def test_apply_coupon_normalizes_code(product):
    cart = CartStore()
    cart.add_item(product)
    result = cart.apply_coupon("  save20 ")
    assert result.success is True
    assert cart.coupon.code == "SAVE20"


def test_apply_unknown_coupon(product):
    cart = CartStore()
    cart.add_item(product)
    result = cart.apply_coupon("NOPE")
    assert result.success is False
    assert result.message == "Invalid coupon code"
    assert cart.coupon is None


def test_apply_same_coupon_twice(product):
    cart = CartStore()
    cart.add_item(product)
    cart.apply_coupon("SAVE10")
    result = cart.apply_coupon("save10")
    assert result.success is False
    assert "already applied" in result.message


def test_new_coupon_replaces_old(product):
    cart = CartStore()
    cart.add_item(product)
    cart.apply_coupon("SAVE10")
    cart.apply_coupon("FLAT5")
    assert cart.coupon.code == "FLAT5"
    assert cart.discount() == Decimal("5")


def test_welcome_coupon_rejected_for_returning_customer(product):
    cart = CartStore()
    cart.add_item(product)
    cart.mark_as_returning_customer()

    result = cart.apply_coupon("WELCOME30")

    assert result.success is False
    assert result.message == "WELCOME30 is only valid for first-time buyers"
    assert cart.coupon is None


def test_explicit_welcome_coupon_is_not_auto_applied(product):
    cart = CartStore()
    cart.add_item(product)
    result = cart.apply_coupon("WELCOME30")
    assert result.success is True
    assert cart.coupon.is_auto_applied is False
    assert cart.discount() == Decimal("15.00")


def test_mark_as_returning_customer_revokes_auto_applied_coupon(product):
    cart = CartStore()
    cart.add_item(product)
    cart._apply_first_time_status(True)
    assert cart.coupon.is_auto_applied is True

    cart.mark_as_returning_customer()

    assert cart.coupon is None
    assert cart.has_purchased is True
    assert cart.is_first_time_buyer is False


def test_mark_as_returning_customer_keeps_explicit_coupon(product):
    cart = CartStore()
    cart.add_item(product)
    cart.apply_coupon("SAVE10")
    cart.mark_as_returning_customer()
    assert cart.coupon.code == "SAVE10"


def test_complete_purchase(product):
    cart = CartStore()
    cart.add_item(product)
    cart.apply_coupon("SAVE10")

    cart.complete_purchase()

    assert cart.items == []
    assert cart.coupon is None
    assert cart.has_purchased is True


def test_toggle_open_close():
    cart = CartStore()
    cart.toggle_cart()
    assert cart.is_open is True
    cart.close_cart()
    assert cart.is_open is False
    cart.open_cart()
    assert cart.is_open is True


def test_serialized_state_only_holds_items_and_coupon():
    cart = CartStore()
    cart.add_item(make_product(price="12.50"), LicenseType.COMMERCIAL)
    cart.apply_coupon("SAVE20")

    data = cart.to_dict()
    assert set(data["state"]) == {"items", "coupon"}
    assert data["version"] == 0
    assert data["state"]["items"][0]["product"]["id"] == "p1"

    restored = CartStore.from_dict(data)
    assert restored.is_open is False
    assert restored.items[0].price == Decimal("37.50")
    assert restored.coupon.code == "SAVE20"
    assert restored.total() == cart.total()


def test_from_dict_drops_unreadable_items():
    data = {"state": {"items": [{"quantity": 1}], "coupon": None}, "version": 0}
    assert CartStore.from_dict(data).items == []
    assert CartStore.from_dict(None).items == []
