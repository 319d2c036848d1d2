from decimal import Decimal

import pytest

from digistore.services.coupon_service import calculate_discount, describe_discount, welcome_coupon
from digistore.utils.helpers import format_currency, format_number, round_money

from .conftest import make_product


@pytest.mark.parametrize("value,expected", [
    (Decimal("1.005"), Decimal("1.01")),
    (Decimal("2.675"), Decimal("2.68")),
    ("0.1", Decimal("0.10")),
])
def test_round_money_half_up(value, expected):
    assert round_money(value) == expected


def test_format_currency():
    assert format_currency(Decimal("150")) == "$150.00"


def test_format_number():
    assert format_number(Decimal("30")) == "30"
    assert format_number(Decimal("12.50")) == "12.5"


def test_describe_discount():
    assert describe_discount(welcome_coupon()) == "30% off"


def test_percentage_discount_rounds_to_cents():
    # 30% of 3.33 is 0.999
    assert calculate_discount(welcome_coupon(), Decimal("3.33")) == Decimal("1.00")


def test_no_discount_without_coupon():
    assert calculate_discount(None, Decimal("10")) == Decimal("0")


def test_product_price_rounds_half_up():
    # Half-even would give 2.62
    assert make_product(price="2.625").price == Decimal("2.63")
