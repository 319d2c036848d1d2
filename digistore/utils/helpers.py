"""
Helper utilities
"""

import secrets
import string
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENTS = Decimal("0.01")

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    """Convert a number to Decimal without float artifacts"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(amount: Decimal) -> Decimal:
    """Round to cents, half up"""
    return to_decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal, currency: str = "USD") -> str:
    """
    Format amount as currency

    Args:
        amount: Amount to format
        currency: Currency code

    Returns:
        Formatted currency string
    """
    amount = round_money(amount)
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{symbol}{amount:,.2f}"

    # Default formatting for other currencies
    return f"{currency} {amount:,.2f}"


def format_number(value: Decimal) -> str:
    """Render 30.00 as "30" and 12.50 as "12.5" """
    normalized = to_decimal(value).normalize()
    if normalized == normalized.to_integral():
        return str(normalized.quantize(Decimal(1)))
    return format(normalized, "f")


def generate_code(groups: int = 4, group_size: int = 4, prefix: str = "") -> str:
    """Generate an uppercase alphanumeric code such as ABCD-1234-EFGH-5678"""
    alphabet = string.ascii_uppercase + string.digits
    parts = [
        "".join(secrets.choice(alphabet) for _ in range(group_size))
        for _ in range(groups)
    ]
    return prefix + "-".join(parts)
