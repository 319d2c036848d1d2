"""Utilities package"""

from .helpers import format_currency, round_money, to_decimal

__all__ = [
    "format_currency",
    "round_money",
    "to_decimal",
]
