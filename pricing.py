"""
Price arithmetic shared by the storefront client.

Prices are plain floats, as stored. Rounding happens only when formatting.
"""
import re
from typing import Iterable

TAX_RATE = 8.0
GST_RATE = 18.0
SHIPPING_FEE = 5.99
FREE_SHIPPING_THRESHOLD = 100.0

CURRENCY_SYMBOLS = ("₹", "$", "€", "£", "¥", "₩", "₽", "₦", "₨")

_NON_NUMERIC = re.compile(r"[^\d.]")


def effective_price(price: float, discount_price: float = 0.0) -> float:
    return discount_price if discount_price > 0 else price


def calculate_tax(subtotal: float, rate: float) -> float:
    return subtotal * (rate / 100)


def apply_shipping(total: float, shipping_fee: float = SHIPPING_FEE,
                   free_shipping_threshold: float = FREE_SHIPPING_THRESHOLD) -> float:
    return total if total >= free_shipping_threshold else total + shipping_fee


def calculate_discount_price(original_price: float, discount_percentage: float) -> float:
    return original_price * (1 - discount_percentage / 100)


def calculate_total(prices: Iterable[float]) -> float:
    return sum(prices, 0.0)


def format_price(price: float, currency: str = "$") -> str:
    return f"{currency}{price:.2f}"


def parse_price(text) -> float:
    """Pull the number out of a display price such as "₹1,299.00"."""
    if text is None:
        return 0.0
    if isinstance(text, (int, float)):
        return float(text)
    numeric = _NON_NUMERIC.sub("", str(text))
    try:
        return float(numeric)
    except ValueError:
        return 0.0


def detect_currency(text: str) -> str:
    for symbol in CURRENCY_SYMBOLS:
        if symbol in (text or ""):
            return symbol
    return "$"
