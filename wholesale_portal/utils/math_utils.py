# wholesale_portal/utils/math_utils.py
import math
from typing import Iterable

CURRENCY_FRACTION_DIGITS = 2


def round_currency(value: float) -> float:
    """Round a monetary amount to cents."""
    return round(value, CURRENCY_FRACTION_DIGITS)

def clamp_discount(discount) -> float:
    """Clamp a discount percentage to 0-100 (invalid values count as 0).

    Args:
        discount: Discount percentage

    Returns:
        Clamped discount
    """
    if discount is None or isinstance(discount, bool):
        return 0.0
    try:
        discount = float(discount)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(discount):
        return 0.0
    return min(max(discount, 0.0), 100.0)

def calculate_discounted_price(base_price: float, discount) -> float:
    """Apply a client discount percentage to a base price.

    Args:
        base_price: Product base price
        discount: Discount percentage

    Returns:
        Discounted price rounded to cents
    """
    if base_price < 0:
        raise ValueError("Base price cannot be negative.")

    value = base_price * (1 - clamp_discount(discount) / 100)
    return round_currency(value)

def calculate_line_subtotal(unit_price: float, quantity: float) -> float:
    """Subtotal of an order line."""
    return round_currency(unit_price * quantity)

def sum_amounts(amounts: Iterable[float]) -> float:
    """Sum monetary amounts, ignoring missing values."""
    return round_currency(sum(a for a in amounts if a is not None))

