# app/services/pricing.py
"""
Pricing calculator: unit display price, discount badge, line and cart
totals.
"""
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from app.models.cart import CartLine
from app.models.product import Variant


def round_half_up(value: float) -> int:
    """
    Round to whole currency units, halves away from zero.
    Python's round() would send 2.5 to 2.
    """
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def unit_price(variant: Variant) -> float:
    """
    Sale price when it is a genuine discount (positive, below base),
    else the base price.
    """
    sale = variant.sale_price
    if sale is not None and sale > 0 and sale < variant.base_price:
        return sale
    return variant.base_price


def original_price(variant: Variant) -> float:
    """
    Strike-through price: the base price, shown only when it exceeds
    the unit price.
    """
    if math.isnan(variant.base_price):
        return variant.base_price
    return max(variant.base_price, unit_price(variant))


def discount_percent(price: float, original: float) -> int | None:
    """
    Badge percentage, or None when there is no real discount
    (so no "-0%" badge is ever rendered).
    """
    if math.isnan(price) or math.isnan(original):
        return None
    if not original or original <= price:
        return None
    percent = round_half_up(100 - (price / original) * 100)
    return percent if percent > 0 else None


def line_unit_price(line: CartLine) -> float:
    # Snapshot price: never re-read from a fresh product fetch
    return line.product.price


def line_total(line: CartLine) -> float:
    return line_unit_price(line) * line.quantity


def cart_subtotal(lines: Iterable[CartLine]) -> float:
    return sum((line_total(line) for line in lines), 0.0)


def total_items(lines: Iterable[CartLine]) -> int:
    return sum(line.quantity for line in lines)
