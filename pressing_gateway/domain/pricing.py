"""Pricing engine - subtotal, discount and total for a list of deposit items"""

from typing import Iterable
from pressing_gateway.domain.models import DepositItem, PricingTotals


def clamp_discount(discount_cents: int, subtotal_cents: int) -> int:
    """Keep a discount within [0, subtotal]"""
    return max(0, min(discount_cents, subtotal_cents))


def compute_totals(items: Iterable[DepositItem], discount_cents: int = 0) -> PricingTotals:
    """
    Price a list of items.

    Pure and idempotent so the intake form can call it on every edit.
    Zero-price or zero-quantity lines must be rejected by the caller; they
    are not filtered out here.

    Example:
        2 x 1500 + 1 x 800, no discount → subtotal 3800, total 3800
    """
    subtotal = sum(item.quantity * item.unit_price_cents for item in items)
    discount = clamp_discount(discount_cents, subtotal)

    return PricingTotals(
        subtotal_cents=subtotal,
        discount_cents=discount,
        total_cents=max(0, subtotal - discount),
    )
