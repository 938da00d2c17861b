"""Pricing rules shared by the Cart and Order aggregates.

Business constants come from the ``[custom]`` section of ``domain.toml``
and fall back to the defaults below when a key is absent.
"""

import math

from ordering.domain import ordering

_DEFAULTS = {
    "ORDER_NUMBER_PREFIX": "BKC",
    "FREE_SHIPPING_THRESHOLD": 599,
    "SHIPPING_FEE": 49,
    "TAX_RATE": 0,
    "RETURN_WINDOW_DAYS": 7,
    "ABANDONED_CART_HOURS": 24,
    "LOYALTY_POINTS_DIVISOR": 10,
}


def setting(name: str):
    """Return a business constant from the domain config."""
    return ordering.config.get("custom", {}).get(name, _DEFAULTS[name])


def round_currency(amount: float) -> int:
    """Round half-up to the nearest whole currency unit."""
    return int(math.floor(amount + 0.5))


def shipping_for(subtotal: float) -> float:
    """Flat shipping fee, waived at or above the free-shipping threshold."""
    if subtotal >= setting("FREE_SHIPPING_THRESHOLD"):
        return 0.0
    return float(setting("SHIPPING_FEE"))


def tax_for(subtotal: float) -> float:
    # Prices are tax-inclusive
    return round(subtotal * setting("TAX_RATE"), 2)


def grand_total(subtotal: float, shipping: float, tax: float, discount: float, coupon_discount: float) -> float:
    return max(0.0, subtotal + shipping + tax - (discount or 0.0) - (coupon_discount or 0.0))


def amount_to_free_shipping(subtotal: float) -> float:
    return max(0.0, setting("FREE_SHIPPING_THRESHOLD") - subtotal)


def loyalty_points_for(total: float) -> int:
    return int(total // setting("LOYALTY_POINTS_DIVISOR"))
