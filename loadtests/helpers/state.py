"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared across users.
"""

from dataclasses import dataclass, field


@dataclass
class ShopperState:
    """Tracks one simulated shopper from cart to order."""

    user_id: str | None = None
    item_ids: list[str] = field(default_factory=list)
    coupon_code: str | None = None
    order_id: str | None = None
    order_number: str | None = None
