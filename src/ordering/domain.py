"""Ordering bounded context: Coupons, Shopping Carts and Orders.

Handles coupon evaluation, the per-user shopping cart (CQRS), the order
lifecycle state machine, and the checkout flow that converts carts to orders.
"""

from protean.domain import Domain

from ordering.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
ordering = Domain(name="ordering")
