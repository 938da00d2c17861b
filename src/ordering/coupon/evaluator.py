"""Coupon Evaluator: validates a code against a cart context.

Looks the coupon up by code, gathers the facts the coupon rules need (the
user's order history for first-order coupons) and delegates the ordered
checks and discount calculation to ``Coupon.evaluate()``.
"""

import structlog
from protean.utils.globals import current_domain

from ordering.coupon.coupon import Coupon, CouponValidation
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


def user_has_orders(user_id) -> bool:
    return current_domain.repository_for(Order)._dao.query.filter(user_id=str(user_id)).count() > 0


def validate_coupon(code, user_id, cart_total, product_ids=(), categories=(), now=None) -> CouponValidation:
    """Validate ``code`` for a user's cart.

    Returns a ``CouponValidation``; business failures are reported through
    ``error`` rather than raised.
    """
    coupon = current_domain.repository_for(Coupon).find_by_code(code) if code else None
    if coupon is None:
        logger.info("Coupon code not found", code=code, user_id=str(user_id))
        return CouponValidation.rejected("Invalid coupon code")

    has_prior_orders = user_has_orders(user_id) if coupon.first_order_only else False
    result = coupon.evaluate(
        user_id=user_id,
        cart_total=cart_total,
        product_ids=product_ids,
        categories=categories,
        has_prior_orders=has_prior_orders,
        now=now,
    )

    logger.info(
        "Coupon evaluated",
        code=coupon.code,
        user_id=str(user_id),
        cart_total=cart_total,
        valid=result.valid,
        discount=result.discount,
        error=result.error,
    )
    return result
