"""Coupon redemption: consumes a coupon use when an order is confirmed.

Validation never consumes a use, so repeated cart checks do not count
against the limits. The use is recorded exactly once, from the
``OrderConfirmed`` event raised the first time an order reaches confirmed.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from ordering.coupon.coupon import Coupon
from ordering.domain import ordering
from ordering.order.events import OrderConfirmed

logger = structlog.get_logger(__name__)


@ordering.event_handler(part_of=Coupon, stream_category="ordering::order")
class CouponRedemptionHandler:
    @handle(OrderConfirmed)
    def on_order_confirmed(self, event: OrderConfirmed) -> None:
        if not event.coupon_code:
            return

        repo = current_domain.repository_for(Coupon)
        coupon = repo.find_by_code(event.coupon_code)
        if coupon is None:
            logger.warning(
                "Confirmed order references an unknown coupon",
                order_id=str(event.order_id),
                code=event.coupon_code,
            )
            return

        if coupon.is_exhausted:
            logger.warning(
                "Coupon usage limit reached before redemption",
                order_id=str(event.order_id),
                code=coupon.code,
                used_count=coupon.used_count,
            )
            return

        coupon.record_usage(
            user_id=str(event.user_id),
            order_id=str(event.order_id),
            discount_applied=event.coupon_discount or 0.0,
        )
        repo.add(coupon)

        logger.info(
            "Coupon redeemed",
            code=coupon.code,
            order_id=str(event.order_id),
            user_id=str(event.user_id),
            used_count=coupon.used_count,
        )
