"""Domain events for the Coupon aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Coupon")
class CouponCreated:
    """A new coupon code was issued."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    discount_value = Float(required=True)
    valid_from = DateTime(required=True)
    valid_to = DateTime(required=True)


@ordering.event(part_of="Coupon")
class CouponDeactivated:
    """A coupon was switched off and will no longer validate."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)


@ordering.event(part_of="Coupon")
class CouponRedeemed:
    """A coupon was consumed by a confirmed order."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    discount_applied = Float(required=True)
    used_count = Integer(required=True)
    redeemed_at = DateTime(required=True)
