"""Coupon management: commands and handler.

Issues new coupon codes and switches them off. Validation and redemption
live in ``evaluator.py`` and ``redemption.py``.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, List, String, Text
from protean.utils.globals import current_domain

from ordering.coupon.coupon import Coupon
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Coupon")
class CreateCoupon:
    """Issue a new coupon code."""

    code = String(required=True, max_length=20)
    name = String(max_length=100)
    description = String(required=True, max_length=500)
    discount_type = String(required=True, max_length=20)
    discount_value = Float(required=True, min_value=0.0)
    max_discount_amount = Float(min_value=0.0)
    min_order_amount = Float(default=0.0, min_value=0.0)
    usage_limit = Integer(min_value=1)
    usage_limit_per_user = Integer(default=1, min_value=1)
    valid_from = DateTime(required=True)
    valid_to = DateTime(required=True)
    is_public = Boolean(default=False)
    applicable_categories = List(content_type=String)
    applicable_products = List(content_type=String)
    excluded_products = List(content_type=String)
    applicable_users = List(content_type=String)
    first_order_only = Boolean(default=False)
    stackable = Boolean(default=False)
    terms_and_conditions = Text()
    created_by = Identifier()


@ordering.command(part_of="Coupon")
class DeactivateCoupon:
    code = String(required=True, max_length=20)


@ordering.command_handler(part_of=Coupon)
class ManageCouponHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        if repo.find_by_code(command.code) is not None:
            raise ValidationError({"code": ["Coupon code already exists"]})

        coupon = Coupon.create(
            code=command.code,
            description=command.description,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
            valid_from=command.valid_from,
            valid_to=command.valid_to,
            name=command.name,
            max_discount_amount=command.max_discount_amount,
            min_order_amount=command.min_order_amount or 0.0,
            usage_limit=command.usage_limit,
            usage_limit_per_user=command.usage_limit_per_user or 1,
            is_public=command.is_public,
            applicable_categories=command.applicable_categories or [],
            applicable_products=command.applicable_products or [],
            excluded_products=command.excluded_products or [],
            applicable_users=command.applicable_users or [],
            first_order_only=command.first_order_only,
            stackable=command.stackable,
            terms_and_conditions=command.terms_and_conditions,
            created_by=command.created_by,
        )
        repo.add(coupon)

        logger.info("Coupon created", code=coupon.code, discount_type=coupon.discount_type)
        return str(coupon.id)

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get_by_code(command.code)
        coupon.deactivate()
        repo.add(coupon)
