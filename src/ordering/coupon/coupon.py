"""Coupon aggregate (CQRS): discount codes with eligibility rules.

A coupon is validated against a cart context by ``Coupon.evaluate()``, which
never raises for business failures: it returns a ``CouponValidation`` whose
``error`` carries the user-facing reason. Checks run in a fixed order and
stop at the first failure:

    active → validity window → global usage → per-user usage →
    minimum order amount → first order → allowed users → categories → products

Usage is only recorded once an order is confirmed (see ``record_usage``), so
repeated cart checks never consume a coupon.
"""

import re
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, List, String, Text

from ordering.coupon.events import CouponCreated, CouponDeactivated, CouponRedeemed
from ordering.domain import ordering
from ordering.shared.pricing import round_currency

_CODE_PATTERN = re.compile(r"^[A-Z0-9]+$")


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_SHIPPING = "free_shipping"
    BOGO = "bogo"


def normalize_code(code):
    return (code or "").strip().upper()


def _as_utc(value):
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True)
class CouponValidation:
    """Outcome of evaluating a coupon against a cart."""

    valid: bool
    discount: float | None = None
    coupon: "Coupon | None" = None
    error: str | None = None

    @classmethod
    def rejected(cls, error, coupon=None):
        return cls(valid=False, error=error, coupon=coupon)

    @property
    def waives_shipping(self) -> bool:
        return bool(
            self.valid and self.coupon is not None and self.coupon.discount_type == DiscountType.FREE_SHIPPING.value
        )

    def to_dict(self) -> dict:
        result = {"valid": self.valid}
        if self.valid:
            result["discount"] = self.discount
            result["coupon"] = self.coupon.summary() if self.coupon else None
        else:
            result["error"] = self.error
        return result


@ordering.entity(part_of="Coupon")
class CouponUsage:
    """One redemption of a coupon by a user against an order."""

    user_id: Identifier(required=True)
    order_id: Identifier(required=True)
    discount_applied: Float(default=0.0, min_value=0.0)
    used_at: DateTime()


@ordering.aggregate
class Coupon:
    code: String(required=True, max_length=20)
    name: String(max_length=100)
    description: String(required=True, max_length=500)
    discount_type: String(required=True, choices=DiscountType)
    discount_value: Float(required=True, min_value=0.0)
    max_discount_amount: Float(min_value=0.0)
    min_order_amount: Float(default=0.0, min_value=0.0)
    usage_limit: Integer(min_value=1)
    usage_limit_per_user: Integer(default=1, min_value=1)
    used_count: Integer(default=0, min_value=0)
    valid_from: DateTime(required=True)
    valid_to: DateTime(required=True)
    is_active: Boolean(default=True)
    is_public: Boolean(default=False)
    applicable_categories: List(content_type=String)
    applicable_products: List(content_type=String)
    excluded_products: List(content_type=String)
    applicable_users: List(content_type=String)
    first_order_only: Boolean(default=False)
    stackable: Boolean(default=False)
    terms_and_conditions: Text()
    created_by: Identifier()
    usage_history: HasMany(CouponUsage)
    created_at: DateTime()

    @invariant.post
    def code_must_be_uppercase_alphanumeric(self):
        if self.code and not _CODE_PATTERN.match(self.code):
            raise ValidationError({"code": ["Coupon code must contain only uppercase letters and digits"]})

    @invariant.post
    def percentage_cannot_exceed_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and (self.discount_value or 0) > 100:
            raise ValidationError({"discount_value": ["Percentage discount cannot exceed 100"]})

    @invariant.post
    def validity_window_must_end_after_start(self):
        if self.valid_from and self.valid_to and _as_utc(self.valid_to) <= _as_utc(self.valid_from):
            raise ValidationError({"valid_to": ["Valid to date must be after valid from date"]})

    @invariant.post
    def usage_cannot_exceed_limit(self):
        if self.usage_limit is not None and (self.used_count or 0) > self.usage_limit:
            raise ValidationError({"used_count": ["Coupon usage limit exceeded"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, code, description, discount_type, discount_value, valid_from, valid_to, **options):
        coupon = cls(
            code=normalize_code(code),
            description=description,
            discount_type=discount_type,
            discount_value=discount_value,
            valid_from=valid_from,
            valid_to=valid_to,
            used_count=0,
            created_at=datetime.now(UTC),
            **options,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                discount_type=coupon.discount_type,
                discount_value=coupon.discount_value,
                valid_from=coupon.valid_from,
                valid_to=coupon.valid_to,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    def is_expired(self, now=None):
        return _as_utc(now or datetime.now(UTC)) > _as_utc(self.valid_to)

    def is_valid(self, now=None):
        now = _as_utc(now or datetime.now(UTC))
        return (
            self.is_active
            and _as_utc(self.valid_from) <= now <= _as_utc(self.valid_to)
            and not self.is_exhausted
        )

    @property
    def is_exhausted(self):
        return self.usage_limit is not None and self.used_count >= self.usage_limit

    @property
    def remaining_uses(self):
        if self.usage_limit is None:
            return None
        return max(0, self.usage_limit - self.used_count)

    def usage_count_for(self, user_id):
        return sum(1 for usage in self.usage_history if str(usage.user_id) == str(user_id))

    def summary(self):
        return {
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "max_discount_amount": self.max_discount_amount,
            "min_order_amount": self.min_order_amount,
            "valid_to": self.valid_to.isoformat() if self.valid_to else None,
        }

    # -------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------
    def evaluate(self, user_id, cart_total, product_ids=(), categories=(), has_prior_orders=False, now=None):
        """Check eligibility for this cart and compute the discount.

        Args:
            user_id: The user applying the coupon.
            cart_total: Cart subtotal the discount is computed against.
            product_ids: Product identifiers present in the cart.
            categories: Categories of the products in the cart.
            has_prior_orders: Whether the user has placed an order before.
            now: Evaluation time, defaults to the current UTC time.
        """
        now = _as_utc(now or datetime.now(UTC))

        if not self.is_active:
            return CouponValidation.rejected("This coupon is no longer active", self)
        if now < _as_utc(self.valid_from):
            return CouponValidation.rejected("This coupon is not yet active", self)
        if now > _as_utc(self.valid_to):
            return CouponValidation.rejected("This coupon has expired", self)
        if self.is_exhausted:
            return CouponValidation.rejected("This coupon has reached its usage limit", self)
        if self.usage_count_for(user_id) >= self.usage_limit_per_user:
            return CouponValidation.rejected("You have already used this coupon", self)
        if cart_total < (self.min_order_amount or 0):
            return CouponValidation.rejected(f"Minimum order amount is ₹{self.min_order_amount:g}", self)
        if self.first_order_only and has_prior_orders:
            return CouponValidation.rejected("This coupon is for first orders only", self)
        if self.applicable_users and str(user_id) not in {str(u) for u in self.applicable_users}:
            return CouponValidation.rejected("This coupon is not available for your account", self)
        if not self._applies_to(product_ids, categories):
            return CouponValidation.rejected("This coupon is not applicable to items in your cart", self)

        return CouponValidation(valid=True, discount=self.discount_for(cart_total), coupon=self)

    def _applies_to(self, product_ids, categories):
        # Any matching category is enough
        if self.applicable_categories and not set(categories) & set(self.applicable_categories):
            return False

        product_ids = {str(p) for p in product_ids}
        if self.applicable_products and not product_ids & set(self.applicable_products):
            return False
        if self.excluded_products and product_ids and product_ids <= set(self.excluded_products):
            return False
        return True

    def discount_for(self, cart_total):
        """Discount for a cart total, rounded half-up to whole units before any cap applies."""
        discount_type = DiscountType(self.discount_type)

        if discount_type == DiscountType.PERCENTAGE:
            discount = round_currency(max(0.0, cart_total * self.discount_value / 100))
            if self.max_discount_amount:
                discount = min(discount, self.max_discount_amount)
            return discount

        if discount_type == DiscountType.FIXED:
            return round_currency(max(0.0, min(self.discount_value, cart_total)))

        # Free shipping is waived by the caller; BOGO grants no cart discount
        return 0

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def record_usage(self, user_id, order_id, discount_applied):
        """Consume one use of the coupon for a confirmed order."""
        now = datetime.now(UTC)
        self.used_count += 1
        self.add_usage_history(
            CouponUsage(
                user_id=user_id,
                order_id=order_id,
                discount_applied=discount_applied,
                used_at=now,
            )
        )

        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                user_id=str(user_id),
                order_id=str(order_id),
                discount_applied=discount_applied,
                used_count=self.used_count,
                redeemed_at=now,
            )
        )

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"is_active": ["Coupon is already inactive"]})

        self.is_active = False
        self.raise_(CouponDeactivated(coupon_id=str(self.id), code=self.code))
