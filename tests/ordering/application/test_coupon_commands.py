"""Application tests for coupon management and the coupon evaluator."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.coupon.coupon import Coupon
from ordering.coupon.evaluator import user_has_orders, validate_coupon
from ordering.coupon.management import DeactivateCoupon
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


def _coupons():
    return current_domain.repository_for(Coupon)


class TestCreateCoupon:
    def test_create_persists_coupon(self, make_coupon):
        coupon_id = make_coupon(code="save10")

        coupon = _coupons().get(coupon_id)
        assert coupon.code == "SAVE10"
        assert coupon.min_order_amount == 300.0
        assert coupon.used_count == 0

    def test_duplicate_code_rejected(self, make_coupon):
        make_coupon()
        with pytest.raises(ValidationError) as exc:
            make_coupon(code="Save10")
        assert exc.value.messages["code"] == ["Coupon code already exists"]

    def test_invalid_percentage_rejected(self, make_coupon):
        with pytest.raises(ValidationError):
            make_coupon(discount_value=150.0)


class TestDeactivateCoupon:
    def test_deactivate(self, make_coupon):
        make_coupon()
        current_domain.process(DeactivateCoupon(code="save10"), asynchronous=False)
        assert _coupons().get_by_code("SAVE10").is_active is False

    def test_unknown_code(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(DeactivateCoupon(code="MISSING"), asynchronous=False)


class TestPublicCoupons:
    def test_lists_valid_public_coupons_best_first(self, make_coupon):
        make_coupon(code="PUB10", is_public=True)
        make_coupon(code="PUB25", discount_value=25.0, is_public=True)
        make_coupon(code="HIDDEN50", discount_value=50.0)
        make_coupon(
            code="OLD30",
            discount_value=30.0,
            is_public=True,
            valid_from=datetime.now(UTC) - timedelta(days=10),
            valid_to=datetime.now(UTC) - timedelta(days=1),
        )

        codes = [coupon.code for coupon in _coupons().public_coupons()]
        assert codes == ["PUB25", "PUB10"]


class TestValidateCoupon:
    def test_valid_code(self, make_coupon):
        make_coupon()
        result = validate_coupon(code="save10", user_id="user-001", cart_total=500.0)

        assert result.valid is True
        assert result.discount == 50
        assert result.coupon.code == "SAVE10"

    def test_unknown_code(self):
        result = validate_coupon(code="NOPE", user_id="user-001", cart_total=500.0)
        assert result.valid is False
        assert result.error == "Invalid coupon code"

    def test_blank_code(self):
        assert validate_coupon(code="", user_id="user-001", cart_total=500.0).error == "Invalid coupon code"

    def test_first_order_coupon_checks_order_history(self, make_coupon, make_product, address):
        from ordering.cart.items import AddToCart
        from ordering.checkout.placement import PlaceOrder

        make_coupon(code="WELCOME", first_order_only=True, min_order_amount=0.0)
        assert user_has_orders("user-001") is False
        assert validate_coupon(code="WELCOME", user_id="user-001", cart_total=250.0).valid is True

        current_domain.process(AddToCart(user_id="user-001", product_id=make_product()), asynchronous=False)
        current_domain.process(
            PlaceOrder(user_id="user-001", shipping_address=address, payment_method="razorpay"),
            asynchronous=False,
        )

        assert user_has_orders("user-001") is True
        result = validate_coupon(code="WELCOME", user_id="user-001", cart_total=250.0)
        assert result.error == "This coupon is for first orders only"
