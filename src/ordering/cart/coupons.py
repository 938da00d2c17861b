"""Cart coupon management: commands and handler.

The code is checked by the Coupon Evaluator against the cart's current
subtotal, products and categories; the cart only stores the outcome.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.items import load_user_cart
from ordering.catalogue.product import Product
from ordering.coupon.evaluator import validate_coupon
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


@ordering.command(part_of="ShoppingCart")
class ApplyCouponToCart:
    """Apply a coupon code to a shopping cart."""

    user_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=100)


@ordering.command(part_of="ShoppingCart")
class RemoveCouponFromCart:
    user_id = Identifier(required=True)


def cart_context(cart):
    """Product ids and categories of the catalogue lines in ``cart``."""
    product_ids = [str(item.product_id) for item in cart.items if item.product_id]
    categories = []
    if product_ids:
        products = current_domain.repository_for(Product)._dao.query.filter(id__in=product_ids).all().items
        categories = sorted({product.category for product in products if product.category})
    return product_ids, categories


@ordering.command_handler(part_of=ShoppingCart)
class CartCouponHandler:
    @handle(ApplyCouponToCart)
    def apply_coupon(self, command):
        cart = load_user_cart(command.user_id)
        if cart.is_empty:
            raise ValidationError({"items": ["Cart is empty"]})

        product_ids, categories = cart_context(cart)
        result = validate_coupon(
            code=command.coupon_code,
            user_id=command.user_id,
            cart_total=cart.subtotal,
            product_ids=product_ids,
            categories=categories,
        )
        if not result.valid:
            raise ValidationError({"coupon_code": [result.error]})

        cart.apply_coupon(coupon_code=result.coupon.code, discount=result.discount)
        current_domain.repository_for(ShoppingCart).add(cart)

        logger.info(
            "Coupon applied to cart",
            user_id=str(command.user_id),
            code=result.coupon.code,
            discount=result.discount,
        )
        return result

    @handle(RemoveCouponFromCart)
    def remove_coupon(self, command):
        cart = load_user_cart(command.user_id)
        cart.remove_coupon()
        current_domain.repository_for(ShoppingCart).add(cart)
