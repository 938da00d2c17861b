"""Checkout: turns the user's shopping cart into an order.

``PlaceOrder`` runs inside a single unit of work: the stock reservations, the
order-number allocation, the order itself and the emptied cart are committed
together or not at all.

Steps:
    1. Load the cart; reject an empty one
    2. Reserve stock for every catalogue line
    3. Re-validate the applied coupon against the current subtotal
    4. Snapshot the lines and compute the totals
    5. Allocate the order number and estimate delivery
    6. Create the order (cash-on-delivery orders are confirmed at once)
    7. Clear the cart
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, Dict, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.coupons import cart_context
from ordering.catalogue.product import Product
from ordering.coupon.evaluator import validate_coupon
from ordering.domain import ordering
from ordering.order.delivery import estimate_delivery
from ordering.order.order import Order, OrderSource, PaymentMethod
from ordering.order.sequence import allocate_order_number
from ordering.shared.pricing import shipping_for, tax_for

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    """Check out the user's cart."""

    user_id = Identifier(required=True)
    shipping_address = Dict(required=True)
    billing_address = Dict()
    payment_method = String(required=True, max_length=20)
    notes = Text()
    is_gift = Boolean(default=False)
    gift_message = String(max_length=500)
    source = String(max_length=10, default=OrderSource.WEB.value)


def _snapshot(item, product):
    """Freeze a cart line into the dict ``Order.create`` expects."""
    snapshot = {
        "product_id": str(item.product_id) if item.product_id else None,
        "quantity": item.quantity,
        "price": item.price,
        "original_price": item.original_price,
        "size": item.size,
        "color": item.color,
        "customization": item.customization.to_dict() if item.customization else None,
    }
    if product is not None:
        snapshot.update(
            name=product.name,
            image=product.primary_image,
            sku=product.sku,
            seller_id=product.seller_id,
        )
    else:
        snapshot.update(
            name=item.custom_product.name,
            custom_product=item.custom_product.to_dict(),
        )
    return snapshot


def _reserve_stock(cart):
    """Take stock for every catalogue line and return ``{product_id: Product}``."""
    product_repo = current_domain.repository_for(Product)
    products = {}
    for item in cart.items:
        if not item.product_id:
            continue
        try:
            product = products.get(str(item.product_id)) or product_repo.get(item.product_id)
        except ObjectNotFoundError:
            raise ValidationError({"items": ["A product in your cart is no longer available"]})
        product.reserve_stock(item.quantity)
        products[str(product.id)] = product

    for product in products.values():
        product_repo.add(product)
    return products


def _coupon_pricing(cart, subtotal):
    """Return ``(coupon_code, coupon_discount, waives_shipping)`` for the cart's coupon."""
    if not cart.coupon_code:
        return None, 0.0, False

    product_ids, categories = cart_context(cart)
    result = validate_coupon(
        code=cart.coupon_code,
        user_id=cart.user_id,
        cart_total=subtotal,
        product_ids=product_ids,
        categories=categories,
    )
    if not result.valid:
        raise ValidationError({"coupon_code": [result.error]})
    return result.coupon.code, float(result.discount), result.waives_shipping


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        try:
            payment_method = PaymentMethod(command.payment_method)
        except ValueError:
            raise ValidationError({"payment_method": [f"Unsupported payment method: {command.payment_method}"]})

        cart_repo = current_domain.repository_for(ShoppingCart)
        cart = cart_repo.for_user(command.user_id)
        if cart is None or cart.is_empty:
            raise ValidationError({"items": ["Cart is empty"]})

        products = _reserve_stock(cart)

        subtotal = round(sum(item.line_total for item in cart.items), 2)
        coupon_code, coupon_discount, waives_shipping = _coupon_pricing(cart, subtotal)
        pricing = {
            "subtotal": subtotal,
            "shipping": 0.0 if waives_shipping else shipping_for(subtotal),
            "tax": tax_for(subtotal),
            "discount": cart.discount or 0.0,
            "coupon_code": coupon_code,
            "coupon_discount": coupon_discount,
        }

        now = datetime.now(UTC)
        order = Order.create(
            order_number=allocate_order_number(now),
            user_id=command.user_id,
            items_data=[
                _snapshot(item, products.get(str(item.product_id)) if item.product_id else None)
                for item in cart.items
            ],
            shipping_address=command.shipping_address,
            billing_address=command.billing_address,
            pricing=pricing,
            payment_method=payment_method.value,
            estimated_delivery=estimate_delivery(command.shipping_address.get("pincode"), now),
            notes=command.notes,
            is_gift=command.is_gift,
            gift_message=command.gift_message,
            source=command.source,
        )
        if payment_method == PaymentMethod.COD:
            order.confirm(note="Cash on delivery order confirmed", actor="system")

        current_domain.repository_for(Order).add(order)

        cart.clear_cart()
        cart_repo.add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            user_id=str(command.user_id),
            total=order.total,
            payment_method=order.payment_method,
            coupon_code=coupon_code,
        )
        return {"order_id": str(order.id), "order_number": order.order_number}
