"""Shared BDD fixtures and step definitions for the Ordering domain."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.cart.events import (
    CartAbandoned,
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemMovedToCart,
    CartItemRemoved,
    CartItemSavedForLater,
    CartQuantityUpdated,
    CartsMerged,
)
from ordering.coupon.coupon import Coupon
from ordering.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderDelivered,
    OrderPlaced,
    OrderRefunded,
    OrderReturned,
    OrderShipped,
    OrderStatusChanged,
    PaymentFailed,
    PaymentReceived,
)
from ordering.order.order import Order
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

# Map event name strings to classes for dynamic lookup in Then steps
_ORDER_EVENT_CLASSES = {
    "OrderPlaced": OrderPlaced,
    "OrderStatusChanged": OrderStatusChanged,
    "OrderConfirmed": OrderConfirmed,
    "OrderShipped": OrderShipped,
    "OrderDelivered": OrderDelivered,
    "OrderCancelled": OrderCancelled,
    "OrderReturned": OrderReturned,
    "OrderRefunded": OrderRefunded,
    "PaymentReceived": PaymentReceived,
    "PaymentFailed": PaymentFailed,
}

_CART_EVENT_CLASSES = {
    "CartItemAdded": CartItemAdded,
    "CartQuantityUpdated": CartQuantityUpdated,
    "CartItemRemoved": CartItemRemoved,
    "CartItemSavedForLater": CartItemSavedForLater,
    "CartItemMovedToCart": CartItemMovedToCart,
    "CartCouponApplied": CartCouponApplied,
    "CartCouponRemoved": CartCouponRemoved,
    "CartCleared": CartCleared,
    "CartsMerged": CartsMerged,
    "CartAbandoned": CartAbandoned,
}

_ADDRESS = {
    "name": "Asha Rao",
    "phone": "9876543210",
    "address": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def user_id():
    return "user-001"


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps: Shopping Cart
# ---------------------------------------------------------------------------
@given("an empty cart", target_fixture="cart")
def empty_cart(user_id):
    cart = ShoppingCart.create(user_id=user_id)
    cart._events.clear()
    return cart


@given(
    parsers.cfparse('the cart has {qty:d} of product "{product_id}" at {price:g}'),
    target_fixture="cart",
)
def cart_with_product(cart, qty, product_id, price):
    cart.add_item(product_id=product_id, price=price, quantity=qty)
    cart._events.clear()
    return cart


@given(parsers.cfparse('the cart has coupon "{code}" worth {discount:g}'), target_fixture="cart")
def cart_with_coupon(cart, code, discount):
    cart.apply_coupon(code, discount)
    cart._events.clear()
    return cart


# ---------------------------------------------------------------------------
# Given steps: Coupon
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a {value:g}% coupon "{code}" with a minimum order of {minimum:g}'),
    target_fixture="coupon",
)
def percentage_coupon(value, code, minimum):
    now = datetime.now(UTC)
    return Coupon.create(
        code=code,
        description=f"{value:g}% off",
        discount_type="percentage",
        discount_value=value,
        valid_from=now - timedelta(days=1),
        valid_to=now + timedelta(days=30),
        min_order_amount=minimum,
    )


@given(parsers.cfparse('a flat {value:g} coupon "{code}"'), target_fixture="coupon")
def fixed_coupon(value, code):
    now = datetime.now(UTC)
    return Coupon.create(
        code=code,
        description=f"Flat {value:g} off",
        discount_type="fixed",
        discount_value=value,
        valid_from=now - timedelta(days=1),
        valid_to=now + timedelta(days=30),
    )


# ---------------------------------------------------------------------------
# Given steps: Order
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a pending order paid by "{payment_method}"'), target_fixture="order")
def pending_order(user_id, payment_method):
    order = Order.create(
        order_number="BKC20240300001",
        user_id=user_id,
        items_data=[{"product_id": "prod-001", "name": "Classic Tee", "quantity": 2, "price": 250.0}],
        shipping_address=_ADDRESS,
        pricing={"subtotal": 500.0, "shipping": 49.0},
        payment_method=payment_method,
    )
    order._events.clear()
    return order


@given("the order was confirmed", target_fixture="order")
def confirmed_order(order):
    order.confirm()
    order._events.clear()
    return order


@given("the order was paid", target_fixture="order")
def paid_order(order):
    order.record_payment_success("razorpay", "pay_001")
    order._events.clear()
    return order


@given("the order is processing", target_fixture="order")
def processing_order(order):
    order.mark_processing()
    order._events.clear()
    return order


@given("the order was shipped", target_fixture="order")
def shipped_order(order):
    order.ship("fake", "FAKE0001")
    order._events.clear()
    return order


@given("the order was delivered", target_fixture="order")
def delivered_order(order):
    order.deliver()
    order._events.clear()
    return order


@given("the order was cancelled", target_fixture="order")
def cancelled_order(order):
    order.cancel("Changed my mind")
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps: Order
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def payment_status_is(order, status):
    assert order.payment_status == status


@then("the order action fails with a validation error")
def order_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("an {event_type} order event is raised"))
def an_order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(isinstance(e, event_cls) for e in order._events)


@then(parsers.cfparse("a {event_type} order event is raised"))
def order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(isinstance(e, event_cls) for e in order._events)


# ---------------------------------------------------------------------------
# Then steps: Cart
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the cart total is {total:g}"))
def cart_total_is(cart, total):
    assert cart.total == total


@then(parsers.cfparse("the cart shipping is {shipping:g}"))
def cart_shipping_is(cart, shipping):
    assert cart.shipping == shipping


@then("the cart action fails with a validation error")
def cart_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("a {event_type} cart event is raised"))
def cart_event_raised(cart, event_type):
    event_cls = _CART_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in cart._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in cart._events]}"
