"""FastAPI routes for the Ordering domain: carts, coupons and orders."""

import json
from dataclasses import asdict

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AbandonedCartsResponse,
    ActorRequest,
    AddToCartRequest,
    ApplyCouponToCartRequest,
    CancelOrderRequest,
    CheckoutRequest,
    CouponIdResponse,
    CreateCouponRequest,
    InitiatePaymentRequest,
    MergeGuestCartRequest,
    PlacedOrderResponse,
    RefundOrderRequest,
    RequestReturnRequest,
    ShipOrderRequest,
    StatusResponse,
    UpdateCartQuantityRequest,
    UpdateOrderStatusRequest,
    ValidateCouponRequest,
    VerifyPaymentRequest,
)
from ordering.cart.abandonment import MarkAbandonedCartsNotified
from ordering.cart.coupons import ApplyCouponToCart, RemoveCouponFromCart
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from ordering.cart.management import ClearCart, MergeGuestCart, get_or_create_cart
from ordering.cart.saved import MoveToCart, SaveForLater
from ordering.checkout.placement import PlaceOrder
from ordering.coupon.coupon import Coupon
from ordering.coupon.evaluator import validate_coupon
from ordering.coupon.management import CreateCoupon, DeactivateCoupon
from ordering.order.cancellation import CancelOrder, RefundOrder
from ordering.order.order import Order
from ordering.order.payment import ConfirmPayment, InitiatePayment
from ordering.order.returns import RequestReturn
from ordering.order.shipping import ShipOrder
from ordering.order.status import (
    ConfirmOrder,
    DeliverOrder,
    MarkOutForDelivery,
    MarkProcessing,
    UpdateOrderStatus,
)


def _cart_view(cart) -> dict:
    view = cart.to_dict()
    view["item_count"] = cart.item_count
    view["amount_to_free_shipping"] = cart.amount_to_free_shipping
    return view


def _current_cart(user_id) -> dict:
    return _cart_view(get_or_create_cart(user_id))


def _gateway_response(result, success_code=200) -> JSONResponse:
    """Failed provider calls surface as 502 with the provider's error."""
    return JSONResponse(status_code=success_code if result.success else 502, content=asdict(result))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("/abandoned/notify", response_model=AbandonedCartsResponse)
async def flag_abandoned_carts() -> AbandonedCartsResponse:
    """Flag idle carts for a recovery reminder. Called by an external scheduler."""
    flagged = current_domain.process(MarkAbandonedCartsNotified(), asynchronous=False)
    return AbandonedCartsResponse(flagged=flagged)


@cart_router.get("/{user_id}")
async def get_cart(user_id: str) -> dict:
    return _current_cart(user_id)


@cart_router.delete("/{user_id}")
async def clear_cart(user_id: str) -> dict:
    current_domain.process(ClearCart(user_id=user_id), asynchronous=False)
    return _current_cart(user_id)


@cart_router.post("/{user_id}/items")
async def add_cart_item(user_id: str, body: AddToCartRequest) -> dict:
    command = AddToCart(
        user_id=user_id,
        product_id=body.product_id,
        custom_product=body.custom_product.model_dump() if body.custom_product else None,
        quantity=body.quantity,
        size=body.size,
        color=body.color,
        customization=body.customization.model_dump(exclude_none=True) if body.customization else None,
    )
    current_domain.process(command, asynchronous=False)
    return _current_cart(user_id)


@cart_router.put("/{user_id}/items/{item_id}")
async def update_cart_item_quantity(user_id: str, item_id: str, body: UpdateCartQuantityRequest) -> dict:
    command = UpdateCartQuantity(user_id=user_id, item_id=item_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return _current_cart(user_id)


@cart_router.delete("/{user_id}/items/{item_id}")
async def remove_cart_item(user_id: str, item_id: str) -> dict:
    current_domain.process(RemoveFromCart(user_id=user_id, item_id=item_id), asynchronous=False)
    return _current_cart(user_id)


@cart_router.post("/{user_id}/items/{item_id}/save")
async def save_cart_item_for_later(user_id: str, item_id: str) -> dict:
    current_domain.process(SaveForLater(user_id=user_id, item_id=item_id), asynchronous=False)
    return _current_cart(user_id)


@cart_router.post("/{user_id}/saved/{item_id}/move")
async def move_saved_item_to_cart(user_id: str, item_id: str) -> dict:
    current_domain.process(MoveToCart(user_id=user_id, saved_item_id=item_id), asynchronous=False)
    return _current_cart(user_id)


@cart_router.post("/{user_id}/coupon")
async def apply_cart_coupon(user_id: str, body: ApplyCouponToCartRequest) -> dict:
    command = ApplyCouponToCart(user_id=user_id, coupon_code=body.coupon_code)
    current_domain.process(command, asynchronous=False)
    return _current_cart(user_id)


@cart_router.delete("/{user_id}/coupon")
async def remove_cart_coupon(user_id: str) -> dict:
    current_domain.process(RemoveCouponFromCart(user_id=user_id), asynchronous=False)
    return _current_cart(user_id)


@cart_router.post("/{user_id}/merge")
async def merge_guest_cart(user_id: str, body: MergeGuestCartRequest) -> dict:
    command = MergeGuestCart(user_id=user_id, guest_cart_items=json.dumps(body.items))
    current_domain.process(command, asynchronous=False)
    return _current_cart(user_id)


@cart_router.post("/{user_id}/checkout", status_code=201, response_model=PlacedOrderResponse)
async def checkout_cart(user_id: str, body: CheckoutRequest) -> PlacedOrderResponse:
    """Place an order from the user's cart."""
    payload = body.model_dump(exclude_none=True)
    command = PlaceOrder(user_id=user_id, **payload)
    placed = current_domain.process(command, asynchronous=False)
    return PlacedOrderResponse(**placed)


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("", status_code=201, response_model=CouponIdResponse)
async def create_coupon(body: CreateCouponRequest) -> CouponIdResponse:
    coupon_id = current_domain.process(CreateCoupon(**body.model_dump()), asynchronous=False)
    return CouponIdResponse(coupon_id=coupon_id)


@coupon_router.get("/public")
async def list_public_coupons() -> list[dict]:
    return [coupon.summary() for coupon in current_domain.repository_for(Coupon).public_coupons()]


@coupon_router.post("/validate")
async def validate_coupon_code(body: ValidateCouponRequest) -> dict:
    result = validate_coupon(
        code=body.code,
        user_id=body.user_id,
        cart_total=body.cart_total,
        product_ids=body.product_ids,
        categories=body.categories,
    )
    return result.to_dict()


@coupon_router.post("/{code}/deactivate", response_model=StatusResponse)
async def deactivate_coupon(code: str) -> StatusResponse:
    current_domain.process(DeactivateCoupon(code=code), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


def _order_view(order_id) -> dict:
    order = current_domain.repository_for(Order).get(order_id)
    view = order.to_dict()
    view["can_cancel"] = order.can_cancel
    view["can_return"] = order.can_return()
    return view


@order_router.get("/{order_id}")
async def get_order(order_id: str) -> dict:
    return _order_view(order_id)


@order_router.put("/{order_id}")
async def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> dict:
    """Back-office status change; not checked against the transition map."""
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        status_note=body.status_note,
        actor=body.actor,
    )
    current_domain.process(command, asynchronous=False)
    return _order_view(order_id)


@order_router.post("/{order_id}/cancel")
async def cancel_order(order_id: str, body: CancelOrderRequest) -> dict:
    command = CancelOrder(order_id=order_id, reason=body.reason, cancelled_by=body.cancelled_by)
    current_domain.process(command, asynchronous=False)
    return _order_view(order_id)


@order_router.post("/{order_id}/confirm")
async def confirm_order(order_id: str, body: ActorRequest | None = None) -> dict:
    command = ConfirmOrder(order_id=order_id, actor=body.actor if body else None)
    current_domain.process(command, asynchronous=False)
    return _order_view(order_id)


@order_router.post("/{order_id}/process")
async def mark_processing(order_id: str, body: ActorRequest | None = None) -> dict:
    command = MarkProcessing(order_id=order_id, actor=body.actor if body else None)
    current_domain.process(command, asynchronous=False)
    return _order_view(order_id)


@order_router.post("/{order_id}/ship")
async def ship_order(order_id: str, body: ShipOrderRequest | None = None) -> JSONResponse:
    command = ShipOrder(
        order_id=order_id,
        weight=body.weight if body else None,
        actor=body.actor if body else None,
    )
    result = current_domain.process(command, asynchronous=False)
    return _gateway_response(result)


@order_router.post("/{order_id}/out-for-delivery")
async def mark_out_for_delivery(order_id: str, body: ActorRequest | None = None) -> dict:
    command = MarkOutForDelivery(order_id=order_id, actor=body.actor if body else None)
    current_domain.process(command, asynchronous=False)
    return _order_view(order_id)


@order_router.post("/{order_id}/deliver")
async def deliver_order(order_id: str, body: ActorRequest | None = None) -> dict:
    command = DeliverOrder(order_id=order_id, actor=body.actor if body else None)
    current_domain.process(command, asynchronous=False)
    return _order_view(order_id)


@order_router.post("/{order_id}/return")
async def request_return(order_id: str, body: RequestReturnRequest) -> dict:
    command = RequestReturn(order_id=order_id, reason=body.reason, actor=body.actor)
    current_domain.process(command, asynchronous=False)
    return _order_view(order_id)


@order_router.post("/{order_id}/refund")
async def refund_order(order_id: str, body: RefundOrderRequest | None = None) -> JSONResponse:
    command = RefundOrder(
        order_id=order_id,
        amount=body.amount if body else None,
        reason=body.reason if body else None,
    )
    result = current_domain.process(command, asynchronous=False)
    return _gateway_response(result)


@order_router.post("/{order_id}/payments")
async def initiate_payment(order_id: str, body: InitiatePaymentRequest | None = None) -> JSONResponse:
    command = InitiatePayment(order_id=order_id, currency=body.currency if body else "INR")
    result = current_domain.process(command, asynchronous=False)
    return _gateway_response(result, success_code=201)


@order_router.post("/{order_id}/payments/verify")
async def verify_payment(order_id: str, body: VerifyPaymentRequest) -> JSONResponse:
    command = ConfirmPayment(order_id=order_id, transaction_id=body.transaction_id, signature=body.signature)
    result = current_domain.process(command, asynchronous=False)
    if result.success and not result.verified:
        return JSONResponse(status_code=400, content=asdict(result))
    return _gateway_response(result)
