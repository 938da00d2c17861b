"""Application tests for order status, cancellation, refund, payment and shipping commands."""

import pytest
from fulfillment.carrier import set_carrier
from fulfillment.carrier.fake_adapter import FakeCarrier
from ordering.cart.items import AddToCart
from ordering.catalogue.product import Product
from ordering.checkout.placement import PlaceOrder
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
from payments.gateway import set_gateway
from payments.gateway.fake_adapter import FakeGateway
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


@pytest.fixture()
def gateway():
    fake = FakeGateway(secret="unit-test-secret")
    set_gateway(fake)
    return fake


@pytest.fixture()
def carrier():
    fake = FakeCarrier()
    set_carrier(fake)
    return fake


@pytest.fixture()
def product_id(make_product):
    return make_product(stock=20)


@pytest.fixture()
def place(product_id, address):
    def _place(payment_method="razorpay", quantity=2):
        current_domain.process(
            AddToCart(user_id="user-001", product_id=product_id, quantity=quantity),
            asynchronous=False,
        )
        placed = current_domain.process(
            PlaceOrder(user_id="user-001", shipping_address=address, payment_method=payment_method),
            asynchronous=False,
        )
        return placed["order_id"]

    return _place


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _pay(gateway, order_id):
    _process(InitiatePayment(order_id=order_id))
    gateway_order_id = _order(order_id).payment_details.gateway_order_id
    return _process(
        ConfirmPayment(
            order_id=order_id,
            transaction_id="pay_001",
            signature=gateway.sign(gateway_order_id, "pay_001"),
        )
    )


class TestStatusCommands:
    def test_walk_the_lifecycle(self, place, carrier):
        order_id = place()
        _process(ConfirmOrder(order_id=order_id, actor="admin"))
        _process(MarkProcessing(order_id=order_id))
        _process(ShipOrder(order_id=order_id))
        _process(MarkOutForDelivery(order_id=order_id))
        _process(DeliverOrder(order_id=order_id))

        order = _order(order_id)
        assert order.status == "delivered"
        assert len(order.status_history) == 6

    def test_guarded_transition(self, place):
        order_id = place()
        with pytest.raises(ValidationError) as exc:
            _process(DeliverOrder(order_id=order_id))
        assert exc.value.messages["status"] == ["Cannot transition from pending to delivered"]

    def test_back_office_update_skips_transition_map(self, place):
        order_id = place()
        _process(UpdateOrderStatus(order_id=order_id, status="shipped", status_note="Sent by hand", actor="admin"))

        order = _order(order_id)
        assert order.status == "shipped"
        assert order.status_history[-1].note == "Sent by hand"
        assert order.status_history[-1].actor == "admin"

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            _process(ConfirmOrder(order_id="missing"))


class TestCancellation:
    def test_cancel_releases_stock(self, place, product_id):
        order_id = place(quantity=3)
        assert current_domain.repository_for(Product).get(product_id).stock == 17

        _process(CancelOrder(order_id=order_id, reason="Ordered by mistake"))

        order = _order(order_id)
        assert order.status == "cancelled"
        assert order.cancelled_by == "customer"
        product = current_domain.repository_for(Product).get(product_id)
        assert product.stock == 20
        assert product.sold_count == 0

    def test_cannot_cancel_shipped_order(self, place, carrier):
        order_id = place(payment_method="cod")
        _process(MarkProcessing(order_id=order_id))
        _process(ShipOrder(order_id=order_id))

        with pytest.raises(ValidationError) as exc:
            _process(CancelOrder(order_id=order_id, reason="Too slow"))
        assert exc.value.messages["status"] == [
            "Cannot cancel order in shipped state. Cancellation is only allowed from: confirmed, pending"
        ]


class TestPayments:
    def test_initiate_payment(self, place, gateway):
        order_id = place()
        result = _process(InitiatePayment(order_id=order_id))

        assert result.success is True
        assert result.gateway_order_id.startswith("order_")
        assert result.amount == 549.0
        assert _order(order_id).payment_details.gateway_order_id == result.gateway_order_id

    def test_initiate_payment_gateway_failure(self, place, gateway):
        order_id = place()
        gateway.configure(should_succeed=False, failure_reason="Gateway timeout")

        result = _process(InitiatePayment(order_id=order_id))

        assert result.success is False
        assert result.error == "Gateway timeout"
        assert _order(order_id).payment_details is None

    def test_verified_payment_confirms_order(self, place, gateway):
        order_id = place()
        result = _pay(gateway, order_id)

        assert result.verified is True
        order = _order(order_id)
        assert order.payment_status == "paid"
        assert order.status == "confirmed"
        assert order.payment_details.transaction_id == "pay_001"

    def test_bad_signature_fails_payment(self, place, gateway):
        order_id = place()
        _process(InitiatePayment(order_id=order_id))

        result = _process(ConfirmPayment(order_id=order_id, transaction_id="pay_001", signature="forged"))

        assert result.verified is False
        order = _order(order_id)
        assert order.payment_status == "failed"
        assert order.payment_details.failure_reason == "Invalid payment signature"
        assert order.status == "pending"

    def test_confirm_before_initiate(self, place, gateway):
        order_id = place()
        with pytest.raises(ValidationError) as exc:
            _process(ConfirmPayment(order_id=order_id, transaction_id="pay_001", signature="sig"))
        assert "payment" in exc.value.messages


class TestRefunds:
    def test_refund_through_gateway(self, place, gateway):
        order_id = place()
        _pay(gateway, order_id)
        _process(CancelOrder(order_id=order_id, reason="Changed my mind"))

        result = _process(RefundOrder(order_id=order_id, reason="Changed my mind"))

        assert result.success is True
        assert result.refund_id.startswith("rfnd_")
        order = _order(order_id)
        assert order.payment_status == "refunded"
        assert order.refund.amount == 549.0
        assert order.refund.transaction_id == result.refund_id
        assert gateway.calls[-1]["transaction_id"] == "pay_001"

    def test_partial_refund(self, place, gateway):
        order_id = place()
        _pay(gateway, order_id)
        _process(CancelOrder(order_id=order_id, reason="Changed my mind"))

        _process(RefundOrder(order_id=order_id, amount=100.0))
        assert _order(order_id).payment_status == "partially_refunded"

    def test_gateway_failure_leaves_order_unchanged(self, place, gateway):
        order_id = place()
        _pay(gateway, order_id)
        _process(CancelOrder(order_id=order_id, reason="Changed my mind"))
        gateway.configure(should_succeed=False, failure_reason="Refund window closed")

        result = _process(RefundOrder(order_id=order_id))

        assert result.success is False
        assert result.error == "Refund window closed"
        order = _order(order_id)
        assert order.payment_status == "paid"
        assert order.refund is None

    def test_unpaid_order_not_refundable(self, place, gateway):
        order_id = place()
        _process(CancelOrder(order_id=order_id, reason="Changed my mind"))

        with pytest.raises(ValidationError):
            _process(RefundOrder(order_id=order_id))
        assert gateway.calls == []

    def test_cod_return_refunded_manually(self, place, carrier, gateway):
        order_id = place(payment_method="cod")
        _process(MarkProcessing(order_id=order_id))
        _process(ShipOrder(order_id=order_id))
        _process(DeliverOrder(order_id=order_id))
        _process(RequestReturn(order_id=order_id, reason="Wrong size"))

        result = _process(RefundOrder(order_id=order_id))

        assert result.success is True
        assert result.gateway_status == "manual"
        assert _order(order_id).payment_status == "refunded"
        assert gateway.calls == []


class TestShipping:
    def test_ship_books_with_carrier(self, place, carrier):
        order_id = place(payment_method="cod")
        _process(MarkProcessing(order_id=order_id))

        result = _process(ShipOrder(order_id=order_id, weight=0.5))

        assert result.success is True
        order = _order(order_id)
        assert order.status == "shipped"
        assert order.shipment.awb_number == result.awb_number
        request = carrier.requests[0]
        assert request.payment_mode == "cod"
        assert request.cod_amount == order.total
        assert request.consignee.pincode == "560001"

    def test_prepaid_shipment(self, place, carrier, gateway):
        order_id = place()
        _pay(gateway, order_id)
        _process(MarkProcessing(order_id=order_id))
        _process(ShipOrder(order_id=order_id))

        assert carrier.requests[0].payment_mode == "prepaid"
        assert carrier.requests[0].cod_amount == 0.0

    def test_carrier_failure_keeps_order_processing(self, place, carrier):
        order_id = place(payment_method="cod")
        _process(MarkProcessing(order_id=order_id))
        carrier.configure(should_succeed=False, failure_reason="Pincode not serviceable")

        result = _process(ShipOrder(order_id=order_id))

        assert result.success is False
        assert result.error == "Pincode not serviceable"
        assert _order(order_id).status == "processing"

    def test_cannot_ship_pending_order(self, place, carrier):
        order_id = place()
        with pytest.raises(ValidationError):
            _process(ShipOrder(order_id=order_id))
        assert carrier.requests == []


class TestReturns:
    def test_return_delivered_order(self, place, carrier):
        order_id = place(payment_method="cod")
        _process(MarkProcessing(order_id=order_id))
        _process(ShipOrder(order_id=order_id))
        _process(DeliverOrder(order_id=order_id))
        _process(RequestReturn(order_id=order_id, reason="Wrong size", actor="customer"))

        order = _order(order_id)
        assert order.status == "returned"
        assert order.return_reason == "Wrong size"

    def test_return_before_delivery(self, place):
        order_id = place()
        with pytest.raises(ValidationError):
            _process(RequestReturn(order_id=order_id, reason="Wrong size"))
