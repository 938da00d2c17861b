"""Integration tests for Order API endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from fulfillment.carrier import set_carrier
from fulfillment.carrier.fake_adapter import FakeCarrier
from ordering.api.errors import register_error_handlers
from ordering.api.routes import cart_router, order_router
from payments.gateway import set_gateway
from payments.gateway.fake_adapter import FakeGateway


@pytest.fixture()
def client():
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(cart_router)
    app.include_router(order_router)
    return TestClient(app)


@pytest.fixture()
def gateway():
    fake = FakeGateway(secret="api-test-secret")
    set_gateway(fake)
    return fake


@pytest.fixture()
def carrier():
    fake = FakeCarrier()
    set_carrier(fake)
    return fake


@pytest.fixture()
def place_order(client, make_product, address):
    def _place(payment_method="razorpay"):
        product_id = make_product()
        response = client.post("/carts/user-001/items", json={"product_id": product_id, "quantity": 2})
        assert response.status_code == 200
        response = client.post(
            "/carts/user-001/checkout",
            json={"shipping_address": address, "payment_method": payment_method},
        )
        assert response.status_code == 201
        return response.json()["order_id"]

    return _place


class TestGetOrder:
    def test_get_order(self, client, place_order):
        order_id = place_order()
        response = client.get(f"/orders/{order_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "pending"
        assert body["total"] == 549.0
        assert body["can_cancel"] is True
        assert body["can_return"] is False

    def test_unknown_order(self, client):
        response = client.get("/orders/missing")
        assert response.status_code == 404
        assert "error" in response.json()


class TestStatusEndpoints:
    def test_lifecycle(self, client, place_order, carrier):
        order_id = place_order()

        assert client.post(f"/orders/{order_id}/confirm", json={"actor": "admin"}).json()["status"] == "confirmed"
        assert client.post(f"/orders/{order_id}/process").json()["status"] == "processing"

        shipped = client.post(f"/orders/{order_id}/ship", json={"weight": 0.4})
        assert shipped.status_code == 200
        assert shipped.json()["awb_number"].startswith("FAKE")

        assert client.post(f"/orders/{order_id}/out-for-delivery").json()["status"] == "out_for_delivery"
        delivered = client.post(f"/orders/{order_id}/deliver").json()
        assert delivered["status"] == "delivered"
        assert delivered["can_return"] is True

        returned = client.post(f"/orders/{order_id}/return", json={"reason": "Wrong size"}).json()
        assert returned["status"] == "returned"

    def test_invalid_transition(self, client, place_order):
        order_id = place_order()
        response = client.post(f"/orders/{order_id}/deliver")
        assert response.status_code == 400
        assert response.json() == {"error": "Cannot transition from pending to delivered"}

    def test_back_office_update(self, client, place_order):
        order_id = place_order()
        response = client.put(f"/orders/{order_id}", json={"status": "processing", "status_note": "Manual override"})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "processing"
        assert body["status_history"][-1]["note"] == "Manual override"

    def test_carrier_failure_is_bad_gateway(self, client, place_order, carrier):
        order_id = place_order(payment_method="cod")
        client.post(f"/orders/{order_id}/process")
        carrier.configure(should_succeed=False, failure_reason="Carrier unavailable")

        response = client.post(f"/orders/{order_id}/ship")

        assert response.status_code == 502
        assert response.json()["error"] == "Carrier unavailable"
        assert client.get(f"/orders/{order_id}").json()["status"] == "processing"


class TestCancelEndpoint:
    def test_cancel(self, client, place_order):
        order_id = place_order()
        response = client.post(f"/orders/{order_id}/cancel", json={"reason": "Ordered by mistake"})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["can_cancel"] is False

    def test_cancel_shipped_order(self, client, place_order, carrier):
        order_id = place_order(payment_method="cod")
        client.post(f"/orders/{order_id}/process")
        client.post(f"/orders/{order_id}/ship")

        response = client.post(f"/orders/{order_id}/cancel", json={"reason": "Too slow"})

        assert response.status_code == 400
        assert response.json() == {
            "error": "Cannot cancel order in shipped state. Cancellation is only allowed from: confirmed, pending"
        }


class TestPaymentEndpoints:
    def test_pay_and_refund(self, client, place_order, gateway):
        order_id = place_order()

        initiated = client.post(f"/orders/{order_id}/payments")
        assert initiated.status_code == 201
        gateway_order_id = initiated.json()["gateway_order_id"]

        verified = client.post(
            f"/orders/{order_id}/payments/verify",
            json={"transaction_id": "pay_123", "signature": gateway.sign(gateway_order_id, "pay_123")},
        )
        assert verified.status_code == 200
        assert verified.json()["verified"] is True
        assert client.get(f"/orders/{order_id}").json()["payment_status"] == "paid"

        client.post(f"/orders/{order_id}/cancel", json={"reason": "Changed my mind"})
        refunded = client.post(f"/orders/{order_id}/refund", json={"reason": "Changed my mind"})

        assert refunded.status_code == 200
        assert refunded.json()["refund_id"].startswith("rfnd_")
        assert client.get(f"/orders/{order_id}").json()["payment_status"] == "refunded"

    def test_bad_signature(self, client, place_order, gateway):
        order_id = place_order()
        client.post(f"/orders/{order_id}/payments")

        response = client.post(
            f"/orders/{order_id}/payments/verify",
            json={"transaction_id": "pay_123", "signature": "forged"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid payment signature"
        assert client.get(f"/orders/{order_id}").json()["payment_status"] == "failed"

    def test_gateway_failure_is_bad_gateway(self, client, place_order, gateway):
        order_id = place_order()
        gateway.configure(should_succeed=False, failure_reason="Gateway timeout")

        response = client.post(f"/orders/{order_id}/payments")

        assert response.status_code == 502
        assert response.json()["error"] == "Gateway timeout"

    def test_refund_unpaid_order(self, client, place_order, gateway):
        order_id = place_order()
        client.post(f"/orders/{order_id}/cancel", json={"reason": "Changed my mind"})

        response = client.post(f"/orders/{order_id}/refund")

        assert response.status_code == 400
        assert response.json() == {"error": "Only paid orders can be refunded"}
