"""Tests for the fake carrier adapter and the carrier factory."""

import pytest
from fulfillment.carrier import get_carrier, reset_carrier, set_carrier
from fulfillment.carrier.fake_adapter import FakeCarrier
from fulfillment.carrier.port import Consignee, ShipmentRequest


def _request(order_id="ord-001"):
    return ShipmentRequest(
        order_id=order_id,
        order_number="BKC20240300001",
        consignee=Consignee(
            name="Asha Rao",
            phone="9876543210",
            address="12 MG Road",
            city="Bengaluru",
            state="Karnataka",
            pincode="560001",
        ),
        items=[{"name": "Classic Tee", "quantity": 2, "price": 250.0}],
    )


class TestCreateShipment:
    def test_success_issues_awb(self):
        carrier = FakeCarrier()
        result = carrier.create_shipment(_request())

        assert result.success is True
        assert result.provider == "fake"
        assert result.order_id == "ord-001"
        assert result.awb_number.startswith("FAKE")
        assert result.tracking_url.endswith(result.awb_number)
        assert carrier.requests[0].order_number == "BKC20240300001"

    def test_awb_numbers_are_unique(self):
        carrier = FakeCarrier()
        first = carrier.create_shipment(_request()).awb_number
        second = carrier.create_shipment(_request()).awb_number
        assert first != second

    def test_configured_failure(self):
        carrier = FakeCarrier()
        carrier.configure(should_succeed=False, failure_reason="Pincode not serviceable")

        result = carrier.create_shipment(_request())

        assert result.success is False
        assert result.error == "Pincode not serviceable"
        assert result.awb_number is None


class TestTracking:
    def test_track(self):
        result = FakeCarrier().track("FAKE0001")

        assert result.success is True
        assert result.status == "in_transit"
        assert [event["status"] for event in result.events] == ["picked_up", "in_transit"]

    def test_track_failure(self):
        carrier = FakeCarrier()
        carrier.configure(should_succeed=False)
        assert carrier.track("FAKE0001").success is False


class TestCancelShipment:
    def test_cancel(self):
        assert FakeCarrier().cancel_shipment("FAKE0001").success is True

    def test_cancel_failure(self):
        carrier = FakeCarrier()
        carrier.configure(should_succeed=False, failure_reason="Already picked up")
        assert carrier.cancel_shipment("FAKE0001").error == "Already picked up"


class TestCarrierFactory:
    def test_defaults_to_fake(self):
        assert isinstance(get_carrier(), FakeCarrier)

    def test_instance_is_cached(self):
        assert get_carrier() is get_carrier()

    def test_set_and_reset(self):
        custom = FakeCarrier()
        set_carrier(custom)
        assert get_carrier() is custom

        reset_carrier()
        assert get_carrier() is not custom

    def test_unknown_adapter(self, monkeypatch):
        monkeypatch.setenv("CARRIER_ADAPTER", "pigeon")
        reset_carrier()
        with pytest.raises(ValueError):
            get_carrier()
