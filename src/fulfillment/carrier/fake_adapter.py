"""Fake carrier adapter: deterministic carrier for testing and development.

Generates mock AWB numbers, labels, and tracking events.
Configurable success/failure behavior for integration testing.
"""

from datetime import UTC, datetime
from uuid import uuid4

import structlog

from fulfillment.carrier.port import (
    CancellationResult,
    CarrierPort,
    ShipmentRequest,
    ShipmentResult,
    TrackingResult,
)

logger = structlog.get_logger(__name__)


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    provider = "fake"

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.requests: list[ShipmentRequest] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Carrier unavailable"):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_shipment(self, request: ShipmentRequest) -> ShipmentResult:
        self.requests.append(request)

        if not self.should_succeed:
            logger.warning("Shipment booking failed", provider=self.provider, order_id=request.order_id)
            return ShipmentResult(
                success=False,
                provider=self.provider,
                order_id=request.order_id,
                error=self.failure_reason,
            )

        awb_number = f"FAKE{uuid4().hex[:10].upper()}"
        shipment_id = f"ship-{uuid4().hex[:8]}"

        return ShipmentResult(
            success=True,
            provider=self.provider,
            order_id=request.order_id,
            awb_number=awb_number,
            shipment_id=shipment_id,
            tracking_url=f"https://fake-carrier.example.com/track/{awb_number}",
            label_url=f"https://fake-carrier.example.com/labels/{shipment_id}.pdf",
        )

    def track(self, awb_number: str) -> TrackingResult:
        if not self.should_succeed:
            return TrackingResult(
                success=False,
                provider=self.provider,
                awb_number=awb_number,
                error=self.failure_reason,
            )

        return TrackingResult(
            success=True,
            provider=self.provider,
            awb_number=awb_number,
            status="in_transit",
            location="Hub, Mumbai",
            events=(
                {
                    "status": "picked_up",
                    "location": "Warehouse, Delhi",
                    "occurred_at": datetime.now(UTC).isoformat(),
                },
                {
                    "status": "in_transit",
                    "location": "Hub, Mumbai",
                    "occurred_at": datetime.now(UTC).isoformat(),
                },
            ),
        )

    def cancel_shipment(self, awb_number: str) -> CancellationResult:  # noqa: ARG002
        if not self.should_succeed:
            return CancellationResult(success=False, provider=self.provider, error=self.failure_reason)
        return CancellationResult(success=True, provider=self.provider)
