"""Carrier port: abstract interface for shipping carrier integrations.

All carrier adapters must implement this interface. The ordering code
programs against the port; adapters are swapped via configuration.

Adapters never raise to their callers: network and provider errors are
caught, logged and reported through ``success=False`` and ``error`` on the
returned result. Nothing is retried.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Consignee:
    name: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str
    country: str = "India"


@dataclass(frozen=True)
class ShipmentRequest:
    """What a carrier needs to book a pickup for an order."""

    order_id: str
    order_number: str
    consignee: Consignee
    items: list[dict] = field(default_factory=list)  # name, quantity, price
    payment_mode: str = "prepaid"  # "prepaid" or "cod"
    cod_amount: float = 0.0
    weight: float | None = None


@dataclass(frozen=True)
class ShipmentResult:
    """Result of a shipment booking attempt."""

    success: bool
    provider: str
    order_id: str | None = None
    awb_number: str | None = None
    shipment_id: str | None = None
    tracking_url: str | None = None
    label_url: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class TrackingResult:
    success: bool
    provider: str
    awb_number: str
    status: str | None = None
    location: str | None = None
    events: tuple = ()
    error: str | None = None


@dataclass(frozen=True)
class CancellationResult:
    success: bool
    provider: str
    error: str | None = None


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    provider: str = ""

    @abstractmethod
    def create_shipment(self, request: ShipmentRequest) -> ShipmentResult:
        """Book a shipment and obtain an AWB number."""
        ...

    @abstractmethod
    def track(self, awb_number: str) -> TrackingResult:
        """Get current tracking status for a shipment."""
        ...

    @abstractmethod
    def cancel_shipment(self, awb_number: str) -> CancellationResult:
        """Cancel a booked shipment."""
        ...
