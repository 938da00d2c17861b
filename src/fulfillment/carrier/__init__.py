"""Carrier adapter abstraction: pluggable shipping carrier integration.

The active adapter is chosen by the ``CARRIER_ADAPTER`` environment variable
and cached for the life of the process. Tests swap it with ``set_carrier()``.
"""

import os

from fulfillment.carrier.port import CarrierPort

_carrier_instance: CarrierPort | None = None


def _build(adapter: str) -> CarrierPort:
    if adapter == "fake":
        from fulfillment.carrier.fake_adapter import FakeCarrier

        return FakeCarrier()
    raise ValueError(f"Unknown carrier adapter: {adapter}")


def get_carrier() -> CarrierPort:
    """Return the configured carrier adapter. Defaults to FakeCarrier."""
    global _carrier_instance
    if _carrier_instance is None:
        _carrier_instance = _build(os.environ.get("CARRIER_ADAPTER", "fake"))
    return _carrier_instance


def set_carrier(carrier: CarrierPort) -> None:
    global _carrier_instance
    _carrier_instance = carrier


def reset_carrier() -> None:
    global _carrier_instance
    _carrier_instance = None
