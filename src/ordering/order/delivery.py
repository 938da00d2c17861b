"""Estimated delivery dates by destination pincode."""

from datetime import UTC, datetime, timedelta

# First two digits of pincodes served by metro hubs
METRO_PREFIXES = ("11", "40", "56", "60", "70", "50")
REMOTE_PREFIXES = ("7", "8")

METRO_DAYS = 3
STANDARD_DAYS = 5
REMOTE_DAYS = 7


def delivery_days(pincode: str) -> int:
    pincode = (pincode or "").strip()
    if pincode.startswith(METRO_PREFIXES):
        return METRO_DAYS
    if pincode.startswith(REMOTE_PREFIXES):
        return REMOTE_DAYS
    return STANDARD_DAYS


def estimate_delivery(pincode: str, placed_at: datetime | None = None) -> datetime:
    return (placed_at or datetime.now(UTC)) + timedelta(days=delivery_days(pincode))
