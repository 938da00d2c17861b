"""Faker-based data generators for Locust load test scenarios.

Payloads match the field names of the API's Pydantic request schemas and
pass the domain's validation rules (quantity 1-10, uppercase alphanumeric
coupon codes, six-digit pincodes).
"""

import random
import uuid
from datetime import UTC, datetime, timedelta

from faker import Faker

fake = Faker("en_IN")

PRODUCT_TYPES = ["tshirt", "hoodie", "mug", "poster", "phone_case"]
SIZES = ["S", "M", "L", "XL"]
COLORS = ["Black", "White", "Navy", "Maroon"]
PREPAID_METHODS = ["razorpay", "upi", "card", "netbanking"]


def unique_user_id() -> str:
    """Generate unique user IDs like 'user-lt-a1b2c3d4'."""
    return f"user-lt-{uuid.uuid4().hex[:8]}"


def custom_item_data(price_range: tuple[int, int] = (199, 899)) -> dict:
    """A made-to-order line; needs no catalogue record to exist."""
    product_type = random.choice(PRODUCT_TYPES)
    return {
        "custom_product": {
            "product_type": product_type,
            "name": f"{fake.word().capitalize()} {product_type.replace('_', ' ').title()}",
            "base_price": float(random.randint(*price_range)),
        },
        "quantity": random.randint(1, 3),
        "size": random.choice(SIZES),
        "color": random.choice(COLORS),
    }


def coupon_code(prefix: str = "LT") -> str:
    return f"{prefix}{uuid.uuid4().hex[:8].upper()}"


def coupon_data(code: str | None = None) -> dict:
    """A public percentage coupon valid for the next week."""
    now = datetime.now(UTC)
    return {
        "code": code or coupon_code(),
        "description": fake.sentence(nb_words=6)[:500],
        "discount_type": "percentage",
        "discount_value": float(random.choice([5, 10, 15, 20])),
        "max_discount_amount": 200.0,
        "min_order_amount": 0.0,
        "usage_limit_per_user": 5,
        "valid_from": (now - timedelta(minutes=5)).isoformat(),
        "valid_to": (now + timedelta(days=7)).isoformat(),
        "is_public": True,
    }


def pincode() -> str:
    return str(random.choice([110001, 400001, 560001, 600001, 700001, 500001, 302001, 781001]))


def address_data() -> dict:
    return {
        "name": fake.name()[:100],
        "phone": f"9{random.randint(100000000, 999999999)}",
        "address": fake.street_address()[:500],
        "city": fake.city()[:100],
        "state": fake.state()[:100],
        "pincode": pincode(),
        "country": "India",
    }


def checkout_data(cash_on_delivery: bool = False) -> dict:
    return {
        "shipping_address": address_data(),
        "payment_method": "cod" if cash_on_delivery else random.choice(PREPAID_METHODS),
        "notes": fake.sentence(nb_words=8) if random.random() < 0.2 else None,
        "source": random.choice(["web", "mobile"]),
    }
