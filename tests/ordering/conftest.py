from datetime import UTC, datetime, timedelta

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


@pytest.fixture()
def address():
    return {
        "name": "Asha Rao",
        "phone": "9876543210",
        "address": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "pincode": "560001",
    }


@pytest.fixture()
def make_product():
    """Register a catalogue product and return its id."""
    from protean import current_domain

    from ordering.catalogue.registration import RegisterProduct

    def _make(**overrides):
        values = {
            "name": "Classic Tee",
            "sku": "TEE-001",
            "price": 250.0,
            "original_price": 399.0,
            "images": ["/img/tee.png"],
            "category": "tshirts",
            "stock": 50,
        }
        values.update(overrides)
        return current_domain.process(RegisterProduct(**values), asynchronous=False)

    return _make


@pytest.fixture()
def make_coupon():
    """Create a coupon through the command and return its id."""
    from protean import current_domain

    from ordering.coupon.management import CreateCoupon

    def _make(**overrides):
        now = datetime.now(UTC)
        values = {
            "code": "SAVE10",
            "description": "10% off",
            "discount_type": "percentage",
            "discount_value": 10.0,
            "min_order_amount": 300.0,
            "valid_from": now - timedelta(days=1),
            "valid_to": now + timedelta(days=30),
        }
        values.update(overrides)
        return current_domain.process(CreateCoupon(**values), asynchronous=False)

    return _make
