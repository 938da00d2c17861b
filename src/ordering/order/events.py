"""Domain events for the Order aggregate.

Events are immutable facts raised by the Order as it moves through its
lifecycle. Within the Ordering domain they drive:
- Coupon redemption when an order is confirmed
- Stock release when an order is cancelled
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A new order was created from a shopping cart at checkout."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item snapshots
    subtotal = Float(required=True)
    shipping = Float()
    tax = Float()
    discount = Float()
    coupon_code = String()
    coupon_discount = Float()
    total = Float(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new status and a history entry was appended."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    note = String()
    actor = String()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderConfirmed:
    """The order was confirmed and an invoice number issued."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    invoice_number = String(required=True)
    coupon_code = String()
    coupon_discount = Float()
    confirmed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderShipped:
    """The carrier accepted the shipment and issued an AWB number."""

    __version__ = 1

    order_id = Identifier(required=True)
    provider = String(required=True)
    awb_number = String(required=True)
    tracking_url = String()
    shipped_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    """The order reached the customer."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled before it left the warehouse."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    cancelled_by = String()
    items = Text(required=True)  # JSON: list of {product_id, quantity}
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderReturned:
    """The customer returned a delivered order."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    returned_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentInitiated:
    """A payment order was opened with the gateway."""

    __version__ = 1

    order_id = Identifier(required=True)
    provider = String(required=True)
    gateway_order_id = String(required=True)
    amount = Float(required=True)


@ordering.event(part_of="Order")
class PaymentReceived:
    """The gateway confirmed payment for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    provider = String(required=True)
    transaction_id = String(required=True)
    amount = Float(required=True)
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentFailed:
    """Payment for the order could not be verified or captured."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True)


@ordering.event(part_of="Order")
class OrderRefunded:
    """Money was returned to the customer for a cancelled or returned order."""

    __version__ = 1

    order_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String()
    transaction_id = String()
    payment_status = String(required=True)
    refunded_at = DateTime(required=True)


@ordering.event(part_of="OrderSequence")
class OrderNumberAllocated:
    """A monthly sequence value was handed out for a new order number."""

    __version__ = 1

    period = String(required=True)
    value = Integer(required=True)
