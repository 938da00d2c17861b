"""Order aggregate (CQRS): the core of the ordering domain.

The Order is a standard CQRS aggregate: its line items are snapshots taken at
checkout and never change afterwards, while its status moves through a state
machine. Every status change appends an entry to ``status_history``, which is
the order's audit trail; nothing is ever deleted.

State Machine (8 states):
    pending → confirmed → processing → shipped → out_for_delivery → delivered
    cancelled (from pending, confirmed)
    returned (from delivered, within the return window)

``update_status()`` is the unconditional path used by back-office staff. The
named lifecycle methods (``confirm``, ``ship``, ``deliver`` ...) check the
transition map first and then go through ``update_status()``.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderDelivered,
    OrderPlaced,
    OrderRefunded,
    OrderReturned,
    OrderShipped,
    OrderStatusChanged,
    PaymentFailed,
    PaymentInitiated,
    PaymentReceived,
)
from ordering.shared.customization import CustomProduct, Customization
from ordering.shared.pricing import grand_total, loyalty_points_for, setting


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentMethod(Enum):
    RAZORPAY = "razorpay"
    PHONEPE = "phonepe"
    PAYTM = "paytm"
    PAYU = "payu"
    STRIPE = "stripe"
    COD = "cod"
    UPI = "upi"
    CARD = "card"
    NETBANKING = "netbanking"
    WALLET = "wallet"


class ItemStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class CancellationActor(Enum):
    CUSTOMER = "customer"
    SELLER = "seller"
    ADMIN = "admin"
    SYSTEM = "system"


class OrderSource(Enum):
    WEB = "web"
    MOBILE = "mobile"
    ADMIN = "admin"


class AddressType(Enum):
    HOME = "home"
    WORK = "work"
    OTHER = "other"


# State machine transition map for the named lifecycle operations
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
}

# States from which cancellation is allowed
_CANCELLABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
}

# Item status follows the order through these states
_ITEM_STATUS_FOR = {
    OrderStatus.CONFIRMED: ItemStatus.CONFIRMED,
    OrderStatus.SHIPPED: ItemStatus.SHIPPED,
    OrderStatus.DELIVERED: ItemStatus.DELIVERED,
    OrderStatus.CANCELLED: ItemStatus.CANCELLED,
    OrderStatus.RETURNED: ItemStatus.RETURNED,
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class Address:
    """A delivery or billing address captured at checkout time.

    Once recorded on an Order, the address is immutable; it represents where
    the order was shipped, regardless of later changes to the user's address book.
    """

    name = String(required=True, max_length=100)
    phone = String(required=True, max_length=20)
    alternate_phone = String(max_length=20)
    address = String(required=True, max_length=500)
    landmark = String(max_length=200)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    pincode = String(required=True, max_length=10)
    country = String(max_length=100, default="India")
    address_type = String(choices=AddressType, default=AddressType.HOME.value)


@ordering.value_object(part_of="Order")
class PaymentDetails:
    provider = String(max_length=50)
    gateway_order_id = String(max_length=255)
    transaction_id = String(max_length=255)
    failure_reason = String(max_length=500)
    paid_at = DateTime()


@ordering.value_object(part_of="Order")
class Shipment:
    """Carrier reference for a dispatched order."""

    provider = String(required=True, max_length=50)
    awb_number = String(required=True, max_length=100)
    shipment_id = String(max_length=100)
    tracking_url = String(max_length=500)
    label_url = String(max_length=500)


@ordering.value_object(part_of="Order")
class RefundDetails:
    amount = Float(required=True, min_value=0.0)
    reason = String(max_length=500)
    transaction_id = String(max_length=255)
    processed_at = DateTime()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A line item snapshot: what was bought, at what price, as it looked then."""

    product_id = Identifier()  # Empty for custom products
    custom_product = ValueObject(CustomProduct)
    name = String(required=True, max_length=255)
    image = String(max_length=1000)
    sku = String(max_length=50)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)
    original_price = Float(min_value=0.0)
    size = String(max_length=20)
    color = String(max_length=50)
    customization = ValueObject(Customization)
    seller_id = Identifier()
    item_status = String(choices=ItemStatus, default=ItemStatus.PENDING.value)


@ordering.entity(part_of="Order")
class StatusChange:
    """An entry in the order's append-only status history."""

    status = String(required=True, choices=OrderStatus)
    timestamp = DateTime(required=True)
    note = String(max_length=500)
    actor = String(max_length=100)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=20)
    user_id = Identifier(required=True)
    items = HasMany(OrderItem)
    subtotal = Float(default=0.0, min_value=0.0)
    shipping = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    coupon_code = String(max_length=20)
    coupon_discount = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    status_history = HasMany(StatusChange)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(required=True, choices=PaymentMethod)
    payment_details = ValueObject(PaymentDetails)
    shipping_address = ValueObject(Address, required=True)
    billing_address = ValueObject(Address)
    shipment = ValueObject(Shipment)
    estimated_delivery = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(choices=CancellationActor)
    return_reason = String(max_length=500)
    refund = ValueObject(RefundDetails)
    invoice_number = String(max_length=30)
    notes = Text()
    gift_message = String(max_length=500)
    is_gift = Boolean(default=False)
    loyalty_points_earned = Integer(default=0, min_value=0)
    source = String(choices=OrderSource, default=OrderSource.WEB.value)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_match_components(self):
        expected = grand_total(self.subtotal, self.shipping, self.tax, self.discount, self.coupon_discount)
        if abs((self.total or 0.0) - expected) > 0.005:
            raise ValidationError({"total": ["Total must equal subtotal + shipping + tax - discounts"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_number,
        user_id,
        items_data,
        shipping_address,
        pricing,
        payment_method,
        billing_address=None,
        estimated_delivery=None,
        **extra,
    ):
        """Create a new order from checkout data.

        Args:
            order_number: Number allocated from the monthly sequence.
            user_id: The user placing the order.
            items_data: List of item snapshot dicts (product_id, name, image,
                        quantity, price, original_price, size, color, ...).
            shipping_address: Dict matching ``Address``.
            pricing: Dict with subtotal, shipping, tax, discount, coupon_code,
                     coupon_discount.
            payment_method: One of ``PaymentMethod`` values.
            billing_address: Defaults to the shipping address.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        total = grand_total(
            pricing.get("subtotal", 0.0),
            pricing.get("shipping", 0.0),
            pricing.get("tax", 0.0),
            pricing.get("discount", 0.0),
            pricing.get("coupon_discount", 0.0),
        )

        order = cls(
            order_number=order_number,
            user_id=user_id,
            items=[_order_item(item) for item in items_data],
            subtotal=pricing.get("subtotal", 0.0),
            shipping=pricing.get("shipping", 0.0),
            tax=pricing.get("tax", 0.0),
            discount=pricing.get("discount", 0.0),
            coupon_code=pricing.get("coupon_code"),
            coupon_discount=pricing.get("coupon_discount", 0.0),
            total=total,
            status=OrderStatus.PENDING.value,
            status_history=[StatusChange(status=OrderStatus.PENDING.value, timestamp=now, note="Order placed")],
            payment_status=PaymentStatus.PENDING.value,
            payment_method=payment_method,
            shipping_address=Address(**shipping_address),
            billing_address=Address(**(billing_address or shipping_address)),
            estimated_delivery=estimated_delivery,
            loyalty_points_earned=loyalty_points_for(total),
            created_at=now,
            updated_at=now,
            **extra,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                user_id=str(user_id),
                items=json.dumps([order._item_summary(item) for item in order.items]),
                subtotal=order.subtotal,
                shipping=order.shipping,
                tax=order.tax,
                discount=order.discount,
                coupon_code=order.coupon_code,
                coupon_discount=order.coupon_discount,
                total=order.total,
                payment_method=order.payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------
    @property
    def can_cancel(self):
        return OrderStatus(self.status) in _CANCELLABLE_STATES

    def can_return(self, now=None):
        if OrderStatus(self.status) != OrderStatus.DELIVERED or self.delivered_at is None:
            return False
        now = now or datetime.now(UTC)
        delivered_at = self.delivered_at
        if delivered_at.tzinfo is None:
            delivered_at = delivered_at.replace(tzinfo=UTC)
        return now - delivered_at <= timedelta(days=setting("RETURN_WINDOW_DAYS"))

    def can_transition_to(self, target_status):
        return target_status in _VALID_TRANSITIONS.get(OrderStatus(self.status), set())

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        current = OrderStatus(self.status)
        if not self.can_transition_to(target_status):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _item_summary(self, item):
        return {
            "product_id": str(item.product_id) if item.product_id else None,
            "name": item.name,
            "quantity": item.quantity,
            "price": item.price,
        }

    def update_status(self, status, note=None, actor=None):
        """Set the status unconditionally and append a history entry.

        ``delivered`` also stamps the delivery time, and ``confirmed`` issues
        the invoice number the first time the order gets there.
        """
        try:
            target = OrderStatus(status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status: {status}"]}) from None

        previous = OrderStatus(self.status)
        now = datetime.now(UTC)

        self.status = target.value
        self.add_status_history(StatusChange(status=target.value, timestamp=now, note=note, actor=actor))
        self.updated_at = now

        if target in _ITEM_STATUS_FOR:
            for item in self.items:
                item.item_status = _ITEM_STATUS_FOR[target].value

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous.value,
                new_status=target.value,
                note=note,
                actor=actor,
                changed_at=now,
            )
        )

        if target == previous:
            return

        if target == OrderStatus.CONFIRMED and not self.invoice_number:
            self.invoice_number = f"INV-{self.order_number}"
            self.raise_(
                OrderConfirmed(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    user_id=str(self.user_id),
                    invoice_number=self.invoice_number,
                    coupon_code=self.coupon_code,
                    coupon_discount=self.coupon_discount,
                    confirmed_at=now,
                )
            )
        elif target == OrderStatus.DELIVERED:
            self.delivered_at = now
            if self.payment_method == PaymentMethod.COD.value and self.payment_status == PaymentStatus.PENDING.value:
                # Cash is collected on the doorstep
                self.payment_status = PaymentStatus.PAID.value
            self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=now))
        elif target == OrderStatus.CANCELLED:
            self.cancelled_at = now
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    reason=self.cancellation_reason or note,
                    cancelled_by=self.cancelled_by or actor,
                    items=json.dumps(
                        [
                            {"product_id": str(item.product_id), "quantity": item.quantity}
                            for item in self.items
                            if item.product_id
                        ]
                    ),
                    cancelled_at=now,
                )
            )
        elif target == OrderStatus.RETURNED:
            self.raise_(OrderReturned(order_id=str(self.id), reason=self.return_reason or note, returned_at=now))

    # -------------------------------------------------------------------
    # Order lifecycle transitions
    # -------------------------------------------------------------------
    def confirm(self, note=None, actor=None):
        """Confirm the order and issue its invoice number."""
        self._assert_can_transition(OrderStatus.CONFIRMED)
        self.update_status(OrderStatus.CONFIRMED.value, note=note or "Order confirmed", actor=actor)

    def mark_processing(self, note=None, actor=None):
        """Order is being packed at the warehouse."""
        self._assert_can_transition(OrderStatus.PROCESSING)
        self.update_status(OrderStatus.PROCESSING.value, note=note or "Order is being processed", actor=actor)

    def ship(self, provider, awb_number, shipment_id=None, tracking_url=None, label_url=None, actor=None):
        """Record the carrier handover with its AWB number."""
        self._assert_can_transition(OrderStatus.SHIPPED)

        self.shipment = Shipment(
            provider=provider,
            awb_number=awb_number,
            shipment_id=shipment_id,
            tracking_url=tracking_url,
            label_url=label_url,
        )
        self.update_status(OrderStatus.SHIPPED.value, note=f"Shipped via {provider} (AWB {awb_number})", actor=actor)

        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                provider=provider,
                awb_number=awb_number,
                tracking_url=tracking_url,
                shipped_at=self.updated_at,
            )
        )

    def mark_out_for_delivery(self, note=None, actor=None):
        self._assert_can_transition(OrderStatus.OUT_FOR_DELIVERY)
        self.update_status(OrderStatus.OUT_FOR_DELIVERY.value, note=note or "Out for delivery", actor=actor)

    def deliver(self, note=None, actor=None):
        self._assert_can_transition(OrderStatus.DELIVERED)
        self.update_status(OrderStatus.DELIVERED.value, note=note or "Delivered", actor=actor)

    # -------------------------------------------------------------------
    # Cancellation, Returns & Refund
    # -------------------------------------------------------------------
    def cancel(self, reason, cancelled_by=CancellationActor.CUSTOMER.value):
        """Cancel the order. Only pending or confirmed orders can be cancelled."""
        current = OrderStatus(self.status)
        if not self.can_cancel:
            raise ValidationError(
                {
                    "status": [
                        f"Cannot cancel order in {current.value} state. "
                        f"Cancellation is only allowed from: "
                        f"{', '.join(sorted(s.value for s in _CANCELLABLE_STATES))}"
                    ]
                }
            )

        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.update_status(OrderStatus.CANCELLED.value, note=reason, actor=cancelled_by)

    def file_return(self, reason, actor=None, now=None):
        """Return a delivered order within the return window."""
        if not self.can_return(now):
            raise ValidationError(
                {
                    "status": [
                        f"Returns are only accepted for delivered orders within "
                        f"{setting('RETURN_WINDOW_DAYS')} days of delivery"
                    ]
                }
            )

        self.return_reason = reason
        self.update_status(OrderStatus.RETURNED.value, note=reason, actor=actor)

    def ensure_refundable(self, amount):
        """Raise unless ``amount`` can be refunded on this order."""
        current = OrderStatus(self.status)
        if current not in (OrderStatus.CANCELLED, OrderStatus.RETURNED):
            raise ValidationError({"status": ["Only cancelled or returned orders can be refunded"]})
        if PaymentStatus(self.payment_status) != PaymentStatus.PAID:
            raise ValidationError({"payment_status": ["Only paid orders can be refunded"]})
        if amount <= 0 or amount > self.total:
            raise ValidationError({"amount": [f"Refund amount must be between 0 and {self.total:g}"]})

    def record_refund(self, amount, reason=None, transaction_id=None):
        """Store refund metadata for a cancelled or returned, paid order."""
        self.ensure_refundable(amount)

        now = datetime.now(UTC)
        payment_status = PaymentStatus.REFUNDED if amount >= self.total else PaymentStatus.PARTIALLY_REFUNDED

        self.refund = RefundDetails(amount=amount, reason=reason, transaction_id=transaction_id, processed_at=now)
        self.payment_status = payment_status.value
        self.updated_at = now

        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                amount=amount,
                reason=reason,
                transaction_id=transaction_id,
                payment_status=payment_status.value,
                refunded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment_initiated(self, provider, gateway_order_id):
        if PaymentStatus(self.payment_status) == PaymentStatus.PAID:
            raise ValidationError({"payment_status": ["Order is already paid"]})

        self.payment_details = PaymentDetails(provider=provider, gateway_order_id=gateway_order_id)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentInitiated(
                order_id=str(self.id),
                provider=provider,
                gateway_order_id=gateway_order_id,
                amount=self.total,
            )
        )

    def record_payment_success(self, provider, transaction_id):
        """Mark the order paid; a pending order is confirmed by its payment."""
        if PaymentStatus(self.payment_status) == PaymentStatus.PAID:
            raise ValidationError({"payment_status": ["Order is already paid"]})

        now = datetime.now(UTC)
        gateway_order_id = self.payment_details.gateway_order_id if self.payment_details else None
        self.payment_details = PaymentDetails(
            provider=provider,
            gateway_order_id=gateway_order_id,
            transaction_id=transaction_id,
            paid_at=now,
        )
        self.payment_status = PaymentStatus.PAID.value
        self.updated_at = now

        self.raise_(
            PaymentReceived(
                order_id=str(self.id),
                provider=provider,
                transaction_id=transaction_id,
                amount=self.total,
                paid_at=now,
            )
        )

        if OrderStatus(self.status) == OrderStatus.PENDING:
            self.confirm(note="Payment received", actor=CancellationActor.SYSTEM.value)

    def record_payment_failure(self, reason):
        if PaymentStatus(self.payment_status) == PaymentStatus.PAID:
            raise ValidationError({"payment_status": ["Order is already paid"]})

        provider = self.payment_details.provider if self.payment_details else None
        gateway_order_id = self.payment_details.gateway_order_id if self.payment_details else None
        self.payment_details = PaymentDetails(
            provider=provider,
            gateway_order_id=gateway_order_id,
            failure_reason=reason,
        )
        self.payment_status = PaymentStatus.FAILED.value
        self.updated_at = datetime.now(UTC)

        self.raise_(PaymentFailed(order_id=str(self.id), reason=reason))


def _order_item(data):
    """Build an ``OrderItem`` snapshot from a plain dict."""
    values = dict(data)
    if values.get("custom_product"):
        values["custom_product"] = CustomProduct(**values["custom_product"])
    if values.get("customization"):
        values["customization"] = Customization(**values["customization"])
    return OrderItem(**values)
