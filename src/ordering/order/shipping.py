"""Order shipment: command and handler.

Books the shipment with the configured carrier and records the AWB number on
the order. A carrier failure is logged and handed back as a failed
``ShipmentResult``; the order stays in ``processing``.
"""

import structlog
from fulfillment.carrier import get_carrier
from fulfillment.carrier.port import Consignee, ShipmentRequest, ShipmentResult
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus, PaymentMethod, PaymentStatus

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class ShipOrder:
    order_id = Identifier(required=True)
    weight = Float(min_value=0.0)  # kg
    actor = String(max_length=100)


def shipment_request_for(order, weight=None):
    address = order.shipping_address
    cash_due = order.payment_method == PaymentMethod.COD.value and order.payment_status != PaymentStatus.PAID.value
    return ShipmentRequest(
        order_id=str(order.id),
        order_number=order.order_number,
        consignee=Consignee(
            name=address.name,
            phone=address.phone,
            address=address.address,
            city=address.city,
            state=address.state,
            pincode=address.pincode,
            country=address.country or "India",
        ),
        items=[{"name": item.name, "quantity": item.quantity, "price": item.price} for item in order.items],
        payment_mode="cod" if cash_due else "prepaid",
        cod_amount=order.total if cash_due else 0.0,
        weight=weight,
    )


@ordering.command_handler(part_of=Order)
class ShipOrderHandler:
    @handle(ShipOrder)
    def ship_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if not order.can_transition_to(OrderStatus.SHIPPED):
            raise ValidationError({"status": [f"Cannot transition from {order.status} to shipped"]})

        carrier = get_carrier()
        try:
            result = carrier.create_shipment(shipment_request_for(order, command.weight))
        except Exception as exc:  # noqa: BLE001
            result = ShipmentResult(success=False, provider=carrier.provider, order_id=str(order.id), error=str(exc))

        if not result.success:
            logger.warning(
                "Shipment booking failed",
                order_id=str(order.id),
                provider=result.provider,
                error=result.error,
            )
            return result

        order.ship(
            provider=result.provider,
            awb_number=result.awb_number,
            shipment_id=result.shipment_id,
            tracking_url=result.tracking_url,
            label_url=result.label_url,
            actor=command.actor,
        )
        repo.add(order)

        logger.info("Order shipped", order_id=str(order.id), provider=result.provider, awb_number=result.awb_number)
        return result
