"""Order cancellation and refund: commands and handler.

Refunds go through the payment gateway. A gateway failure leaves the order
untouched and is handed back to the caller as a failed ``RefundResult``;
it is never retried here.
"""

import structlog
from payments.gateway import get_gateway
from payments.gateway.port import RefundResult
from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import CancellationActor, Order, PaymentMethod

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    cancelled_by = String(max_length=50, default=CancellationActor.CUSTOMER.value)


@ordering.command(part_of="Order")
class RefundOrder:
    order_id = Identifier(required=True)
    amount = Float(min_value=0.0)  # Defaults to the order total
    reason = String(max_length=500)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(
            reason=command.reason,
            cancelled_by=command.cancelled_by or CancellationActor.CUSTOMER.value,
        )
        repo.add(order)

        logger.info("Order cancelled", order_id=str(order.id), cancelled_by=order.cancelled_by)

    @handle(RefundOrder)
    def refund_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        amount = command.amount if command.amount is not None else order.total
        order.ensure_refundable(amount)

        if order.payment_method == PaymentMethod.COD.value:
            # Cash orders are refunded outside the gateway
            order.record_refund(amount=amount, reason=command.reason)
            repo.add(order)
            return RefundResult(success=True, gateway_status="manual")

        transaction_id = order.payment_details.transaction_id if order.payment_details else None
        gateway = get_gateway()
        try:
            result = gateway.create_refund(
                transaction_id=transaction_id,
                amount=amount,
                reason=command.reason or "Order refund",
            )
        except Exception as exc:  # noqa: BLE001
            result = RefundResult(success=False, error=str(exc))

        if not result.success:
            logger.warning(
                "Refund failed at payment gateway",
                order_id=str(order.id),
                provider=gateway.provider,
                error=result.error,
            )
            return result

        order.record_refund(amount=amount, reason=command.reason, transaction_id=result.refund_id)
        repo.add(order)

        logger.info("Order refunded", order_id=str(order.id), amount=amount, refund_id=result.refund_id)
        return result
