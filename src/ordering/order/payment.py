"""Order payment: commands and handler.

Opens a payment order with the gateway and later verifies the signed
callback. Gateway failures are returned to the caller as failed results and
leave the order unchanged; a signature that does not verify marks the
payment failed.
"""

import structlog
from payments.gateway import get_gateway
from payments.gateway.port import PaymentOrderResult, PaymentVerifyResult
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class InitiatePayment:
    order_id = Identifier(required=True)
    currency = String(max_length=3, default="INR")


@ordering.command(part_of="Order")
class ConfirmPayment:
    order_id = Identifier(required=True)
    transaction_id = String(required=True, max_length=255)
    signature = String(required=True, max_length=255)


@ordering.command_handler(part_of=Order)
class RecordPaymentHandler:
    @handle(InitiatePayment)
    def initiate_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        gateway = get_gateway()

        try:
            result = gateway.create_payment_order(
                order_number=order.order_number,
                amount=order.total,
                currency=command.currency or "INR",
            )
        except Exception as exc:  # noqa: BLE001
            result = PaymentOrderResult(success=False, provider=gateway.provider, error=str(exc))

        if not result.success:
            logger.warning(
                "Payment order creation failed",
                order_id=str(order.id),
                provider=gateway.provider,
                error=result.error,
            )
            return result

        order.record_payment_initiated(provider=result.provider, gateway_order_id=result.gateway_order_id)
        repo.add(order)
        return result

    @handle(ConfirmPayment)
    def confirm_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if order.payment_details is None or not order.payment_details.gateway_order_id:
            raise ValidationError({"payment": ["Payment has not been initiated for this order"]})

        gateway = get_gateway()
        try:
            result = gateway.verify_payment(
                gateway_order_id=order.payment_details.gateway_order_id,
                transaction_id=command.transaction_id,
                signature=command.signature,
            )
        except Exception as exc:  # noqa: BLE001
            result = PaymentVerifyResult(success=False, error=str(exc))

        if not result.success:
            logger.warning(
                "Payment verification unavailable",
                order_id=str(order.id),
                provider=gateway.provider,
                error=result.error,
            )
            return result

        if result.verified:
            order.record_payment_success(provider=order.payment_details.provider, transaction_id=command.transaction_id)
            logger.info("Payment received", order_id=str(order.id), transaction_id=command.transaction_id)
        else:
            order.record_payment_failure(reason=result.error or "Payment verification failed")
            logger.warning("Payment verification failed", order_id=str(order.id), error=result.error)

        repo.add(order)
        return result
