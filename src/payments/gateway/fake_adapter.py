"""Configurable fake payment gateway for development and testing.

This adapter simulates a real payment gateway without any external calls.
Payment callbacks are signed the way Razorpay signs them: an HMAC-SHA256 of
``"<gateway_order_id>|<transaction_id>"`` keyed with the webhook secret. It
can be configured at runtime to succeed or fail, making it useful for:
- Automated tests with predictable outcomes
- Development without real gateway credentials
"""

import hashlib
import hmac
import os
from uuid import uuid4

import structlog

from payments.gateway.port import PaymentGateway, PaymentOrderResult, PaymentVerifyResult, RefundResult

logger = structlog.get_logger(__name__)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    provider = "fake"

    def __init__(self, secret: str | None = None) -> None:
        self.secret: str = secret or os.environ.get("PAYMENT_WEBHOOK_SECRET", "test-secret")
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Payment declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def sign(self, gateway_order_id: str, transaction_id: str) -> str:
        """Signature the gateway would attach to a successful payment callback."""
        message = f"{gateway_order_id}|{transaction_id}".encode()
        return hmac.new(self.secret.encode(), message, hashlib.sha256).hexdigest()

    def create_payment_order(self, order_number: str, amount: float, currency: str = "INR") -> PaymentOrderResult:
        self.calls.append(
            {"method": "create_payment_order", "order_number": order_number, "amount": amount, "currency": currency}
        )

        if not self.should_succeed:
            logger.warning("Payment order creation failed", provider=self.provider, order_number=order_number)
            return PaymentOrderResult(success=False, provider=self.provider, error=self.failure_reason)

        return PaymentOrderResult(
            success=True,
            provider=self.provider,
            gateway_order_id=f"order_{uuid4().hex[:14]}",
            amount=amount,
            currency=currency,
        )

    def verify_payment(self, gateway_order_id: str, transaction_id: str, signature: str) -> PaymentVerifyResult:
        self.calls.append(
            {"method": "verify_payment", "gateway_order_id": gateway_order_id, "transaction_id": transaction_id}
        )

        expected = self.sign(gateway_order_id, transaction_id)
        if not hmac.compare_digest(expected, signature or ""):
            return PaymentVerifyResult(success=True, verified=False, error="Invalid payment signature")
        return PaymentVerifyResult(success=True, verified=True, transaction_id=transaction_id)

    def create_refund(self, transaction_id: str, amount: float, reason: str) -> RefundResult:
        self.calls.append(
            {"method": "create_refund", "transaction_id": transaction_id, "amount": amount, "reason": reason}
        )

        if not self.should_succeed:
            logger.warning("Refund failed", provider=self.provider, transaction_id=transaction_id)
            return RefundResult(success=False, error=self.failure_reason)

        return RefundResult(success=True, refund_id=f"rfnd_{uuid4().hex[:12]}", gateway_status="processed")
