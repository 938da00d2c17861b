"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping the FakeGateway used in development and tests for a
real provider adapter without changing any domain or application code.

Adapters report provider failures through ``success=False`` and ``error``
instead of raising.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentOrderResult:
    """Result of opening a payment order with the gateway."""

    success: bool
    provider: str
    gateway_order_id: str | None = None
    amount: float | None = None
    currency: str = "INR"
    error: str | None = None


@dataclass(frozen=True)
class PaymentVerifyResult:
    """Result of verifying a payment callback."""

    success: bool
    verified: bool = False
    transaction_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    refund_id: str | None = None
    gateway_status: str | None = None
    error: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    provider: str = ""

    @abstractmethod
    def create_payment_order(
        self,
        order_number: str,
        amount: float,
        currency: str = "INR",
    ) -> PaymentOrderResult:
        """Open a payment order the customer will pay against."""
        ...

    @abstractmethod
    def verify_payment(
        self,
        gateway_order_id: str,
        transaction_id: str,
        signature: str,
    ) -> PaymentVerifyResult:
        """Verify that a payment callback is authentically from the gateway."""
        ...

    @abstractmethod
    def create_refund(
        self,
        transaction_id: str,
        amount: float,
        reason: str,
    ) -> RefundResult:
        """Refund a previous payment."""
        ...
