"""BDD tests for the order lifecycle."""

from protean.exceptions import ValidationError
from pytest_bdd import scenarios, when

scenarios("features/order_lifecycle.feature")


def _attempt(action, error):
    try:
        action()
    except ValidationError as exc:
        error["exc"] = exc


@when("the order is confirmed")
def confirm(order, error):
    _attempt(order.confirm, error)


@when("the payment is received")
def receive_payment(order):
    order.record_payment_success("razorpay", "pay_001")


@when("the order is shipped")
def ship(order, error):
    _attempt(lambda: order.ship("fake", "FAKE0001"), error)


@when("the order is cancelled")
def cancel(order, error):
    _attempt(lambda: order.cancel("Changed my mind"), error)


@when("the order is delivered")
def deliver(order, error):
    _attempt(order.deliver, error)


@when("a return is filed")
def file_return(order, error):
    _attempt(lambda: order.file_return("Wrong size"), error)


@when("the order is refunded in full")
def refund(order):
    order.record_refund(order.total, reason="Changed my mind", transaction_id="rfnd_001")
