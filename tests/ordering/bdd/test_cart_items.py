"""BDD tests for cart lines and totals."""

from protean.exceptions import ValidationError
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/cart_items.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('{qty:d} of product "{product_id}" at {price:g} are added to the cart'))
def add_item_to_cart(cart, qty, product_id, price, error):
    try:
        cart.add_item(product_id=product_id, price=price, quantity=qty)
    except ValidationError as exc:
        error["exc"] = exc


@when(parsers.cfparse("the line quantity is set to {qty:d}"))
def set_line_quantity(cart, qty):
    cart.update_item_quantity(str(cart.items[0].id), qty)


@when("the line is saved for later")
def save_line_for_later(cart):
    cart.save_for_later(str(cart.items[0].id))


@when("the cart is cleared")
def clear_cart(cart):
    cart.clear_cart()


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the cart has {count:d} line"))
def cart_has_one_line(cart, count):
    assert len(cart.items) == count


@then(parsers.cfparse("the cart has {count:d} lines"))
def cart_has_n_lines(cart, count):
    assert len(cart.items) == count


@then(parsers.cfparse("the cart has {count:d} saved line"))
def cart_has_saved_lines(cart, count):
    assert len(cart.saved_for_later) == count


@then(parsers.cfparse("the line quantity is {qty:d}"))
def line_quantity_is(cart, qty):
    assert cart.items[0].quantity == qty
