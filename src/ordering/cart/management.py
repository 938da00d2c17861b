"""Cart management: commands and handler.

Handles clearing a cart and merging a guest session's lines into the
signed-in user's cart.
"""

import json

from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.items import load_user_cart
from ordering.domain import ordering


@ordering.command(part_of="ShoppingCart")
class ClearCart:
    user_id = Identifier(required=True)


@ordering.command(part_of="ShoppingCart")
class MergeGuestCart:
    """Merge items from a guest session cart into a registered customer's cart."""

    user_id = Identifier(required=True)
    guest_cart_items = Text(required=True)  # JSON: list of {product_id, quantity, price, size, color}


def get_or_create_cart(user_id) -> ShoppingCart:
    """Return the user's cart, persisting a new empty one on first use."""
    repo = current_domain.repository_for(ShoppingCart)
    cart = repo.for_user(user_id)
    if cart is None:
        cart = ShoppingCart.create(user_id=str(user_id))
        repo.add(cart)
    return cart


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(ClearCart)
    def clear_cart(self, command):
        cart = load_user_cart(command.user_id)
        cart.clear_cart()
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(MergeGuestCart)
    def merge_guest_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get_or_create(command.user_id)

        guest_items = (
            json.loads(command.guest_cart_items)
            if isinstance(command.guest_cart_items, str)
            else command.guest_cart_items
        )

        cart.merge_guest_cart(guest_cart_items=guest_items)
        repo.add(cart)
        return str(cart.id)
