"""Saved-for-later: commands and handler."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.items import load_user_cart
from ordering.domain import ordering


@ordering.command(part_of="ShoppingCart")
class SaveForLater:
    user_id = Identifier(required=True)
    item_id = Identifier(required=True)


@ordering.command(part_of="ShoppingCart")
class MoveToCart:
    user_id = Identifier(required=True)
    saved_item_id = Identifier(required=True)


@ordering.command_handler(part_of=ShoppingCart)
class SavedItemsHandler:
    @handle(SaveForLater)
    def save_for_later(self, command):
        cart = load_user_cart(command.user_id)
        saved_item_id = cart.save_for_later(command.item_id)
        current_domain.repository_for(ShoppingCart).add(cart)
        return saved_item_id

    @handle(MoveToCart)
    def move_to_cart(self, command):
        cart = load_user_cart(command.user_id)
        item_id = cart.move_to_cart(command.saved_item_id)
        current_domain.repository_for(ShoppingCart).add(cart)
        return item_id
