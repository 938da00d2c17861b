"""Cart item management: commands and handler.

Catalogue lines take their price from the product record at the moment they
are added; custom products are priced from their own base price.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Float, Identifier, Integer, String, ValueObject
from protean.utils.globals import current_domain

from ordering.cart.cart import DEFAULT_COLOR, DEFAULT_SIZE, ShoppingCart
from ordering.catalogue.product import Product
from ordering.domain import ordering
from ordering.shared.customization import CustomProduct, Customization

logger = structlog.get_logger(__name__)


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    user_id = Identifier(required=True)
    product_id = Identifier()
    custom_product = ValueObject(CustomProduct)
    quantity = Integer(default=1)
    size = String(max_length=20, default=DEFAULT_SIZE)
    color = String(max_length=50, default=DEFAULT_COLOR)
    customization = ValueObject(Customization)


@ordering.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    user_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)


@ordering.command(part_of="ShoppingCart")
class RemoveFromCart:
    user_id = Identifier(required=True)
    item_id = Identifier(required=True)


def _price_for(command):
    """Return ``(price, original_price)`` for the line being added."""
    if command.custom_product is not None:
        return command.custom_product.base_price, command.custom_product.base_price

    if not command.product_id:
        raise ValidationError({"product_id": ["A product or a custom product is required"]})

    try:
        product = current_domain.repository_for(Product).get(command.product_id)
    except ObjectNotFoundError:
        raise ValidationError({"product_id": ["Product not found"]})
    if not product.is_active:
        raise ValidationError({"product_id": [f"{product.name} is no longer available"]})

    return product.price, product.original_price or product.price


def load_user_cart(user_id):
    cart = current_domain.repository_for(ShoppingCart).for_user(user_id)
    if cart is None:
        raise ObjectNotFoundError(f"Cart for user `{user_id}` does not exist")
    return cart


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        price, original_price = _price_for(command)

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get_or_create(command.user_id)
        item_id = cart.add_item(
            price=price,
            original_price=original_price,
            quantity=command.quantity,
            product_id=command.product_id,
            size=command.size,
            color=command.color,
            customization=command.customization,
            custom_product=command.custom_product,
        )
        repo.add(cart)

        logger.info(
            "Item added to cart",
            user_id=str(command.user_id),
            product_id=str(command.product_id) if command.product_id else None,
            quantity=command.quantity,
            cart_total=cart.total,
        )
        return item_id

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        cart = load_user_cart(command.user_id)
        cart.update_item_quantity(item_id=command.item_id, quantity=command.quantity)
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = load_user_cart(command.user_id)
        cart.remove_item(item_id=command.item_id)
        current_domain.repository_for(ShoppingCart).add(cart)
