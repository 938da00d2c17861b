"""Product registration: command and handler."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, List, String
from protean.utils.globals import current_domain

from ordering.catalogue.product import Product
from ordering.domain import ordering


@ordering.command(part_of="Product")
class RegisterProduct:
    """Make a catalogue product available to carts and orders."""

    product_id = Identifier()
    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    price = Float(required=True, min_value=0.0)
    original_price = Float(min_value=0.0)
    images = List(content_type=String)
    category = String(max_length=100)
    stock = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)


@ordering.command_handler(part_of=Product)
class RegisterProductHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        values = dict(
            name=command.name,
            sku=command.sku,
            price=command.price,
            original_price=command.original_price or command.price,
            images=command.images or [],
            category=command.category,
            stock=command.stock,
            is_active=command.is_active,
        )
        if command.product_id:
            values["id"] = command.product_id

        product = Product(**values)
        current_domain.repository_for(Product).add(product)
        return str(product.id)
