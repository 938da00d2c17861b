"""Product record as the Ordering context sees it.

Carries what carts and orders need from the catalogue: the current price
used for cart snapshots, name/image for order snapshots, the category used
by coupon restrictions, and stock/sold counters maintained at checkout.
"""

from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, Integer, List, String

from ordering.domain import ordering


@ordering.aggregate
class Product:
    name: String(required=True, max_length=255)
    sku: String(max_length=50)
    price: Float(required=True, min_value=0.0)
    original_price: Float(min_value=0.0)
    images: List(content_type=String)
    category: String(max_length=100)
    seller_id: Identifier()
    stock: Integer(default=0, min_value=0)
    sold_count: Integer(default=0, min_value=0)
    is_active: Boolean(default=True)

    @property
    def primary_image(self):
        return self.images[0] if self.images else "/placeholder.svg"

    def has_stock_for(self, quantity):
        return self.stock >= quantity

    def reserve_stock(self, quantity):
        """Take stock for a placed order and count it as sold."""
        if not self.has_stock_for(quantity):
            raise ValidationError({"stock": [f"Insufficient stock for {self.name}"]})
        self.stock -= quantity
        self.sold_count += quantity

    def release_stock(self, quantity):
        """Return stock from a cancelled order."""
        self.stock += quantity
        self.sold_count = max(0, self.sold_count - quantity)
