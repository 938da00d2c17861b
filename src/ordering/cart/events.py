"""Domain events for the ShoppingCart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the shopping cart, or merged into an existing line."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier()
    size = String()
    color = String()
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)
    price = Float(required=True)


@ordering.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    """The quantity of a cart item was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemRemoved:
    """An item was removed from the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemSavedForLater:
    """A line moved from the cart to the saved-for-later list."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    saved_item_id = Identifier(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemMovedToCart:
    """A saved line moved back into the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    saved_item_id = Identifier(required=True)
    item_id = Identifier(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCouponApplied:
    """A validated coupon code and its discount were stored on the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)
    coupon_discount = Float(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCouponRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String()


@ordering.event(part_of="ShoppingCart")
class CartCleared:
    """All lines and the coupon were removed, e.g. after checkout."""

    __version__ = 1

    cart_id = Identifier(required=True)
    items_removed = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartsMerged:
    """Items from a guest session were merged into the user's cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    items_merged_count = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartAbandoned:
    """The cart sat idle with items and a recovery reminder was flagged."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    item_count = Integer(required=True)
    total = Float(required=True)
    last_activity = DateTime()
    abandoned_at = DateTime(required=True)
