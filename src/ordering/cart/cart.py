"""Shopping Cart aggregate (CQRS): one per user, feeds the Order at checkout.

The cart is a standard CQRS aggregate (not event sourced). It holds the
lines a user intends to buy, a parallel saved-for-later list, and an applied
coupon code with its discount. Totals are derived: every mutation ends with
``_recalculate()``, which sets

    subtotal = Σ price × quantity
    shipping = flat fee, waived at the free-shipping threshold
    tax      = 0 (prices are tax-inclusive)
    total    = max(0, subtotal + shipping + tax − discount − coupon_discount)

The cart stores whatever coupon discount it is given; checking the coupon is
the Coupon Evaluator's job.
"""

from datetime import UTC, datetime, timedelta

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from ordering.cart.events import (
    CartAbandoned,
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemMovedToCart,
    CartItemRemoved,
    CartItemSavedForLater,
    CartQuantityUpdated,
    CartsMerged,
)
from ordering.domain import ordering
from ordering.shared.customization import CustomProduct, Customization
from ordering.shared.pricing import amount_to_free_shipping, grand_total, setting, shipping_for, tax_for

MAX_QUANTITY = 10
DEFAULT_SIZE = "M"
DEFAULT_COLOR = "Default"


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier()  # Empty for custom products
    custom_product = ValueObject(CustomProduct)
    quantity = Integer(required=True, min_value=1, max_value=MAX_QUANTITY)
    size = String(max_length=20, default=DEFAULT_SIZE)
    color = String(max_length=50, default=DEFAULT_COLOR)
    price = Float(required=True, min_value=0.0)
    original_price = Float(min_value=0.0)
    customization = ValueObject(Customization)
    added_at = DateTime()

    @property
    def is_one_off(self):
        """Lines carrying their own design are never merged."""
        return bool(self.customization and self.customization.design)

    @property
    def line_total(self):
        return self.price * self.quantity


@ordering.entity(part_of="ShoppingCart")
class SavedCartItem:
    product_id = Identifier()
    custom_product = ValueObject(CustomProduct)
    quantity = Integer(required=True, min_value=1, max_value=MAX_QUANTITY)
    size = String(max_length=20, default=DEFAULT_SIZE)
    color = String(max_length=50, default=DEFAULT_COLOR)
    price = Float(required=True, min_value=0.0)
    original_price = Float(min_value=0.0)
    customization = ValueObject(Customization)
    saved_at = DateTime()


def _line_values(line):
    return {
        "product_id": line.product_id,
        "custom_product": line.custom_product,
        "quantity": line.quantity,
        "size": line.size,
        "color": line.color,
        "price": line.price,
        "original_price": line.original_price,
        "customization": line.customization,
    }


@ordering.aggregate
class ShoppingCart:
    user_id = Identifier(required=True)
    items = HasMany(CartItem)
    saved_for_later = HasMany(SavedCartItem)
    subtotal = Float(default=0.0, min_value=0.0)
    shipping = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    coupon_code = String(max_length=20)
    coupon_discount = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    last_activity = DateTime()
    abandoned_email_sent = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_match_components(self):
        expected = grand_total(self.subtotal, self.shipping, self.tax, self.discount, self.coupon_discount)
        if abs((self.total or 0.0) - expected) > 0.005:
            raise ValidationError({"total": ["Cart total is out of date"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        shipping = shipping_for(0.0)
        return cls(
            user_id=user_id,
            subtotal=0.0,
            shipping=shipping,
            tax=0.0,
            discount=0.0,
            coupon_discount=0.0,
            total=grand_total(0.0, shipping, 0.0, 0.0, 0.0),
            last_activity=now,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    @property
    def item_count(self):
        return sum(item.quantity for item in self.items)

    @property
    def is_empty(self):
        return not self.items

    @property
    def amount_to_free_shipping(self):
        return amount_to_free_shipping(self.subtotal)

    def is_idle_since(self, cutoff):
        last_activity = self.last_activity
        if last_activity is None:
            return False
        if last_activity.tzinfo is None:
            last_activity = last_activity.replace(tzinfo=UTC)
        return last_activity <= cutoff

    def _recalculate(self):
        """Recompute the derived totals from the current lines and coupon."""
        with atomic_change(self):
            self._refresh_totals()

    def _refresh_totals(self):
        # Caller holds the atomic_change block
        now = datetime.now(UTC)
        self.subtotal = round(sum(item.line_total for item in self.items), 2)
        self.shipping = shipping_for(self.subtotal)
        self.tax = tax_for(self.subtotal)
        self.total = grand_total(self.subtotal, self.shipping, self.tax, self.discount, self.coupon_discount)
        self.last_activity = now
        self.abandoned_email_sent = False
        self.updated_at = now

    def _find_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return item

    def _find_mergeable(self, product_id, size, color):
        if not product_id:
            return None
        return next(
            (
                i
                for i in self.items
                if str(i.product_id) == str(product_id) and i.size == size and i.color == color and not i.is_one_off
            ),
            None,
        )

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(
        self,
        price,
        quantity=1,
        product_id=None,
        size=DEFAULT_SIZE,
        color=DEFAULT_COLOR,
        original_price=None,
        customization=None,
        custom_product=None,
    ):
        """Add a line, or merge into an existing one for the same product, size and colour.

        A line is merged only when neither the existing nor the incoming line
        carries a design; the merged quantity is capped at 10.
        """
        if quantity < 1 or quantity > MAX_QUANTITY:
            raise ValidationError({"quantity": [f"Quantity must be between 1 and {MAX_QUANTITY}"]})
        if not product_id and custom_product is None:
            raise ValidationError({"product_id": ["A product or a custom product is required"]})

        size = size or DEFAULT_SIZE
        color = color or DEFAULT_COLOR
        incoming_is_one_off = bool(customization and customization.design)
        existing = None if incoming_is_one_off else self._find_mergeable(product_id, size, color)

        if existing:
            existing.quantity = min(MAX_QUANTITY, existing.quantity + quantity)
            item = existing
        else:
            item = CartItem(
                product_id=product_id,
                custom_product=custom_product,
                quantity=quantity,
                size=size,
                color=color,
                price=price,
                original_price=original_price if original_price is not None else price,
                customization=customization,
                added_at=datetime.now(UTC),
            )
            self.add_items(item)

        self._recalculate()

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product_id) if product_id else None,
                size=size,
                color=color,
                quantity=quantity,
                line_quantity=item.quantity,
                price=item.price,
            )
        )
        return str(item.id)

    def update_item_quantity(self, item_id, quantity):
        """Set a line's quantity; zero or less removes the line, above 10 is clamped."""
        item = self._find_item(item_id)

        if quantity <= 0:
            self.remove_item(item_id)
            return

        previous_quantity = item.quantity
        item.quantity = min(MAX_QUANTITY, quantity)
        self._recalculate()

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=item.quantity,
            )
        )

    def remove_item(self, item_id):
        """Remove an item from the cart."""
        item = self._find_item(item_id)
        self.remove_items(item)
        self._recalculate()

        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id)))

    def clear_cart(self):
        """Drop every line and the coupon."""
        removed = len(self.items)
        for item in list(self.items):
            self.remove_items(item)

        with atomic_change(self):
            self.coupon_code = None
            self.coupon_discount = 0.0
            self.discount = 0.0
            self._refresh_totals()

        self.raise_(CartCleared(cart_id=str(self.id), items_removed=removed))

    # -------------------------------------------------------------------
    # Saved for later
    # -------------------------------------------------------------------
    def save_for_later(self, item_id):
        """Move a line from the cart to the saved-for-later list."""
        item = self._find_item(item_id)
        saved = SavedCartItem(**_line_values(item), saved_at=datetime.now(UTC))

        self.remove_items(item)
        self.add_saved_for_later(saved)
        self._recalculate()

        self.raise_(CartItemSavedForLater(cart_id=str(self.id), item_id=str(item_id), saved_item_id=str(saved.id)))
        return str(saved.id)

    def move_to_cart(self, saved_item_id):
        """Move a saved line back into the cart as a fresh line."""
        saved = next((i for i in self.saved_for_later if str(i.id) == str(saved_item_id)), None)
        if saved is None:
            raise ValidationError({"item_id": ["Item not found in saved for later"]})

        item = CartItem(**_line_values(saved), added_at=datetime.now(UTC))
        self.remove_saved_for_later(saved)
        self.add_items(item)
        self._recalculate()

        self.raise_(CartItemMovedToCart(cart_id=str(self.id), saved_item_id=str(saved_item_id), item_id=str(item.id)))
        return str(item.id)

    # -------------------------------------------------------------------
    # Coupon management
    # -------------------------------------------------------------------
    def apply_coupon(self, coupon_code, discount):
        """Store a coupon code and the discount it grants."""
        if discount < 0:
            raise ValidationError({"coupon_discount": ["Discount cannot be negative"]})

        with atomic_change(self):
            self.coupon_code = coupon_code.strip().upper()
            self.coupon_discount = discount
            self._refresh_totals()

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_code=self.coupon_code,
                coupon_discount=discount,
            )
        )

    def remove_coupon(self):
        previous_code = self.coupon_code
        with atomic_change(self):
            self.coupon_code = None
            self.coupon_discount = 0.0
            self._refresh_totals()

        self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=previous_code))

    # -------------------------------------------------------------------
    # Cart merging (guest → signed-in user)
    # -------------------------------------------------------------------
    def merge_guest_cart(self, guest_cart_items):
        """Merge lines from a guest session into this cart.

        Args:
            guest_cart_items: List of dicts with product_id, quantity, price and
                optionally size, color, original_price.
        """
        for guest_item in guest_cart_items:
            self.add_item(
                price=guest_item["price"],
                original_price=guest_item.get("original_price"),
                quantity=min(MAX_QUANTITY, max(1, int(guest_item.get("quantity", 1)))),
                product_id=guest_item.get("product_id"),
                size=guest_item.get("size"),
                color=guest_item.get("color"),
            )

        self.raise_(CartsMerged(cart_id=str(self.id), items_merged_count=len(guest_cart_items)))

    # -------------------------------------------------------------------
    # Abandonment
    # -------------------------------------------------------------------
    def is_abandoned(self, now=None, idle_hours=None):
        """Non-empty, idle past the threshold, and not yet reminded."""
        now = now or datetime.now(UTC)
        idle_hours = idle_hours or setting("ABANDONED_CART_HOURS")
        return bool(self.items) and not self.abandoned_email_sent and self.is_idle_since(now - timedelta(hours=idle_hours))

    def mark_abandoned(self):
        if self.abandoned_email_sent:
            raise ValidationError({"abandoned_email_sent": ["Abandonment reminder already flagged"]})

        self.abandoned_email_sent = True

        self.raise_(
            CartAbandoned(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                item_count=self.item_count,
                total=self.total,
                last_activity=self.last_activity,
                abandoned_at=datetime.now(UTC),
            )
        )
