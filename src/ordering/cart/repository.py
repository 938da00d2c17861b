"""Cart lookups by owner and idle-cart queries."""

from ordering.cart.cart import ShoppingCart
from ordering.domain import ordering


@ordering.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def for_user(self, user_id) -> ShoppingCart | None:
        """Return the user's cart, or None if they never had one."""
        results = self._dao.query.filter(user_id=str(user_id)).all().items
        return results[0] if results else None

    def get_or_create(self, user_id) -> ShoppingCart:
        """Return the user's cart, creating an empty one on first use.

        The new cart is not persisted; the caller adds it once mutated.
        """
        return self.for_user(user_id) or ShoppingCart.create(user_id=str(user_id))

    def find_abandoned(self, idle_hours=None, as_of=None) -> list[ShoppingCart]:
        """Non-empty carts idle past the threshold that were not flagged yet."""
        candidates = self._dao.query.filter(abandoned_email_sent=False).limit(None).all().items
        return [cart for cart in candidates if cart.is_abandoned(now=as_of, idle_hours=idle_hours)]
