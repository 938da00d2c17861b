"""Cart abandonment detection: command and handler for flagging idle carts.

Designed to be triggered periodically by an external scheduler (cron, K8s
CronJob). Finds non-empty carts idle beyond the threshold that have not been
reminded yet and flags each one. The resulting CartAbandoned events are what a
recovery-email sender listens to.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import DateTime, Integer
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


@ordering.command(part_of="ShoppingCart")
class MarkAbandonedCartsNotified:
    """Flag carts idle beyond the threshold and return how many were flagged."""

    idle_threshold_hours = Integer(min_value=1)  # Defaults to ABANDONED_CART_HOURS
    as_of = DateTime()  # Optional: defaults to now


def find_abandoned_carts(hours=None, as_of=None):
    return current_domain.repository_for(ShoppingCart).find_abandoned(idle_hours=hours, as_of=as_of)


@ordering.command_handler(part_of=ShoppingCart)
class DetectAbandonedCartsHandler:
    @handle(MarkAbandonedCartsNotified)
    def mark_abandoned_carts(self, command):
        as_of = command.as_of or datetime.now(UTC)
        if as_of.tzinfo is None:
            as_of = as_of.replace(tzinfo=UTC)

        abandoned = find_abandoned_carts(hours=command.idle_threshold_hours, as_of=as_of)
        if not abandoned:
            logger.info("No abandoned carts found", as_of=as_of.isoformat())
            return 0

        repo = current_domain.repository_for(ShoppingCart)
        for cart in abandoned:
            cart.mark_abandoned()
            repo.add(cart)
            logger.info(
                "Marked cart as abandoned",
                cart_id=str(cart.id),
                user_id=str(cart.user_id),
                item_count=cart.item_count,
                last_activity=str(cart.last_activity),
            )

        logger.info("Cart abandonment detection complete", abandoned_count=len(abandoned))
        return len(abandoned)
