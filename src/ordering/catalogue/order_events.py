"""Catalogue stock reacts to cancelled orders by putting the units back."""

import json

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from ordering.catalogue.product import Product
from ordering.domain import ordering
from ordering.order.events import OrderCancelled

logger = structlog.get_logger(__name__)


@ordering.event_handler(part_of=Product, stream_category="ordering::order")
class ProductStockEventHandler:
    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        """Release the stock taken at checkout."""
        items = json.loads(event.items) if isinstance(event.items, str) else event.items

        repo = current_domain.repository_for(Product)
        for item in items:
            try:
                product = repo.get(item["product_id"])
            except ObjectNotFoundError:
                logger.warning(
                    "Cannot restock missing product",
                    order_id=str(event.order_id),
                    product_id=item["product_id"],
                )
                continue

            product.release_stock(item["quantity"])
            repo.add(product)

        logger.info("Stock released for cancelled order", order_id=str(event.order_id), lines=len(items))
