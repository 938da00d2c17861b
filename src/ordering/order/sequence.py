"""Monthly order-number sequence.

Order numbers look like ``BKC20240300007``: a prefix, the year, the two-digit
month and a five-digit sequence that restarts every month. Each month has its
own ``OrderSequence`` record keyed by ``<prefix><year><month>``. The record is
incremented in the same unit of work that writes the order, and the
repository's optimistic version check rejects a second writer that read the
same value.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.events import OrderNumberAllocated
from ordering.shared.pricing import setting

logger = structlog.get_logger(__name__)


def period_key(prefix: str, year: int, month: int) -> str:
    return f"{prefix}{year:04d}{month:02d}"


def format_order_number(prefix: str, year: int, month: int, sequence: int) -> str:
    return f"{period_key(prefix, year, month)}{sequence:05d}"


@ordering.aggregate
class OrderSequence:
    period = String(identifier=True, max_length=20)
    prefix = String(required=True, max_length=10)
    year = Integer(required=True)
    month = Integer(required=True, min_value=1, max_value=12)
    last_value = Integer(default=0, min_value=0)

    @classmethod
    def start(cls, prefix, year, month):
        return cls(period=period_key(prefix, year, month), prefix=prefix, year=year, month=month, last_value=0)

    def next_number(self) -> str:
        """Advance the counter and return the formatted order number."""
        self.last_value += 1
        self.raise_(OrderNumberAllocated(period=self.period, value=self.last_value))
        return format_order_number(self.prefix, self.year, self.month, self.last_value)


def allocate_order_number(now: datetime | None = None) -> str:
    """Take the next order number for the month of ``now``."""
    now = now or datetime.now(UTC)
    prefix = setting("ORDER_NUMBER_PREFIX")
    key = period_key(prefix, now.year, now.month)

    repo = current_domain.repository_for(OrderSequence)
    try:
        sequence = repo.get(key)
    except ObjectNotFoundError:
        sequence = OrderSequence.start(prefix, now.year, now.month)

    order_number = sequence.next_number()
    repo.add(sequence)

    logger.info("Allocated order number", order_number=order_number, period=key)
    return order_number
