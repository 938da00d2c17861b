"""Order returns: command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class RequestReturn:
    """Return a delivered order within the return window, giving a reason."""

    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    actor = String(max_length=100)


@ordering.command_handler(part_of=Order)
class ManageReturnsHandler:
    @handle(RequestReturn)
    def request_return(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.file_return(reason=command.reason, actor=command.actor)
        repo.add(order)
