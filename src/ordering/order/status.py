"""Order status changes: commands and handler.

``UpdateOrderStatus`` is the back-office override: it sets any known status
and records the note in the history without consulting the transition map.
The remaining commands walk the normal lifecycle and are rejected when the
order is not in a state that allows the move.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=30)
    status_note = String(max_length=500)
    actor = String(max_length=100)


@ordering.command(part_of="Order")
class ConfirmOrder:
    order_id = Identifier(required=True)
    actor = String(max_length=100)


@ordering.command(part_of="Order")
class MarkProcessing:
    order_id = Identifier(required=True)
    actor = String(max_length=100)


@ordering.command(part_of="Order")
class MarkOutForDelivery:
    order_id = Identifier(required=True)
    actor = String(max_length=100)


@ordering.command(part_of="Order")
class DeliverOrder:
    order_id = Identifier(required=True)
    actor = String(max_length=100)


@ordering.command_handler(part_of=Order)
class ManageOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.update_status(command.status, note=command.status_note, actor=command.actor)
        repo.add(order)

    @handle(ConfirmOrder)
    def confirm_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.confirm(actor=command.actor)
        repo.add(order)

    @handle(MarkProcessing)
    def mark_processing(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_processing(actor=command.actor)
        repo.add(order)

    @handle(MarkOutForDelivery)
    def mark_out_for_delivery(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_out_for_delivery(actor=command.actor)
        repo.add(order)

    @handle(DeliverOrder)
    def deliver_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.deliver(actor=command.actor)
        repo.add(order)
