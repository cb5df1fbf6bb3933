"""Order intake: command and handler.

The ordering system hands orders over once they are ready to ship.
"""

import json

from protean import handle
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from shipping.domain import shipping
from shipping.order.order import Order, OrderStatus


@shipping.command(part_of="Order")
class RegisterOrder:
    tenant_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    status = String(choices=OrderStatus, default=OrderStatus.CONFIRMED.value)
    customer_name = String(max_length=200)
    customer_phone = String(max_length=20)
    shipping_address = Text(required=True)  # JSON object
    items = Text(required=True)  # JSON list of {sku, name, quantity, unit_price}
    is_cod = Boolean(default=False)
    total_amount = Float(default=0.0)
    currency = String(max_length=3, default="INR")


@shipping.command_handler(part_of=Order)
class OrderIntakeHandler:
    @handle(RegisterOrder)
    def register_order(self, command):
        order = Order.place(
            tenant_id=command.tenant_id,
            order_number=command.order_number,
            shipping_address=json.loads(command.shipping_address),
            items_data=json.loads(command.items),
            is_cod=command.is_cod,
            total_amount=command.total_amount,
            status=command.status,
            customer_name=command.customer_name,
            customer_phone=command.customer_phone,
            currency=command.currency,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
