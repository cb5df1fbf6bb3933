"""Order aggregate (CQRS): the slice of an order that shipping depends on.

Orders are owned by the ordering system. This context keeps a snapshot of
what a booking needs (delivery address, items, COD terms, totals) and a
status that shipment progress is projected onto. The projection is one-way:
shipment changes move the order, never the reverse.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from shipping.domain import shipping


class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RTO = "RTO"


# Orders in these states cannot be shipped again
_UNSHIPPABLE_STATUSES = {OrderStatus.CANCELLED, OrderStatus.DELIVERED}


@shipping.value_object(part_of="Order")
class ShippingAddress:
    """The delivery address captured when the order was placed."""

    name = String(required=True, max_length=200)
    phone = String(max_length=20)
    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(max_length=100, default="India")


@shipping.entity(part_of="Order")
class OrderItem:
    sku = String(required=True, max_length=100)
    name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(default=0.0, min_value=0.0)


@shipping.aggregate
class Order:
    tenant_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    customer_name = String(max_length=200)
    customer_phone = String(max_length=20)
    shipping_address = ValueObject(ShippingAddress)
    items = HasMany(OrderItem)
    is_cod = Boolean(default=False)
    total_amount = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="INR")
    shipped_at = DateTime()
    delivered_at = DateTime()
    booking_claim = String(max_length=64)
    booking_claimed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()
    deleted_at = DateTime()

    @classmethod
    def place(
        cls,
        tenant_id: str,
        order_number: str,
        shipping_address: dict,
        items_data: list[dict],
        is_cod: bool = False,
        total_amount: float = 0.0,
        status: str = OrderStatus.CONFIRMED.value,
        customer_name: str | None = None,
        customer_phone: str | None = None,
        currency: str = "INR",
    ):
        """Record an order snapshot handed over by the ordering system."""
        now = datetime.now(UTC)
        order = cls(
            tenant_id=tenant_id,
            order_number=order_number,
            status=status,
            customer_name=customer_name or shipping_address.get("name"),
            customer_phone=customer_phone or shipping_address.get("phone"),
            shipping_address=ShippingAddress(**shipping_address),
            is_cod=is_cod,
            total_amount=total_amount,
            currency=currency,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            order.add_items(OrderItem(**item_data))
        return order

    @property
    def is_shippable(self) -> bool:
        return OrderStatus(self.status) not in _UNSHIPPABLE_STATUSES

    def find_item(self, order_item_id: str) -> OrderItem | None:
        return next((i for i in (self.items or []) if str(i.id) == str(order_item_id)), None)

    def move_to(self, status: str) -> None:
        """Take the status a shipment projected, stamping shipped/delivered times."""
        now = datetime.now(UTC)
        self.status = status
        self.updated_at = now
        if status == OrderStatus.SHIPPED.value:
            self.shipped_at = now
        elif status == OrderStatus.DELIVERED.value:
            self.delivered_at = now

    def claim_booking(self, claim: str, ttl_seconds: float) -> bool:
        """Reserve the order for one booking at a time.

        A claim older than ``ttl_seconds`` belongs to a booking that never
        finished and may be taken over.
        """
        now = datetime.now(UTC)
        if self.booking_claim and self.booking_claimed_at:
            claimed_at = self.booking_claimed_at
            if claimed_at.tzinfo is None:
                claimed_at = claimed_at.replace(tzinfo=UTC)
            if now - claimed_at < timedelta(seconds=ttl_seconds):
                return False
        self.booking_claim = claim
        self.booking_claimed_at = now
        return True

    def release_booking(self, claim: str) -> bool:
        if self.booking_claim != claim:
            return False
        self.booking_claim = None
        self.booking_claimed_at = None
        return True
