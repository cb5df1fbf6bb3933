"""Repository for the Order aggregate."""

from protean.exceptions import ExpectedVersionError, ObjectNotFoundError

from shipping.domain import shipping
from shipping.errors import OrderNotFound
from shipping.order.order import Order


@shipping.repository(part_of=Order)
class OrderRepository:
    def get_for_tenant(self, tenant_id: str, order_id: str) -> Order:
        """Fetch an order, treating other tenants' orders as missing."""
        try:
            order = self.get(order_id)
        except ObjectNotFoundError:
            raise OrderNotFound(order_id) from None
        if str(order.tenant_id) != str(tenant_id) or order.deleted_at is not None:
            raise OrderNotFound(order_id)
        return order

    def _save_unless_changed(self, order: Order, read_version: int) -> bool:
        if self.get(order.id)._version != read_version:
            return False
        try:
            self.add(order)
        except ExpectedVersionError:
            return False
        return True

    def compare_and_set_status(self, order_id: str, expected: str, new: str) -> bool:
        """Move the order to ``new`` only if it is still ``expected``.

        Reports whether the row was written. A concurrent writer that got there
        first, even one that left the status alone, makes this return ``False``.
        """
        order = self.get(order_id)
        if order.status != expected:
            return False
        read_version = order._version
        order.move_to(new)
        return self._save_unless_changed(order, read_version)

    def claim_for_booking(self, order_id: str, claim: str, ttl_seconds: float) -> bool:
        """Take the order's booking claim; ``False`` while another booking holds it."""
        order = self.get(order_id)
        read_version = order._version
        if not order.claim_booking(claim, ttl_seconds):
            return False
        return self._save_unless_changed(order, read_version)

    def release_booking_claim(self, order_id: str, claim: str) -> bool:
        """Drop ``claim`` if it is still the one held; ``False`` if it was lost or changed under us."""
        order = self.get(order_id)
        read_version = order._version
        if not order.release_booking(claim):
            return False
        return self._save_unless_changed(order, read_version)
