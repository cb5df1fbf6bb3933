"""Repository for the Shipment aggregate."""

from protean.exceptions import ExpectedVersionError, ObjectNotFoundError

from shipping.domain import shipping
from shipping.errors import ShipmentNotFound
from shipping.shipment.shipment import Shipment


@shipping.repository(part_of=Shipment)
class ShipmentRepository:
    def get_for_tenant(self, tenant_id: str, shipment_id: str) -> Shipment:
        """Fetch a live shipment; other tenants' and soft-deleted ones are missing."""
        try:
            shipment = self.get(shipment_id)
        except ObjectNotFoundError:
            raise ShipmentNotFound(shipment_id) from None
        if str(shipment.tenant_id) != str(tenant_id) or shipment.deleted_at is not None:
            raise ShipmentNotFound(shipment_id)
        return shipment

    def for_order(self, tenant_id: str, order_id: str) -> list[Shipment]:
        results = self._dao.query.filter(tenant_id=tenant_id, order_id=order_id).all()
        return [s for s in results.items if s.deleted_at is None]

    def active_for_order(self, tenant_id: str, order_id: str) -> Shipment | None:
        """The shipment that currently blocks a new booking for the order, if any."""
        return next((s for s in self.for_order(tenant_id, order_id) if s.is_active), None)

    def find_by_awb(self, tenant_id: str, awb_number: str) -> Shipment:
        results = self._dao.query.filter(tenant_id=tenant_id, awb_number=awb_number).all()
        shipment = next((s for s in results.items if s.deleted_at is None), None)
        if shipment is None:
            raise ShipmentNotFound(f"with AWB {awb_number}")
        return shipment

    def save_transition(self, shipment: Shipment, expected: str) -> bool:
        """Persist a transitioned shipment only while the stored row is still ``expected``.

        The status check catches a writer that moved the shipment; the aggregate
        version catches any other write since ``shipment`` was read. Either way
        nothing is written and ``False`` comes back.
        """
        stored = self.get(shipment.id)
        if stored.status != expected or stored._version != shipment._version:
            return False
        try:
            self.add(shipment)
        except ExpectedVersionError:
            return False
        return True
