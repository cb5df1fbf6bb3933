"""Shipment domain events: immutable facts about shipment state changes.

All events are past tense, versioned, and carry enough data for downstream
tracking and notification consumers.
"""

from protean.fields import DateTime, Identifier, String

from shipping.domain import shipping


@shipping.event(part_of="Shipment")
class ShipmentBooked:
    """The courier accepted the booking and the shipment was recorded."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    shipment_number = String(required=True)
    courier_type = String(required=True)
    external_order_id = String(required=True)
    external_shipment_id = String()
    awb_number = String()
    booked_at = DateTime(required=True)


@shipping.event(part_of="Shipment")
class CourierAssigned:
    """An AWB was bound to the shipment."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    awb_number = String(required=True)
    courier_name = String()
    assigned_at = DateTime(required=True)


@shipping.event(part_of="Shipment")
class ShipmentStatusChanged:
    """The shipment moved along an edge of the delivery state machine."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    location = String()
    remarks = String()
    occurred_at = DateTime(required=True)
