"""Shipment aggregate (CQRS): one physical delivery attempt for one order.

The courier owns the booking; the shipment is the local record of it. It is
built in memory, booked with the courier, and only then persisted, so a
stored shipment always corresponds to a real booking.

State Machine:
    Created → {Manifested, Cancelled}
    Manifested → {PickedUp, Cancelled}
    PickedUp → InTransit → {ReachedDestination, OutForDelivery}
    ReachedDestination → OutForDelivery
    OutForDelivery → {Delivered, DeliveryFailed}
    DeliveryFailed → {OutForDelivery, RTOInitiated}
    RTOInitiated → RTOInTransit → RTODelivered
    any state → Lost
"""

import secrets
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from shipping.courier.models import CourierType
from shipping.domain import shipping
from shipping.errors import AwbAlreadyAssigned, InvalidShipmentState, InvalidTransition
from shipping.shipment.events import CourierAssigned, ShipmentBooked, ShipmentStatusChanged


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ShipmentStatus(Enum):
    CREATED = "Created"
    MANIFESTED = "Manifested"
    PICKED_UP = "PickedUp"
    IN_TRANSIT = "InTransit"
    REACHED_DESTINATION = "ReachedDestination"
    OUT_FOR_DELIVERY = "OutForDelivery"
    DELIVERED = "Delivered"
    DELIVERY_FAILED = "DeliveryFailed"
    RTO_INITIATED = "RTOInitiated"
    RTO_IN_TRANSIT = "RTOInTransit"
    RTO_DELIVERED = "RTODelivered"
    CANCELLED = "Cancelled"
    LOST = "Lost"


_VALID_TRANSITIONS = {
    ShipmentStatus.CREATED: {ShipmentStatus.MANIFESTED, ShipmentStatus.CANCELLED},
    ShipmentStatus.MANIFESTED: {ShipmentStatus.PICKED_UP, ShipmentStatus.CANCELLED},
    ShipmentStatus.PICKED_UP: {ShipmentStatus.IN_TRANSIT},
    ShipmentStatus.IN_TRANSIT: {ShipmentStatus.REACHED_DESTINATION, ShipmentStatus.OUT_FOR_DELIVERY},
    ShipmentStatus.REACHED_DESTINATION: {ShipmentStatus.OUT_FOR_DELIVERY},
    ShipmentStatus.OUT_FOR_DELIVERY: {ShipmentStatus.DELIVERED, ShipmentStatus.DELIVERY_FAILED},
    ShipmentStatus.DELIVERY_FAILED: {ShipmentStatus.OUT_FOR_DELIVERY, ShipmentStatus.RTO_INITIATED},
    ShipmentStatus.RTO_INITIATED: {ShipmentStatus.RTO_IN_TRANSIT},
    ShipmentStatus.RTO_IN_TRANSIT: {ShipmentStatus.RTO_DELIVERED},
    ShipmentStatus.DELIVERED: set(),
    ShipmentStatus.RTO_DELIVERED: set(),
    ShipmentStatus.CANCELLED: set(),
    ShipmentStatus.LOST: set(),
}

# Reachable from every state, itself included
_UNIVERSAL_TARGETS = {ShipmentStatus.LOST}

# A shipment in one of these no longer blocks a new shipment for its order
TERMINAL_STATUSES = {ShipmentStatus.CANCELLED, ShipmentStatus.RTO_DELIVERED}


def is_valid_transition(current: ShipmentStatus, target: ShipmentStatus) -> bool:
    return target in _UNIVERSAL_TARGETS or target in _VALID_TRANSITIONS.get(current, set())


def generate_shipment_number(now: datetime | None = None) -> str:
    """``SHP-<UTC yyyyMMddHHmmss>-<6 hex>``, human readable and practically unique."""
    now = now or datetime.now(UTC)
    return f"SHP-{now:%Y%m%d%H%M%S}-{secrets.token_hex(3).upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@shipping.value_object(part_of="Shipment")
class ShipmentAddress:
    """An address copied onto the shipment when it was created.

    Later edits to the order or the account settings never reach it.
    """

    name = String(required=True, max_length=200)
    phone = String(max_length=20)
    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(max_length=100, default="India")


@shipping.value_object(part_of="Shipment")
class PackageDimensions:
    """Physical dimensions (cm) and weight (kg) of the package."""

    weight = Float(min_value=0.0)
    length = Float(min_value=0.0)
    width = Float(min_value=0.0)
    height = Float(min_value=0.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@shipping.entity(part_of="Shipment")
class ShipmentItem:
    """An order line (or part of one) carried in this shipment."""

    order_item_id = Identifier(required=True)
    sku = String(required=True, max_length=100)
    name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)


@shipping.entity(part_of="Shipment")
class TrackingEvent:
    """One entry of the append-only tracking history."""

    status = String(required=True, choices=ShipmentStatus)
    location = String(max_length=200)
    remarks = String(max_length=500)
    occurred_at = DateTime(required=True)
    sequence = Integer(required=True, min_value=1)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@shipping.aggregate
class Shipment:
    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_number = String(max_length=50)
    shipment_number = String(required=True, max_length=40)
    courier_account_id = Identifier()
    courier_type = String(required=True, choices=CourierType)
    courier_name = String(max_length=200)
    service_code = String(max_length=50)

    external_order_id = String(max_length=100)
    external_shipment_id = String(max_length=100)
    awb_number = String(max_length=100)
    label_url = String(max_length=1000)
    tracking_url = String(max_length=1000)

    status = String(choices=ShipmentStatus, default=ShipmentStatus.CREATED.value)
    pickup_address = ValueObject(ShipmentAddress)
    delivery_address = ValueObject(ShipmentAddress)
    dimensions = ValueObject(PackageDimensions)
    items = HasMany(ShipmentItem)
    tracking_events = HasMany(TrackingEvent)

    is_cod = Boolean(default=False)
    cod_amount = Float(min_value=0.0)
    declared_value = Float(min_value=0.0)
    shipping_cost = Float(min_value=0.0)
    currency = String(max_length=3, default="INR")

    expected_delivery_date = DateTime()
    picked_up_at = DateTime()
    delivered_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()
    deleted_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def prepare(
        cls,
        tenant_id: str,
        order_id: str,
        order_number: str,
        courier_type: str,
        pickup_address: dict,
        delivery_address: dict,
        items_data: list[dict],
        dimensions: dict | None = None,
        is_cod: bool = False,
        cod_amount: float | None = None,
        declared_value: float | None = None,
        currency: str = "INR",
        courier_account_id: str | None = None,
        service_code: str | None = None,
    ):
        """Build an unsaved shipment with its address and item snapshots.

        Nothing is persisted and no event is raised until the courier has
        accepted the booking (see ``record_booking``).
        """
        if not items_data:
            raise ValidationError({"items": ["A shipment must carry at least one item"]})

        now = datetime.now(UTC)
        shipment = cls(
            tenant_id=tenant_id,
            order_id=order_id,
            order_number=order_number,
            shipment_number=generate_shipment_number(now),
            courier_account_id=courier_account_id,
            courier_type=courier_type,
            service_code=service_code,
            status=ShipmentStatus.CREATED.value,
            pickup_address=ShipmentAddress(**pickup_address),
            delivery_address=ShipmentAddress(**delivery_address),
            dimensions=PackageDimensions(**dimensions) if dimensions else None,
            is_cod=is_cod,
            cod_amount=cod_amount if is_cod else None,
            declared_value=declared_value,
            currency=currency,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            shipment.add_items(ShipmentItem(**item_data))
        return shipment

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        """Still blocks another shipment for the same order."""
        return self.deleted_at is None and ShipmentStatus(self.status) not in TERMINAL_STATUSES

    def history(self) -> list[TrackingEvent]:
        """Tracking events, newest first."""
        return sorted(
            self.tracking_events or [],
            key=lambda e: (e.occurred_at, e.sequence),
            reverse=True,
        )

    # -------------------------------------------------------------------
    # Booking
    # -------------------------------------------------------------------
    def record_booking(
        self,
        external_order_id: str,
        external_shipment_id: str | None = None,
        awb_number: str | None = None,
        courier_name: str | None = None,
        label_url: str | None = None,
        tracking_url: str | None = None,
    ) -> None:
        """Stamp the courier's references after it accepted the booking."""
        if not external_order_id:
            raise ValidationError({"external_order_id": ["A booking needs the courier's order reference"]})
        if self.external_order_id:
            raise ValidationError({"external_order_id": ["Shipment is already booked"]})

        now = datetime.now(UTC)
        self.external_order_id = external_order_id
        self.external_shipment_id = external_shipment_id
        self.courier_name = courier_name
        self.updated_at = now
        self.raise_(
            ShipmentBooked(
                shipment_id=str(self.id),
                tenant_id=str(self.tenant_id),
                order_id=str(self.order_id),
                shipment_number=self.shipment_number,
                courier_type=self.courier_type,
                external_order_id=external_order_id,
                external_shipment_id=external_shipment_id,
                awb_number=awb_number,
                booked_at=now,
            )
        )
        if awb_number:
            self._bind_awb(awb_number, courier_name, label_url, tracking_url, now)

    # -------------------------------------------------------------------
    # AWB assignment
    # -------------------------------------------------------------------
    def assert_awb_assignable(self) -> None:
        """Raise unless an AWB may be requested for this shipment right now."""
        if self.awb_number:
            raise AwbAlreadyAssigned(self.shipment_number, self.awb_number)
        if ShipmentStatus(self.status) != ShipmentStatus.CREATED:
            raise InvalidShipmentState(
                f"Courier can only be assigned while the shipment is Created (currently {self.status})"
            )
        if not self.external_shipment_id:
            raise InvalidShipmentState("Shipment has no courier booking reference yet")

    def assign_awb(
        self,
        awb_number: str,
        courier_name: str | None = None,
        label_url: str | None = None,
        tracking_url: str | None = None,
    ) -> None:
        """Bind the AWB the courier issued. One-shot: an existing AWB is never overwritten."""
        self.assert_awb_assignable()
        if not awb_number:
            raise ValidationError({"awb_number": ["AWB number is required"]})
        self._bind_awb(awb_number, courier_name, label_url, tracking_url, datetime.now(UTC))

    def _bind_awb(self, awb_number, courier_name, label_url, tracking_url, now: datetime) -> None:
        self.awb_number = awb_number
        self.courier_name = courier_name or self.courier_name
        self.label_url = label_url
        self.tracking_url = tracking_url
        self.updated_at = now
        self.raise_(
            CourierAssigned(
                shipment_id=str(self.id),
                tenant_id=str(self.tenant_id),
                awb_number=awb_number,
                courier_name=self.courier_name,
                assigned_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def can_transition_to(self, target: ShipmentStatus) -> bool:
        return is_valid_transition(ShipmentStatus(self.status), target)

    def transition_to(
        self,
        target: ShipmentStatus | str,
        location: str | None = None,
        remarks: str | None = None,
    ) -> bool:
        """Move to ``target`` and append one tracking event.

        Re-applying the current status is a no-op and returns ``False``, so
        redelivered courier updates are harmless. Any edge outside the table
        raises ``InvalidTransition`` and leaves the shipment untouched.
        """
        target = ShipmentStatus(target)
        current = ShipmentStatus(self.status)
        if target == current:
            return False
        if not is_valid_transition(current, target):
            raise InvalidTransition(current.value, target.value)

        now = datetime.now(UTC)
        self.status = target.value
        if target == ShipmentStatus.PICKED_UP:
            self.picked_up_at = now
        elif target == ShipmentStatus.DELIVERED:
            self.delivered_at = now
        self.updated_at = now

        last_sequence = max((e.sequence for e in (self.tracking_events or [])), default=0)
        self.add_tracking_events(
            TrackingEvent(
                status=target.value,
                location=location,
                remarks=remarks,
                occurred_at=now,
                sequence=last_sequence + 1,
            )
        )
        self.raise_(
            ShipmentStatusChanged(
                shipment_id=str(self.id),
                tenant_id=str(self.tenant_id),
                order_id=str(self.order_id),
                previous_status=current.value,
                status=target.value,
                location=location,
                remarks=remarks,
                occurred_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Soft delete
    # -------------------------------------------------------------------
    def soft_delete(self) -> None:
        """Hide the shipment from every lookup. Rows are kept for audit."""
        if self.deleted_at is not None:
            return
        now = datetime.now(UTC)
        self.deleted_at = now
        self.updated_at = now
