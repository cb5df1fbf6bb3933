"""Tests for the Shipment aggregate: preparation, booking and AWB binding."""

import re
from datetime import UTC, datetime

import pytest
from protean.exceptions import ValidationError

from shipping.errors import AwbAlreadyAssigned, InvalidShipmentState
from shipping.shipment.events import CourierAssigned, ShipmentBooked
from shipping.shipment.shipment import (
    Shipment,
    ShipmentStatus,
    generate_shipment_number,
)

_PICKUP = {
    "name": "Warehouse",
    "line1": "Plot 7",
    "city": "Pune",
    "state": "Maharashtra",
    "postal_code": "411019",
}
_DELIVERY = {
    "name": "Asha Rao",
    "phone": "9876543210",
    "line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560038",
}
_ITEMS = [{"order_item_id": "oi-1", "sku": "SKU-1", "name": "Keyboard", "quantity": 1}]


def _prepare(**overrides):
    data = {
        "tenant_id": "tenant-a",
        "order_id": "ord-1",
        "order_number": "ORD-1",
        "courier_type": "Shiprocket",
        "pickup_address": _PICKUP,
        "delivery_address": _DELIVERY,
        "items_data": _ITEMS,
    }
    data.update(overrides)
    return Shipment.prepare(**data)


class TestShipmentNumber:
    def test_format(self):
        number = generate_shipment_number(datetime(2024, 3, 9, 14, 5, 7, tzinfo=UTC))
        assert re.fullmatch(r"SHP-20240309140507-[0-9A-F]{6}", number)

    def test_numbers_differ(self):
        now = datetime.now(UTC)
        assert generate_shipment_number(now) != generate_shipment_number(now)


class TestPrepare:
    def test_prepared_shipment_is_created_and_unbooked(self):
        shipment = _prepare()
        assert shipment.status == ShipmentStatus.CREATED.value
        assert shipment.shipment_number.startswith("SHP-")
        assert shipment.external_order_id is None
        assert shipment.awb_number is None
        assert not shipment.tracking_events
        assert not shipment._events

    def test_snapshots_addresses_and_items(self):
        shipment = _prepare()
        assert shipment.pickup_address.city == "Pune"
        assert shipment.delivery_address.postal_code == "560038"
        assert shipment.delivery_address.country == "India"
        assert len(shipment.items) == 1
        assert shipment.items[0].sku == "SKU-1"

    def test_requires_items(self):
        with pytest.raises(ValidationError):
            _prepare(items_data=[])

    def test_cod_amount_only_kept_for_cod(self):
        assert _prepare(is_cod=False, cod_amount=500.0).cod_amount is None
        assert _prepare(is_cod=True, cod_amount=500.0).cod_amount == 500.0

    def test_dimensions_optional(self):
        assert _prepare().dimensions is None
        shipment = _prepare(dimensions={"weight": 1.2, "length": 20, "width": 15, "height": 10})
        assert shipment.dimensions.weight == 1.2


class TestRecordBooking:
    def test_full_booking_binds_awb(self):
        shipment = _prepare()
        shipment.record_booking(
            external_order_id="FO-1",
            external_shipment_id="FS-1",
            awb_number="AWB-1",
            courier_name="Fake Express",
            label_url="https://labels/1.pdf",
            tracking_url="https://track/AWB-1",
        )
        assert shipment.external_order_id == "FO-1"
        assert shipment.awb_number == "AWB-1"
        assert shipment.courier_name == "Fake Express"
        assert shipment.status == ShipmentStatus.CREATED.value
        assert any(isinstance(e, ShipmentBooked) for e in shipment._events)
        assert any(isinstance(e, CourierAssigned) for e in shipment._events)

    def test_partial_booking_leaves_awb_empty(self):
        shipment = _prepare()
        shipment.record_booking(external_order_id="FO-1", external_shipment_id="FS-1")
        assert shipment.awb_number is None
        assert any(isinstance(e, ShipmentBooked) for e in shipment._events)
        assert not any(isinstance(e, CourierAssigned) for e in shipment._events)

    def test_requires_courier_reference(self):
        with pytest.raises(ValidationError):
            _prepare().record_booking(external_order_id="")

    def test_cannot_book_twice(self):
        shipment = _prepare()
        shipment.record_booking(external_order_id="FO-1", external_shipment_id="FS-1")
        with pytest.raises(ValidationError):
            shipment.record_booking(external_order_id="FO-2")


class TestAssignAwb:
    def test_assigns_awb_to_partial_booking(self):
        shipment = _prepare()
        shipment.record_booking(external_order_id="FO-1", external_shipment_id="FS-1")
        shipment._events.clear()

        shipment.assign_awb("AWB-9", courier_name="Fake Surface")

        assert shipment.awb_number == "AWB-9"
        assert shipment.courier_name == "Fake Surface"
        assert isinstance(shipment._events[-1], CourierAssigned)

    def test_existing_awb_is_never_overwritten(self):
        shipment = _prepare()
        shipment.record_booking(external_order_id="FO-1", external_shipment_id="FS-1", awb_number="AWB-1")

        with pytest.raises(AwbAlreadyAssigned):
            shipment.assign_awb("AWB-2")
        assert shipment.awb_number == "AWB-1"

    def test_requires_booking_reference(self):
        with pytest.raises(InvalidShipmentState):
            _prepare().assign_awb("AWB-1")

    def test_only_while_created(self):
        shipment = _prepare()
        shipment.record_booking(external_order_id="FO-1", external_shipment_id="FS-1")
        shipment.status = ShipmentStatus.CANCELLED.value
        with pytest.raises(InvalidShipmentState):
            shipment.assign_awb("AWB-1")

    def test_requires_awb_number(self):
        shipment = _prepare()
        shipment.record_booking(external_order_id="FO-1", external_shipment_id="FS-1")
        with pytest.raises(ValidationError):
            shipment.assign_awb("")


class TestActivity:
    @pytest.mark.parametrize("status", ["Cancelled", "RTODelivered"])
    def test_terminal_shipments_are_inactive(self, status):
        shipment = _prepare()
        shipment.status = status
        assert shipment.is_active is False

    @pytest.mark.parametrize("status", ["Created", "InTransit", "Delivered", "Lost"])
    def test_other_shipments_are_active(self, status):
        shipment = _prepare()
        shipment.status = status
        assert shipment.is_active is True

    def test_soft_deleted_shipment_is_inactive(self):
        shipment = _prepare()
        shipment.soft_delete()
        assert shipment.deleted_at is not None
        assert shipment.is_active is False
