"""Shared BDD fixtures and step definitions for the Shipping domain."""

import pytest
from pytest_bdd import given, parsers, then

from shipping.errors import InvalidTransition
from shipping.shipment.events import CourierAssigned, ShipmentBooked, ShipmentStatusChanged
from shipping.shipment.shipment import Shipment

_SHIPMENT_EVENT_CLASSES = {
    "ShipmentBooked": ShipmentBooked,
    "CourierAssigned": CourierAssigned,
    "ShipmentStatusChanged": ShipmentStatusChanged,
}

_PICKUP = {
    "name": "ShipStream Warehouse",
    "line1": "Plot 7, Industrial Area",
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

_ITEMS = [
    {"order_item_id": "oi-1", "sku": "KB-MECH-001", "name": "Mechanical Keyboard", "quantity": 1},
    {"order_item_id": "oi-2", "sku": "MP-XL-BLK", "name": "XL Mouse Pad", "quantity": 2},
]


def _booked_shipment(status=None, awb_number="AWB-BDD-1"):
    shipment = Shipment.prepare(
        tenant_id="tenant-bdd",
        order_id="ord-bdd-001",
        order_number="ORD-BDD-001",
        courier_type="Shiprocket",
        pickup_address=_PICKUP,
        delivery_address=_DELIVERY,
        items_data=_ITEMS,
    )
    shipment.record_booking(
        external_order_id="SR-BDD-1",
        external_shipment_id="SRS-BDD-1",
        awb_number=awb_number,
        courier_name="Fake Express",
    )
    if status:
        shipment.status = status
    shipment._events.clear()
    return shipment


@pytest.fixture()
def error():
    """Container for captured transition errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a booked shipment", target_fixture="shipment")
def booked_shipment():
    return _booked_shipment()


@given("a shipment booked without an AWB", target_fixture="shipment")
def partially_booked_shipment():
    return _booked_shipment(awb_number=None)


@given(parsers.cfparse('a shipment in "{status}" status'), target_fixture="shipment")
def shipment_in_status(status):
    return _booked_shipment(status=status)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the shipment status is "{status}"'))
def shipment_status_is(shipment, status):
    assert shipment.status == status


@then("the transition is rejected")
def transition_rejected(error):
    assert error["exc"] is not None, "Expected an invalid transition but none was raised"
    assert isinstance(error["exc"], InvalidTransition)


@then(parsers.cfparse("a {event_type} event is raised"))
def shipment_event_raised(shipment, event_type):
    event_cls = _SHIPMENT_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in shipment._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in shipment._events]}"


@then("no event is raised")
def no_event_raised(shipment):
    assert not shipment._events


@then(parsers.cfparse("the shipment has {count:d} tracking events"))
def shipment_has_n_tracking_events(shipment, count):
    assert len(shipment.tracking_events or []) == count


@then(parsers.cfparse('the latest tracking event is "{status}"'))
def latest_tracking_event(shipment, status):
    assert shipment.history()[0].status == status
