"""Integration tests for the shipping API endpoints via TestClient."""

import inspect

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain

from shipping.api import (
    courier_account_router,
    order_router,
    register_shipping_error_handlers,
    shipment_router,
)
from shipping.api.routes import (
    assign,
    available_couriers,
    book_shipment,
    cancel,
    tracking_webhook,
    update_status,
)
from shipping.order.order import Order
from shipping.shipment.shipment import Shipment

HEADERS = {"X-Tenant-ID": "tenant-api"}

ADDRESS = {
    "name": "Asha Rao",
    "phone": "9876543210",
    "line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560038",
}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(courier_account_router)
    app.include_router(shipment_router)
    register_shipping_error_handlers(app)
    return TestClient(app)


def _connected_account(client, **overrides):
    body = {
        "name": "Shiprocket Main",
        "courier_type": "Shiprocket",
        "api_key": "key-123",
        "settings": {"pickup_location": "Primary"},
        "is_default": True,
    }
    body.update(overrides)
    response = client.post("/courier-accounts", json=body, headers=HEADERS)
    assert response.status_code == 201
    account_id = response.json()["id"]
    response = client.post(f"/courier-accounts/{account_id}/verify", headers=HEADERS)
    assert response.status_code == 200
    return account_id


def _order(client, **overrides):
    body = {
        "order_number": "ORD-API-1",
        "shipping_address": ADDRESS,
        "items": [{"sku": "KB-MECH-001", "name": "Mechanical Keyboard", "quantity": 1, "unit_price": 3499.0}],
        "is_cod": True,
        "total_amount": 3499.0,
    }
    body.update(overrides)
    response = client.post("/orders", json=body, headers=HEADERS)
    assert response.status_code == 201
    return response.json()["id"]


def _book(client, order_id, **overrides):
    body = {"order_id": order_id}
    body.update(overrides)
    return client.post("/shipments", json=body, headers=HEADERS)


class TestOrderAndAccountAPI:
    def test_register_order(self, client):
        order_id = _order(client)

        order = current_domain.repository_for(Order).get(order_id)
        assert order.tenant_id == "tenant-api"
        assert order.status == "Confirmed"
        assert order.shipping_address.postal_code == "560038"
        assert order.items[0].sku == "KB-MECH-001"

    def test_verify_account(self, client):
        response = client.post(
            "/courier-accounts",
            json={"name": "Main", "courier_type": "Shiprocket", "api_key": "k"},
            headers=HEADERS,
        )
        account_id = response.json()["id"]

        response = client.post(f"/courier-accounts/{account_id}/verify", headers=HEADERS)

        assert response.json() == {"account_id": account_id, "connected": True}

    def test_verify_unknown_account(self, client):
        response = client.post("/courier-accounts/nope/verify", headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    def test_tenant_header_is_required(self, client):
        response = client.post("/orders", json={"order_number": "X"})
        assert response.status_code == 422


class TestCreateShipmentAPI:
    def test_full_booking(self, client):
        _connected_account(client)
        order_id = _order(client)

        response = _book(client, order_id, dimensions={"weight": 1.2})

        assert response.status_code == 201
        body = response.json()
        assert body["outcome"] == "Full"
        assert body["warning"] is None
        assert body["shipment"]["status"] == "Created"
        assert body["shipment"]["awb_number"]
        assert body["shipment"]["cod_amount"] == 3499.0
        assert body["shipment"]["shipment_number"].startswith("SHP-")

    def test_partial_booking_warns(self, client):
        from shipping.courier import get_courier_registry

        _connected_account(client)
        order_id = _order(client)
        get_courier_registry().get("Shiprocket").configure(booking="partial")

        response = _book(client, order_id)

        assert response.status_code == 201
        assert response.json()["outcome"] == "Partial"
        assert response.json()["warning"]
        assert response.json()["shipment"]["awb_number"] is None

    def test_courier_rejection_is_502(self, client):
        from shipping.courier import get_courier_registry

        _connected_account(client)
        order_id = _order(client)
        get_courier_registry().get("Shiprocket").configure(booking="rejected", failure_reason="Invalid pincode")

        response = _book(client, order_id)

        assert response.status_code == 502
        assert response.json() == {"error": "ExternalProviderFailure", "detail": "Invalid pincode"}

    def test_duplicate_is_409(self, client):
        _connected_account(client)
        order_id = _order(client)
        _book(client, order_id)

        response = _book(client, order_id)

        assert response.status_code == 409
        assert response.json()["error"] == "InvalidState"
        assert "already has an active shipment" in response.json()["detail"]

    def test_unknown_order_is_404(self, client):
        _connected_account(client)
        response = _book(client, "no-such-order")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    def test_no_account_is_409(self, client):
        order_id = _order(client)
        response = _book(client, order_id)
        assert response.status_code == 409

    def test_unpersisted_booking_is_500_with_references(self, client, monkeypatch):
        _connected_account(client)
        order_id = _order(client)

        def failing_add(self, aggregate):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(type(current_domain.repository_for(Shipment)), "add", failing_add)

        response = _book(client, order_id)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "BookingNotPersisted"
        assert body["references"]["order_id"] == order_id
        assert body["references"]["external_order_id"]


class TestShipmentLifecycleAPI:
    def test_read_shipment(self, client):
        _connected_account(client)
        shipment_id = _book(client, _order(client)).json()["shipment"]["id"]

        response = client.get(f"/shipments/{shipment_id}", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["id"] == shipment_id

    def test_other_tenant_cannot_read(self, client):
        _connected_account(client)
        shipment_id = _book(client, _order(client)).json()["shipment"]["id"]

        response = client.get(f"/shipments/{shipment_id}", headers={"X-Tenant-ID": "intruder"})

        assert response.status_code == 404

    def test_status_walk_and_order_cascade(self, client):
        _connected_account(client)
        order_id = _order(client)
        shipment_id = _book(client, order_id).json()["shipment"]["id"]

        for status in ("Manifested", "PickedUp", "InTransit", "OutForDelivery", "Delivered"):
            response = client.put(
                f"/shipments/{shipment_id}/status",
                json={"status": status, "location": "Hub"},
                headers=HEADERS,
            )
            assert response.status_code == 200

        body = response.json()
        assert body["status"] == "Delivered"
        assert len(body["tracking_history"]) == 5
        assert current_domain.repository_for(Order).get(order_id).status == "Delivered"

    def test_invalid_transition_is_422(self, client):
        _connected_account(client)
        shipment_id = _book(client, _order(client)).json()["shipment"]["id"]

        response = client.put(f"/shipments/{shipment_id}/status", json={"status": "Delivered"}, headers=HEADERS)

        assert response.status_code == 422
        assert response.json() == {"error": "InvalidTransition", "detail": "Cannot go from Created to Delivered"}

    def test_unknown_status_is_400(self, client):
        _connected_account(client)
        shipment_id = _book(client, _order(client)).json()["shipment"]["id"]

        response = client.put(f"/shipments/{shipment_id}/status", json={"status": "Teleported"}, headers=HEADERS)

        assert response.status_code == 400

    def test_cancel(self, client):
        _connected_account(client)
        shipment_id = _book(client, _order(client)).json()["shipment"]["id"]

        response = client.put(f"/shipments/{shipment_id}/cancel", json={"reason": "Address change"}, headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["status"] == "Cancelled"
        assert response.json()["tracking_history"][0]["remarks"] == "Address change"

    def test_tracking_webhook_redelivery(self, client):
        _connected_account(client)
        awb = _book(client, _order(client)).json()["shipment"]["awb_number"]

        for _ in range(3):
            response = client.post(
                "/shipments/tracking/webhook",
                json={"awb_number": awb, "status": "Manifested"},
                headers=HEADERS,
            )
            assert response.status_code == 200

        assert len(response.json()["tracking_history"]) == 1


    def test_order_conflict_reports_the_saved_shipment_status(self, client, monkeypatch):
        _connected_account(client)
        shipment_id = _book(client, _order(client)).json()["shipment"]["id"]
        client.put(f"/shipments/{shipment_id}/status", json={"status": "Manifested"}, headers=HEADERS)
        repo_class = type(current_domain.repository_for(Order))
        monkeypatch.setattr(repo_class, "compare_and_set_status", lambda self, *args: False)
        monkeypatch.setenv("SHIPPING_RETRY_MAX_ATTEMPTS", "2")
        monkeypatch.setenv("SHIPPING_RETRY_BASE_DELAY_MS", "0")
        monkeypatch.setenv("SHIPPING_RETRY_MAX_JITTER_MS", "0")

        response = client.put(f"/shipments/{shipment_id}/status", json={"status": "PickedUp"}, headers=HEADERS)

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "OrderProjectionConflict"
        assert body["shipment_status"] == "PickedUp"
        assert body["shipment_committed"] is True
        assert client.get(f"/shipments/{shipment_id}", headers=HEADERS).json()["status"] == "PickedUp"

    def test_booking_in_progress_is_409(self, client):
        _connected_account(client)
        order_id = _order(client)
        current_domain.repository_for(Order).claim_for_booking(order_id, "other-request", ttl_seconds=300)

        response = _book(client, order_id)

        assert response.status_code == 409
        assert response.json()["error"] == "InvalidState"

    @pytest.mark.parametrize(
        "handler",
        [book_shipment, tracking_webhook, available_couriers, assign, update_status, cancel],
    )
    def test_blocking_handlers_run_in_the_threadpool(self, handler):
        assert not inspect.iscoroutinefunction(handler)


class TestCourierAssignmentAPI:
    @pytest.fixture()
    def partial_shipment_id(self, client):
        from shipping.courier import get_courier_registry

        _connected_account(client)
        order_id = _order(client)
        courier = get_courier_registry().get("Shiprocket")
        courier.configure(booking="partial")
        shipment_id = _book(client, order_id).json()["shipment"]["id"]
        courier.configure()
        return shipment_id

    def test_list_couriers(self, client, partial_shipment_id):
        response = client.get(f"/shipments/{partial_shipment_id}/couriers", headers=HEADERS)

        assert response.status_code == 200
        couriers = response.json()["couriers"]
        assert couriers[0]["courier_id"] == "cr-express"
        assert "total_charge" in couriers[0]

    def test_route_not_serviceable_is_422(self, client, partial_shipment_id):
        from shipping.courier import get_courier_registry

        get_courier_registry().get("Shiprocket").configure(quotes=[])

        response = client.get(f"/shipments/{partial_shipment_id}/couriers", headers=HEADERS)

        assert response.status_code == 422
        assert response.json()["error"] == "RouteNotServiceable"

    def test_assign_courier(self, client, partial_shipment_id):
        response = client.post(
            f"/shipments/{partial_shipment_id}/assign-courier",
            json={"courier_id": "cr-surface"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["awb_number"]
        assert response.json()["courier_name"] == "Fake Surface"

    def test_second_assignment_is_409(self, client, partial_shipment_id):
        client.post(f"/shipments/{partial_shipment_id}/assign-courier", json={}, headers=HEADERS)

        response = client.post(f"/shipments/{partial_shipment_id}/assign-courier", json={}, headers=HEADERS)

        assert response.status_code == 409
        assert "already has AWB" in response.json()["detail"]

    def test_awb_failure_is_502_with_courier_message(self, client, partial_shipment_id):
        from shipping.courier import get_courier_registry

        get_courier_registry().get("Shiprocket").configure(
            awb_should_succeed=False, awb_failure_reason="Courier not serviceable"
        )

        response = client.post(f"/shipments/{partial_shipment_id}/assign-courier", json={}, headers=HEADERS)

        assert response.status_code == 502
        assert response.json()["detail"] == "Courier not serviceable"
