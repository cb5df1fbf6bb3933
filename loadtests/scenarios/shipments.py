"""Shipment load test scenarios.

A full booking-to-delivery journey and a webhook storm that redelivers the
same tracking updates while the journey users change statuses.
"""

import random
import uuid

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import courier_account_data, dimensions_data, order_data
from loadtests.helpers.response import extract_error_detail

_DELIVERY_PATH = ["Manifested", "PickedUp", "InTransit", "OutForDelivery", "Delivered"]


class _TenantJourney(SequentialTaskSet):
    """Shared setup: a fresh tenant with a verified default courier account and one order."""

    def on_start(self):
        self.tenant = f"tenant-lt-{uuid.uuid4().hex[:8]}"
        self.headers = {"X-Tenant-ID": self.tenant}
        self.shipment_id = None
        self.awb_number = None

        resp = self.client.post("/courier-accounts", json=courier_account_data(), headers=self.headers)
        account_id = resp.json()["id"]
        self.client.post(f"/courier-accounts/{account_id}/verify", headers=self.headers)
        resp = self.client.post("/orders", json=order_data(), headers=self.headers)
        self.order_id = resp.json()["id"]

    def _create_shipment(self):
        with self.client.post(
            "/shipments",
            json={"order_id": self.order_id, "dimensions": dimensions_data()},
            headers=self.headers,
            catch_response=True,
            name="POST /shipments",
        ) as resp:
            if resp.status_code == 201:
                shipment = resp.json()["shipment"]
                self.shipment_id = shipment["id"]
                self.awb_number = shipment["awb_number"]
            else:
                resp.failure(f"Create shipment failed: {resp.status_code} {extract_error_detail(resp)}")
                self.interrupt()


class ShipmentLifecycleJourney(_TenantJourney):
    """Create -> Manifested -> PickedUp -> InTransit -> OutForDelivery -> Delivered."""

    @task
    def create_shipment(self):
        self._create_shipment()

    @task
    def walk_status_path(self):
        for status in _DELIVERY_PATH:
            with self.client.put(
                f"/shipments/{self.shipment_id}/status",
                json={"status": status, "location": "Hub"},
                headers=self.headers,
                catch_response=True,
                name="PUT /shipments/{id}/status",
            ) as resp:
                if resp.status_code != 200:
                    resp.failure(f"Status {status} failed: {resp.status_code} {extract_error_detail(resp)}")
                    self.interrupt()

    @task
    def read_back(self):
        self.client.get(f"/shipments/{self.shipment_id}", headers=self.headers, name="GET /shipments/{id}")
        self.interrupt()


class WebhookRedeliveryJourney(_TenantJourney):
    """The courier redelivers each tracking update several times."""

    @task
    def create_shipment(self):
        self._create_shipment()

    @task
    def storm(self):
        for status in _DELIVERY_PATH:
            for _ in range(random.randint(2, 4)):
                with self.client.post(
                    "/shipments/tracking/webhook",
                    json={"awb_number": self.awb_number, "status": status},
                    headers=self.headers,
                    catch_response=True,
                    name="POST /shipments/tracking/webhook",
                ) as resp:
                    if resp.status_code != 200:
                        resp.failure(f"Webhook {status} failed: {resp.status_code} {extract_error_detail(resp)}")
        self.interrupt()


class ShipmentUser(HttpUser):
    wait_time = between(0.5, 2)
    tasks = {ShipmentLifecycleJourney: 3, WebhookRedeliveryJourney: 1}
