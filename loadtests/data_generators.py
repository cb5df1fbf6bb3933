"""Faker-based data generators for Locust load test scenarios.

Payloads match the field names of the shipping API's Pydantic request
schemas and use Indian addresses so pincodes look like real routes.
"""

import random
import uuid

from faker import Faker

fake = Faker("en_IN")


def address_data() -> dict:
    return {
        "name": fake.name()[:200],
        "phone": f"9{random.randint(100000000, 999999999)}",
        "line1": fake.street_address()[:255],
        "city": fake.city()[:100],
        "state": fake.state()[:100],
        "postal_code": fake.postcode()[:20],
        "country": "India",
    }


def order_data() -> dict:
    items = [
        {
            "sku": f"SKU-{uuid.uuid4().hex[:6].upper()}",
            "name": fake.catch_phrase()[:100],
            "quantity": random.randint(1, 3),
            "unit_price": round(random.uniform(99, 2999), 2),
        }
        for _ in range(random.randint(1, 4))
    ]
    return {
        "order_number": f"ORD-LT-{uuid.uuid4().hex[:8].upper()}",
        "shipping_address": address_data(),
        "items": items,
        "is_cod": random.random() < 0.4,
        "total_amount": round(sum(i["unit_price"] * i["quantity"] for i in items), 2),
    }


def courier_account_data() -> dict:
    return {
        "name": f"Shiprocket LT {uuid.uuid4().hex[:4]}",
        "courier_type": "Shiprocket",
        "api_key": f"key-{uuid.uuid4().hex}",
        "settings": {"pickup_location": "Primary", "pickup_address": address_data()},
        "is_default": True,
    }


def dimensions_data() -> dict:
    return {
        "weight": round(random.uniform(0.2, 5.0), 2),
        "length": random.randint(10, 40),
        "width": random.randint(10, 30),
        "height": random.randint(5, 20),
    }
