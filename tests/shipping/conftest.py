import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

TENANT = "tenant-a"

DELIVERY_ADDRESS = {
    "name": "Asha Rao",
    "phone": "9876543210",
    "line1": "12 MG Road",
    "line2": "Indiranagar",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560038",
    "country": "India",
}

WAREHOUSE_ADDRESS = {
    "name": "ShipStream Warehouse",
    "phone": "8012345678",
    "line1": "Plot 7, Industrial Area",
    "city": "Pune",
    "state": "Maharashtra",
    "postal_code": "411019",
    "country": "India",
}

ORDER_ITEMS = [
    {"sku": "KB-MECH-001", "name": "Mechanical Keyboard", "quantity": 1, "unit_price": 3499.0},
    {"sku": "MP-XL-BLK", "name": "XL Mouse Pad", "quantity": 2, "unit_price": 499.0},
]


@pytest.fixture(scope="session")
def shipping_bed():
    from shipping.domain import shipping

    bed = DomainFixture(shipping)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(shipping_bed):
    with shipping_bed.domain_context():
        yield


@pytest.fixture()
def tenant():
    return TENANT


@pytest.fixture()
def courier():
    """The fake Shiprocket courier installed in the process-wide registry."""
    from shipping.courier import get_courier_registry
    from shipping.courier.models import CourierType

    return get_courier_registry().get(CourierType.SHIPROCKET)


@pytest.fixture()
def place_order():
    """Factory: persist an order snapshot and return it."""
    from shipping.order.order import Order

    def _place(tenant_id=TENANT, order_number="ORD-1001", **overrides):
        data = {
            "shipping_address": dict(DELIVERY_ADDRESS),
            "items_data": [dict(i) for i in ORDER_ITEMS],
            "is_cod": False,
            "total_amount": 4497.0,
        }
        data.update(overrides)
        order = Order.place(tenant_id=tenant_id, order_number=order_number, **data)
        current_domain.repository_for(Order).add(order)
        return order

    return _place


@pytest.fixture()
def add_account():
    """Factory: persist a courier account, connected unless told otherwise."""
    from shipping.courier_account.account import CourierAccount

    def _add(
        tenant_id=TENANT,
        name="Shiprocket Main",
        courier_type="Shiprocket",
        connected=True,
        is_default=True,
        priority=100,
        settings=None,
    ):
        account = CourierAccount.register(
            tenant_id=tenant_id,
            name=name,
            courier_type=courier_type,
            credentials={"api_key": "key-123"},
            settings=settings if settings is not None else {"pickup_location": "Primary"},
            is_default=is_default,
            priority=priority,
        )
        if connected:
            account.mark_connected()
        current_domain.repository_for(CourierAccount).add(account)
        return account

    return _add
