"""ShipmentDetail: the read model every shipment operation returns.

Always built from a freshly loaded aggregate, never from the copy an
operation was mutating.
"""

from datetime import datetime

from protean.utils.globals import current_domain
from pydantic import BaseModel, ConfigDict, Field

from shipping.shipment.shipment import Shipment


class AddressDetail(BaseModel):
    name: str
    phone: str | None = None
    line1: str
    line2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str | None = None


class DimensionsDetail(BaseModel):
    weight: float | None = None
    length: float | None = None
    width: float | None = None
    height: float | None = None


class ShipmentItemDetail(BaseModel):
    id: str
    order_item_id: str
    sku: str
    name: str
    quantity: int


class TrackingEntry(BaseModel):
    id: str
    status: str
    location: str | None = None
    remarks: str | None = None
    occurred_at: datetime


class ShipmentDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    order_id: str
    order_number: str | None = None
    shipment_number: str
    awb_number: str | None = None
    courier_type: str
    courier_name: str | None = None
    courier_account_id: str | None = None
    external_order_id: str | None = None
    external_shipment_id: str | None = None
    status: str
    pickup_address: AddressDetail | None = None
    delivery_address: AddressDetail | None = None
    dimensions: DimensionsDetail | None = None
    shipping_cost: float | None = None
    cod_amount: float | None = None
    is_cod: bool = False
    currency: str | None = None
    picked_up_at: datetime | None = None
    delivered_at: datetime | None = None
    expected_delivery_date: datetime | None = None
    label_url: str | None = None
    tracking_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: list[ShipmentItemDetail] = Field(default_factory=list)
    tracking_history: list[TrackingEntry] = Field(default_factory=list)


def _address(vo) -> AddressDetail | None:
    if vo is None:
        return None
    return AddressDetail(
        name=vo.name,
        phone=vo.phone,
        line1=vo.line1,
        line2=vo.line2,
        city=vo.city,
        state=vo.state,
        postal_code=vo.postal_code,
        country=vo.country,
    )


def to_detail(shipment: Shipment) -> ShipmentDetail:
    dims = shipment.dimensions
    return ShipmentDetail(
        id=str(shipment.id),
        order_id=str(shipment.order_id),
        order_number=shipment.order_number,
        shipment_number=shipment.shipment_number,
        awb_number=shipment.awb_number,
        courier_type=shipment.courier_type,
        courier_name=shipment.courier_name,
        courier_account_id=str(shipment.courier_account_id) if shipment.courier_account_id else None,
        external_order_id=shipment.external_order_id,
        external_shipment_id=shipment.external_shipment_id,
        status=shipment.status,
        pickup_address=_address(shipment.pickup_address),
        delivery_address=_address(shipment.delivery_address),
        dimensions=(
            DimensionsDetail(weight=dims.weight, length=dims.length, width=dims.width, height=dims.height)
            if dims
            else None
        ),
        shipping_cost=shipment.shipping_cost,
        cod_amount=shipment.cod_amount,
        is_cod=bool(shipment.is_cod),
        currency=shipment.currency,
        picked_up_at=shipment.picked_up_at,
        delivered_at=shipment.delivered_at,
        expected_delivery_date=shipment.expected_delivery_date,
        label_url=shipment.label_url,
        tracking_url=shipment.tracking_url,
        created_at=shipment.created_at,
        updated_at=shipment.updated_at,
        items=[
            ShipmentItemDetail(
                id=str(i.id),
                order_item_id=str(i.order_item_id),
                sku=i.sku,
                name=i.name,
                quantity=i.quantity,
            )
            for i in (shipment.items or [])
        ],
        tracking_history=[
            TrackingEntry(
                id=str(e.id),
                status=e.status,
                location=e.location,
                remarks=e.remarks,
                occurred_at=e.occurred_at,
            )
            for e in shipment.history()
        ],
    )


def get_shipment(tenant_id: str, shipment_id: str) -> ShipmentDetail:
    """Load a shipment inside the tenant and render it."""
    shipment = current_domain.repository_for(Shipment).get_for_tenant(tenant_id, shipment_id)
    return to_detail(shipment)
