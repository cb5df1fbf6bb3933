"""Pydantic API schemas for the Shipping domain.

These are the external API contracts, separate from domain commands and
service signatures. Shipment responses reuse ``ShipmentDetail``.
"""

from pydantic import BaseModel, Field

from shipping.courier.models import CourierQuote
from shipping.shipment.creation import BookingOutcome
from shipping.shipment.detail import ShipmentDetail


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class AddressRequest(BaseModel):
    name: str
    phone: str | None = None
    line1: str
    line2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str = "India"


class OrderItemRequest(BaseModel):
    sku: str
    name: str
    quantity: int = Field(ge=1)
    unit_price: float = 0.0


class RegisterOrderRequest(BaseModel):
    order_number: str
    status: str = "Confirmed"
    customer_name: str | None = None
    customer_phone: str | None = None
    shipping_address: AddressRequest
    items: list[OrderItemRequest]
    is_cod: bool = False
    total_amount: float = 0.0
    currency: str = "INR"


class RegisterCourierAccountRequest(BaseModel):
    name: str
    courier_type: str
    api_key: str | None = None
    api_secret: str | None = None
    access_token: str | None = None
    account_id: str | None = None
    channel_id: str | None = None
    settings: dict = Field(default_factory=dict)
    is_default: bool = False
    priority: int = 100
    supports_cod: bool = True


class DimensionsRequest(BaseModel):
    weight: float | None = Field(default=None, gt=0)
    length: float | None = Field(default=None, gt=0)
    width: float | None = Field(default=None, gt=0)
    height: float | None = Field(default=None, gt=0)


class ShipmentItemRequest(BaseModel):
    order_item_id: str
    quantity: int | None = Field(default=None, ge=1)


class CreateShipmentRequest(BaseModel):
    order_id: str
    courier_account_id: str | None = None
    courier_type: str | None = None
    pickup_address: AddressRequest | None = None
    dimensions: DimensionsRequest | None = None
    items: list[ShipmentItemRequest] | None = None
    service_code: str | None = None


class AssignCourierRequest(BaseModel):
    courier_id: str | None = None


class UpdateStatusRequest(BaseModel):
    status: str
    location: str | None = None
    remarks: str | None = None


class CancelShipmentRequest(BaseModel):
    reason: str | None = None


class TrackingWebhookRequest(BaseModel):
    awb_number: str
    status: str
    location: str | None = None
    remarks: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class IdResponse(BaseModel):
    id: str


class ConnectionResponse(BaseModel):
    account_id: str
    connected: bool


class CreateShipmentResponse(BaseModel):
    shipment: ShipmentDetail
    outcome: BookingOutcome
    warning: str | None = None


class CourierQuotesResponse(BaseModel):
    shipment_id: str
    couriers: list[CourierQuote]
