"""Courier wire contracts shared by every adapter.

These pydantic models are the only shapes that cross the adapter boundary.
Carrier-specific payloads stay inside each adapter.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, computed_field


class CourierType(Enum):
    SHIPROCKET = "Shiprocket"
    DELHIVERY = "Delhivery"
    BLUEDART = "BlueDart"
    DTDC = "DTDC"


class CourierApiError(Exception):
    """Raised by an adapter when the courier rejects or fails a call."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CourierCredentials(BaseModel):
    api_key: str | None = None
    api_secret: str | None = None
    access_token: str | None = None
    account_id: str | None = None
    channel_id: str | None = None
    settings: dict[str, Any] = Field(default_factory=dict)


class ContactAddress(BaseModel):
    name: str
    phone: str | None = None
    address: str
    city: str
    state: str
    pincode: str
    country: str = "India"
    email: str | None = None


class BookingItem(BaseModel):
    sku: str
    name: str
    qty: int
    unit_price: float = 0.0


class BookingRequest(BaseModel):
    order_id: str
    order_number: str
    pickup: ContactAddress
    delivery: ContactAddress
    weight: float
    length: float
    width: float
    height: float
    is_cod: bool = False
    cod_amount: float = 0.0
    declared_value: float = 0.0
    service_code: str | None = None
    pickup_location: str | None = None
    items: list[BookingItem] = Field(default_factory=list)


class BookingResponse(BaseModel):
    external_order_id: str | None = None
    external_shipment_id: str | None = None
    awb_number: str | None = None
    courier_name: str | None = None
    label_url: str | None = None
    tracking_url: str | None = None
    is_partial_success: bool = False
    awb_error: str | None = None
    error: str | None = None


class CourierQuote(BaseModel):
    courier_id: str
    courier_name: str
    freight_charge: float = 0.0
    cod_charges: float = 0.0
    estimated_days: int | None = None
    rating: float | None = None
    is_surface: bool = False
    is_recommended: bool = False

    @computed_field
    @property
    def total_charge(self) -> float:
        return round(self.freight_charge + self.cod_charges, 2)


class AwbResult(BaseModel):
    awb_code: str
    courier_name: str | None = None
    label_url: str | None = None
    tracking_url: str | None = None
