"""FastAPI routes for the Shipping domain.

The tenant comes from the ``X-Tenant-ID`` header and is passed explicitly
into every command and service call.

Handlers that reach a courier or the retrying status engine block, so they
are plain functions and FastAPI runs them in its threadpool.
"""

import json

from fastapi import APIRouter, Header
from protean.utils.globals import current_domain

from shipping.api.schemas import (
    AssignCourierRequest,
    CancelShipmentRequest,
    ConnectionResponse,
    CourierQuotesResponse,
    CreateShipmentRequest,
    CreateShipmentResponse,
    IdResponse,
    RegisterCourierAccountRequest,
    RegisterOrderRequest,
    TrackingWebhookRequest,
    UpdateStatusRequest,
)
from shipping.courier_account.connection import VerifyCourierConnection
from shipping.courier_account.registration import RegisterCourierAccount
from shipping.order.registration import RegisterOrder
from shipping.shipment.awb import assign_courier
from shipping.shipment.creation import create_shipment
from shipping.shipment.detail import ShipmentDetail, get_shipment
from shipping.shipment.quoting import get_available_couriers
from shipping.shipment.status import cancel_shipment, record_tracking_update, update_shipment_status

# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=IdResponse)
async def register_order(body: RegisterOrderRequest, x_tenant_id: str = Header()) -> IdResponse:
    """Hand an order over to shipping."""
    command = RegisterOrder(
        tenant_id=x_tenant_id,
        order_number=body.order_number,
        status=body.status,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        items=json.dumps([item.model_dump() for item in body.items]),
        is_cod=body.is_cod,
        total_amount=body.total_amount,
        currency=body.currency,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return IdResponse(id=order_id)


# ---------------------------------------------------------------------------
# Courier Account Router
# ---------------------------------------------------------------------------
courier_account_router = APIRouter(prefix="/courier-accounts", tags=["courier-accounts"])


@courier_account_router.post("", status_code=201, response_model=IdResponse)
async def register_courier_account(body: RegisterCourierAccountRequest, x_tenant_id: str = Header()) -> IdResponse:
    """Register courier credentials for the tenant."""
    command = RegisterCourierAccount(
        tenant_id=x_tenant_id,
        name=body.name,
        courier_type=body.courier_type,
        api_key=body.api_key,
        api_secret=body.api_secret,
        access_token=body.access_token,
        account_id=body.account_id,
        channel_id=body.channel_id,
        settings=json.dumps(body.settings),
        is_default=body.is_default,
        priority=body.priority,
        supports_cod=body.supports_cod,
    )
    account_id = current_domain.process(command, asynchronous=False)
    return IdResponse(id=account_id)


@courier_account_router.post("/{account_id}/verify", response_model=ConnectionResponse)
def verify_courier_account(account_id: str, x_tenant_id: str = Header()) -> ConnectionResponse:
    """Check the stored credentials against the courier."""
    command = VerifyCourierConnection(tenant_id=x_tenant_id, account_id=account_id)
    connected = current_domain.process(command, asynchronous=False)
    return ConnectionResponse(account_id=account_id, connected=bool(connected))


# ---------------------------------------------------------------------------
# Shipment Router
# ---------------------------------------------------------------------------
shipment_router = APIRouter(prefix="/shipments", tags=["shipments"])


@shipment_router.post("", status_code=201, response_model=CreateShipmentResponse)
def book_shipment(body: CreateShipmentRequest, x_tenant_id: str = Header()) -> CreateShipmentResponse:
    """Book a shipment with the courier and record it."""
    result = create_shipment(
        x_tenant_id,
        body.order_id,
        courier_account_id=body.courier_account_id,
        courier_type=body.courier_type,
        pickup_address=body.pickup_address.model_dump() if body.pickup_address else None,
        dimensions=body.dimensions.model_dump(exclude_none=True) if body.dimensions else None,
        items=[item.model_dump() for item in body.items] if body.items else None,
        service_code=body.service_code,
    )
    return CreateShipmentResponse(shipment=result.shipment, outcome=result.outcome, warning=result.warning)


@shipment_router.post("/tracking/webhook", response_model=ShipmentDetail)
def tracking_webhook(body: TrackingWebhookRequest, x_tenant_id: str = Header()) -> ShipmentDetail:
    """Apply a courier tracking update. Redelivered updates are accepted and ignored."""
    return record_tracking_update(
        x_tenant_id,
        body.awb_number,
        body.status,
        location=body.location,
        remarks=body.remarks,
    )


@shipment_router.get("/{shipment_id}", response_model=ShipmentDetail)
async def read_shipment(shipment_id: str, x_tenant_id: str = Header()) -> ShipmentDetail:
    return get_shipment(x_tenant_id, shipment_id)


@shipment_router.get("/{shipment_id}/couriers", response_model=CourierQuotesResponse)
def available_couriers(shipment_id: str, x_tenant_id: str = Header()) -> CourierQuotesResponse:
    """Ranked courier options for a booked shipment awaiting AWB assignment."""
    quotes = get_available_couriers(x_tenant_id, shipment_id)
    return CourierQuotesResponse(shipment_id=shipment_id, couriers=quotes)


@shipment_router.post("/{shipment_id}/assign-courier", response_model=ShipmentDetail)
def assign(shipment_id: str, body: AssignCourierRequest, x_tenant_id: str = Header()) -> ShipmentDetail:
    """Generate the AWB, with the chosen courier or letting the courier pick."""
    return assign_courier(x_tenant_id, shipment_id, courier_id=body.courier_id)


@shipment_router.put("/{shipment_id}/status", response_model=ShipmentDetail)
def update_status(shipment_id: str, body: UpdateStatusRequest, x_tenant_id: str = Header()) -> ShipmentDetail:
    return update_shipment_status(
        x_tenant_id,
        shipment_id,
        body.status,
        location=body.location,
        remarks=body.remarks,
    )


@shipment_router.put("/{shipment_id}/cancel", response_model=ShipmentDetail)
def cancel(shipment_id: str, body: CancelShipmentRequest, x_tenant_id: str = Header()) -> ShipmentDetail:
    return cancel_shipment(x_tenant_id, shipment_id, reason=body.reason)
