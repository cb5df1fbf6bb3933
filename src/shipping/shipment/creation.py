"""Shipment creation: book with the courier first, then persist.

A booking cannot be taken back once the courier has issued it, while a
local row without a real booking misleads everyone downstream. So the
shipment is assembled in memory, the courier is called, and only a booking
the courier accepted is written. The courier's answer falls into exactly one
``BookingOutcome``:

* ``TOTAL_FAILURE``: no courier order reference. Nothing is written.
* ``PARTIAL``: booked, but the courier could not auto-assign an AWB. The
  shipment is written without one and the caller gets a warning.
* ``FULL``: booked with AWB, label and tracking links. Written as is.

If the write fails after the courier accepted the booking, ``BookingNotPersisted``
is raised carrying the courier's references for manual reconciliation.
"""

from enum import Enum
from uuid import uuid4

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain
from pydantic import BaseModel

from shipping import settings
from shipping.courier import CourierRegistry, get_courier_registry
from shipping.courier.models import (
    BookingItem,
    BookingRequest,
    BookingResponse,
    ContactAddress,
    CourierApiError,
    CourierType,
)
from shipping.courier_account.resolution import resolve_booking_account
from shipping.errors import (
    BookingInProgress,
    BookingNotPersisted,
    ConcurrencyConflict,
    CourierBookingFailed,
    DuplicateActiveShipment,
    InvalidShipmentState,
)
from shipping.order.order import Order
from shipping.shipment.detail import ShipmentDetail, to_detail
from shipping.shipment.shipment import Shipment
from shipping.utils.concurrency import StaleWriteError, retry_on_conflict

logger = structlog.get_logger(__name__)


class BookingOutcome(Enum):
    TOTAL_FAILURE = "TotalFailure"
    PARTIAL = "Partial"
    FULL = "Full"


class ShipmentBookingResult(BaseModel):
    shipment: ShipmentDetail
    outcome: BookingOutcome
    warning: str | None = None


def classify_booking(response: BookingResponse) -> BookingOutcome:
    if not response.external_order_id:
        return BookingOutcome.TOTAL_FAILURE
    if response.awb_number:
        return BookingOutcome.FULL
    return BookingOutcome.PARTIAL


def _address_snapshot(address) -> dict:
    return {
        "name": address.name,
        "phone": address.phone,
        "line1": address.line1,
        "line2": address.line2,
        "city": address.city,
        "state": address.state,
        "postal_code": address.postal_code,
        "country": address.country,
    }


def _contact(snapshot: dict) -> ContactAddress:
    return ContactAddress(
        name=snapshot["name"],
        phone=snapshot.get("phone"),
        address=", ".join(part for part in (snapshot["line1"], snapshot.get("line2")) if part),
        city=snapshot["city"],
        state=snapshot["state"],
        pincode=snapshot["postal_code"],
        country=snapshot.get("country") or "India",
    )


def _item_snapshots(order: Order, requested: list[dict] | None) -> list[dict]:
    """Shipment lines: the requested subset of order lines, or all of them."""
    if not requested:
        return [
            {"order_item_id": str(i.id), "sku": i.sku, "name": i.name, "quantity": i.quantity}
            for i in (order.items or [])
        ]

    snapshots = []
    for line in requested:
        order_item = order.find_item(line["order_item_id"])
        if order_item is None:
            raise ValidationError({"items": [f"Order item {line['order_item_id']} is not part of this order"]})
        quantity = line.get("quantity") or order_item.quantity
        if quantity > order_item.quantity:
            raise ValidationError(
                {"items": [f"Cannot ship {quantity} of {order_item.sku}; order has {order_item.quantity}"]}
            )
        snapshots.append(
            {"order_item_id": str(order_item.id), "sku": order_item.sku, "name": order_item.name, "quantity": quantity}
        )
    return snapshots


def create_shipment(
    tenant_id: str,
    order_id: str,
    courier_account_id: str | None = None,
    courier_type: str | None = None,
    pickup_address: dict | None = None,
    dimensions: dict | None = None,
    items: list[dict] | None = None,
    service_code: str | None = None,
    registry: CourierRegistry | None = None,
) -> ShipmentBookingResult:
    """Book a shipment for an order with the selected courier.

    Courier selection: an explicit account (which also supplies the pickup
    location settings) is preferred, then the best account of ``courier_type``,
    then the tenant's default account.

    Only one booking runs per order at a time: the order is claimed before
    the active-shipment check and released once the outcome is known. A
    booking the courier accepted but that could not be saved keeps its claim
    until it expires, so nothing is booked twice before reconciliation.

    Raises:
        OrderNotFound, CourierAccountNotFound: lookups failed inside the tenant.
        InvalidShipmentState: order not shippable or account unusable.
        BookingInProgress: another booking for the order is under way.
        DuplicateActiveShipment: the order already has an active shipment.
        CourierBookingFailed: the courier did not book anything.
        BookingNotPersisted: the courier booked but the write failed.
    """
    if courier_type and courier_type not in {ct.value for ct in CourierType}:
        raise ValidationError({"courier_type": [f"Unknown courier type: {courier_type}"]})

    order_repo = current_domain.repository_for(Order)
    order = order_repo.get_for_tenant(tenant_id, order_id)
    if not order.is_shippable:
        raise InvalidShipmentState(f"Cannot create shipment for order in {order.status} status")

    claim = uuid4().hex
    if not order_repo.claim_for_booking(str(order.id), claim, settings.booking_claim_ttl()):
        logger.warning("Shipment creation rejected, order is being booked", tenant_id=tenant_id, order_id=order_id)
        raise BookingInProgress(order_id)

    keep_claim = False
    try:
        return _book(
            tenant_id,
            order_repo.get(order.id),
            courier_account_id=courier_account_id,
            courier_type=courier_type,
            pickup_address=pickup_address,
            dimensions=dimensions,
            items=items,
            service_code=service_code,
            registry=registry,
        )
    except BookingNotPersisted:
        keep_claim = True
        raise
    finally:
        if not keep_claim:
            release_booking_claim(str(order.id), claim)


def release_booking_claim(order_id: str, claim: str) -> None:
    """Give the order back for booking; an unreleased claim lapses after its TTL."""
    repo = current_domain.repository_for(Order)

    def attempt() -> None:
        if repo.get(order_id).booking_claim != claim:
            return
        if not repo.release_booking_claim(order_id, claim):
            raise StaleWriteError(order_id=order_id)

    try:
        retry_on_conflict(
            attempt,
            description=f"release booking claim on order {order_id}",
            **settings.retry_policy(),
        )
    except ConcurrencyConflict:
        logger.warning("Booking claim not released, it lapses on its own", order_id=order_id, claim=claim)


def _book(
    tenant_id: str,
    order: Order,
    courier_account_id: str | None,
    courier_type: str | None,
    pickup_address: dict | None,
    dimensions: dict | None,
    items: list[dict] | None,
    service_code: str | None,
    registry: CourierRegistry | None,
) -> ShipmentBookingResult:
    order_id = str(order.id)
    shipment_repo = current_domain.repository_for(Shipment)
    existing = shipment_repo.active_for_order(tenant_id, order_id)
    if existing is not None:
        logger.warning(
            "Shipment creation rejected, order already has an active shipment",
            tenant_id=tenant_id,
            order_id=order_id,
            shipment_number=existing.shipment_number,
        )
        raise DuplicateActiveShipment(order_id, existing.shipment_number)

    account = resolve_booking_account(tenant_id, courier_account_id, courier_type)
    if courier_type and account.courier_type != courier_type:
        raise InvalidShipmentState(
            f"Courier account {account.name} is a {account.courier_type} account, not {courier_type}"
        )
    adapter = (registry or get_courier_registry()).get(account.courier_type)
    account_settings = account.settings_dict()

    # Snapshots: later edits to the order or account never reach the shipment
    delivery = _address_snapshot(order.shipping_address)
    pickup = dict(pickup_address or account_settings.get("pickup_address") or delivery)
    lines = _item_snapshots(order, items)

    cod_amount = order.total_amount if order.is_cod else None
    shipment = Shipment.prepare(
        tenant_id=tenant_id,
        order_id=str(order.id),
        order_number=order.order_number,
        courier_type=account.courier_type,
        courier_account_id=str(account.id),
        pickup_address=pickup,
        delivery_address=delivery,
        items_data=lines,
        dimensions=dimensions,
        is_cod=bool(order.is_cod),
        cod_amount=cod_amount,
        declared_value=order.total_amount,
        currency=order.currency,
        service_code=service_code,
    )

    dims = dimensions or {}
    default_side = settings.default_package_cm()
    unit_prices = {str(i.id): i.unit_price for i in (order.items or [])}
    request = BookingRequest(
        order_id=str(order.id),
        order_number=order.order_number,
        pickup=_contact(pickup),
        delivery=_contact(delivery),
        weight=dims.get("weight") or settings.default_weight_kg(),
        length=dims.get("length") or default_side,
        width=dims.get("width") or default_side,
        height=dims.get("height") or default_side,
        is_cod=bool(order.is_cod),
        cod_amount=cod_amount or 0.0,
        declared_value=order.total_amount or 0.0,
        service_code=service_code,
        pickup_location=account_settings.get("pickup_location"),
        items=[
            BookingItem(
                sku=line["sku"],
                name=line["name"],
                qty=line["quantity"],
                unit_price=unit_prices.get(line["order_item_id"]) or 0.0,
            )
            for line in lines
        ],
    )

    log = logger.bind(
        tenant_id=tenant_id,
        order_id=str(order.id),
        shipment_number=shipment.shipment_number,
        courier_type=account.courier_type,
    )

    try:
        response = adapter.create_shipment(account.credentials(), request)
    except CourierApiError as exc:
        log.warning("Courier rejected booking", error=exc.message)
        raise CourierBookingFailed(exc.message, courier=account.courier_type) from exc
    except Exception as exc:
        log.exception("Courier booking call failed unexpectedly")
        raise CourierBookingFailed(
            f"{account.courier_type} booking request failed; please try again",
            courier=account.courier_type,
        ) from exc

    outcome = classify_booking(response)
    if outcome is BookingOutcome.TOTAL_FAILURE:
        message = response.error or f"{account.courier_type} did not return a booking reference"
        log.warning("Courier booking failed", error=message)
        raise CourierBookingFailed(message, courier=account.courier_type)

    shipment.record_booking(
        external_order_id=response.external_order_id,
        external_shipment_id=response.external_shipment_id,
        awb_number=response.awb_number if outcome is BookingOutcome.FULL else None,
        courier_name=response.courier_name,
        label_url=response.label_url,
        tracking_url=response.tracking_url,
    )

    try:
        shipment_repo.add(shipment)
    except Exception as exc:
        error = BookingNotPersisted(
            order_id=str(order.id),
            external_order_id=response.external_order_id,
            external_shipment_id=response.external_shipment_id,
            awb_number=response.awb_number,
            courier=account.courier_type,
        )
        log.critical("Courier booking not persisted, manual reconciliation required", **error.references())
        raise error from exc

    warning = None
    if outcome is BookingOutcome.PARTIAL:
        reason = response.awb_error or "the courier did not assign one"
        warning = f"Shipment booked but no AWB was generated ({reason}). Assign a courier to complete it."
        log.warning("Shipment booked without AWB", external_order_id=response.external_order_id, awb_error=reason)
    else:
        log.info("Shipment booked", external_order_id=response.external_order_id, awb_number=response.awb_number)

    stored = shipment_repo.get(shipment.id)
    return ShipmentBookingResult(shipment=to_detail(stored), outcome=outcome, warning=warning)
