"""Status transition engine: the only write path for shipment status.

Transitions come from users and from courier tracking updates, often racing
each other. Each attempt re-reads the shipment, validates the edge against
the state machine, and writes only if the stored shipment is unchanged since
it was read. Lost races are retried with backoff. After the shipment moves,
its progress is projected onto the owning order the same way.
"""

import time
from collections.abc import Callable

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from shipping import settings
from shipping.errors import ConcurrencyConflict, OrderNotFound, OrderProjectionConflict
from shipping.order.order import Order, OrderStatus
from shipping.shipment.detail import ShipmentDetail, to_detail
from shipping.shipment.shipment import Shipment, ShipmentStatus
from shipping.utils.concurrency import StaleWriteError, retry_on_conflict

logger = structlog.get_logger(__name__)

_ORDER_PROJECTION = {
    ShipmentStatus.PICKED_UP: OrderStatus.SHIPPED,
    ShipmentStatus.IN_TRANSIT: OrderStatus.SHIPPED,
    ShipmentStatus.REACHED_DESTINATION: OrderStatus.SHIPPED,
    ShipmentStatus.OUT_FOR_DELIVERY: OrderStatus.SHIPPED,
    ShipmentStatus.DELIVERED: OrderStatus.DELIVERED,
    ShipmentStatus.RTO_INITIATED: OrderStatus.RTO,
    ShipmentStatus.RTO_IN_TRANSIT: OrderStatus.RTO,
    ShipmentStatus.RTO_DELIVERED: OrderStatus.RTO,
}

DEFAULT_CANCEL_REMARKS = "Cancelled by user"


def parse_status(value: ShipmentStatus | str) -> ShipmentStatus:
    try:
        return ShipmentStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown shipment status: {value}"]}) from None


def order_status_for(status: ShipmentStatus) -> OrderStatus | None:
    """Order status a shipment status projects to, if it projects at all."""
    return _ORDER_PROJECTION.get(status)


def project_onto_order(
    tenant_id: str,
    order_id: str,
    shipment_status: ShipmentStatus,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Move the order to the status implied by ``shipment_status``.

    Idempotent: an order already there is left alone. Returns whether the
    order was written.
    """
    target = order_status_for(shipment_status)
    if target is None:
        return False

    repo = current_domain.repository_for(Order)

    def attempt() -> bool:
        order = repo.get_for_tenant(tenant_id, order_id)
        if order.status == target.value:
            return False
        if not repo.compare_and_set_status(str(order.id), order.status, target.value):
            raise StaleWriteError(order_id=order_id, expected=order.status, target=target.value)
        return True

    try:
        changed = retry_on_conflict(
            attempt,
            description=f"order {order_id} status {target.value}",
            sleep=sleep,
            **settings.retry_policy(),
        )
    except OrderNotFound:
        logger.warning(
            "Owning order missing, shipment status not projected",
            tenant_id=tenant_id,
            order_id=order_id,
            shipment_status=shipment_status.value,
        )
        return False

    if changed:
        logger.info("Order status projected from shipment", order_id=order_id, status=target.value)
    return changed


def update_shipment_status(
    tenant_id: str,
    shipment_id: str,
    status: ShipmentStatus | str,
    location: str | None = None,
    remarks: str | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ShipmentDetail:
    """Apply a status change, append its tracking event, and cascade to the order.

    Re-applying the current status is accepted and changes nothing, because
    courier webhooks redeliver.

    Raises:
        ShipmentNotFound: no such shipment in the tenant.
        InvalidTransition: the edge is not in the state machine.
        ConcurrencyConflict: other writers kept winning on the shipment until
            retries ran out. Nothing was written.
        OrderProjectionConflict: the shipment transition was saved, but the
            order update kept losing its race. Resending the same status
            retries only the order update.
    """
    target = parse_status(status)
    repo = current_domain.repository_for(Shipment)

    def attempt() -> tuple[Shipment, bool]:
        shipment = repo.get_for_tenant(tenant_id, shipment_id)
        previous = shipment.status
        if not shipment.transition_to(target, location, remarks):
            return shipment, False
        if not repo.save_transition(shipment, previous):
            raise StaleWriteError(shipment_id=shipment_id, expected=previous, target=target.value)
        return shipment, True

    shipment, changed = retry_on_conflict(
        attempt,
        description=f"shipment {shipment_id} status {target.value}",
        sleep=sleep,
        **settings.retry_policy(),
    )

    if changed:
        logger.info(
            "Shipment status changed",
            tenant_id=tenant_id,
            shipment_number=shipment.shipment_number,
            status=target.value,
            location=location,
        )
    else:
        logger.info(
            "Shipment already in requested status, nothing to do",
            tenant_id=tenant_id,
            shipment_number=shipment.shipment_number,
            status=target.value,
        )

    # Runs on redelivery too, so an earlier cascade that gave up gets another chance
    try:
        project_onto_order(tenant_id, str(shipment.order_id), target, sleep=sleep)
    except ConcurrencyConflict as exc:
        raise OrderProjectionConflict(
            shipment_id=shipment_id,
            shipment_status=target.value,
            order_id=str(shipment.order_id),
            attempts=exc.attempts,
        ) from exc

    return to_detail(repo.get_for_tenant(tenant_id, shipment_id))


def cancel_shipment(
    tenant_id: str,
    shipment_id: str,
    reason: str | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ShipmentDetail:
    """Cancel a shipment that has not been picked up yet."""
    return update_shipment_status(
        tenant_id,
        shipment_id,
        ShipmentStatus.CANCELLED,
        remarks=reason or DEFAULT_CANCEL_REMARKS,
        sleep=sleep,
    )


def record_tracking_update(
    tenant_id: str,
    awb_number: str,
    status: ShipmentStatus | str,
    location: str | None = None,
    remarks: str | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ShipmentDetail:
    """Apply a courier tracking update addressed by AWB."""
    shipment = current_domain.repository_for(Shipment).find_by_awb(tenant_id, awb_number)
    return update_shipment_status(tenant_id, str(shipment.id), status, location, remarks, sleep=sleep)
