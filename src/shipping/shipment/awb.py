"""AWB assignment: bind a courier to an already booked shipment.

One-shot: a shipment that already carries an AWB is refused before the
courier is contacted. A failed attempt leaves the shipment assignable.
"""

import structlog
from protean.utils.globals import current_domain

from shipping.courier import CourierRegistry, get_courier_registry
from shipping.courier.models import CourierApiError
from shipping.courier_account.resolution import resolve_account_for_shipment
from shipping.errors import AwbAssignmentFailed, BookingNotPersisted
from shipping.shipment.detail import ShipmentDetail, to_detail
from shipping.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)


def assign_courier(
    tenant_id: str,
    shipment_id: str,
    courier_id: str | None = None,
    registry: CourierRegistry | None = None,
) -> ShipmentDetail:
    """Generate the AWB, optionally with an explicit courier (``None`` lets the courier pick).

    Raises:
        ShipmentNotFound: no such shipment in the tenant.
        AwbAlreadyAssigned: the shipment already has an AWB.
        InvalidShipmentState: shipment not in Created or not booked yet.
        AwbAssignmentFailed: the courier refused; its message is kept as is.
        BookingNotPersisted: the AWB was issued but could not be saved.
    """
    repo = current_domain.repository_for(Shipment)
    shipment = repo.get_for_tenant(tenant_id, shipment_id)
    shipment.assert_awb_assignable()

    account = resolve_account_for_shipment(
        tenant_id,
        shipment.courier_type,
        preferred_account_id=str(shipment.courier_account_id) if shipment.courier_account_id else None,
    )
    adapter = (registry or get_courier_registry()).get(shipment.courier_type)
    log = logger.bind(
        tenant_id=tenant_id,
        shipment_number=shipment.shipment_number,
        courier_type=shipment.courier_type,
        courier_id=courier_id,
    )

    try:
        result = adapter.generate_awb(account.credentials(), shipment.external_shipment_id, courier_id)
    except CourierApiError as exc:
        log.warning("AWB assignment failed", error=exc.message)
        raise AwbAssignmentFailed(exc.message, courier=shipment.courier_type) from exc
    except Exception as exc:
        log.exception("AWB assignment call failed unexpectedly")
        raise AwbAssignmentFailed(
            f"{shipment.courier_type} AWB request failed; please try again",
            courier=shipment.courier_type,
        ) from exc

    shipment.assign_awb(
        awb_number=result.awb_code,
        courier_name=result.courier_name,
        label_url=result.label_url,
        tracking_url=result.tracking_url,
    )

    try:
        repo.add(shipment)
    except Exception as exc:
        error = BookingNotPersisted(
            order_id=str(shipment.order_id),
            external_order_id=shipment.external_order_id,
            external_shipment_id=shipment.external_shipment_id,
            awb_number=result.awb_code,
            courier=shipment.courier_type,
        )
        log.critical("Assigned AWB not persisted, manual reconciliation required", **error.references())
        raise error from exc

    log.info("Courier assigned", awb_number=result.awb_code, courier_name=result.courier_name)
    return to_detail(repo.get_for_tenant(tenant_id, shipment_id))
