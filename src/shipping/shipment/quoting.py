"""Courier quoting for booked shipments that still need a courier.

Used between a partial booking and AWB assignment: the courier reports which
of its partner services can carry the parcel, and the options are ranked for
the user to pick from.
"""

import structlog
from protean.utils.globals import current_domain

from shipping import settings
from shipping.courier import CourierRegistry, get_courier_registry
from shipping.courier.models import CourierApiError, CourierQuote
from shipping.courier_account.resolution import resolve_account_for_shipment
from shipping.errors import CourierProviderError, InvalidShipmentState, RouteNotServiceable
from shipping.shipment.shipment import Shipment, ShipmentStatus

logger = structlog.get_logger(__name__)


def rank_quotes(quotes: list[CourierQuote]) -> list[CourierQuote]:
    """Recommended options first, then cheapest total charge first."""
    return sorted(quotes, key=lambda q: (not q.is_recommended, q.total_charge))


def get_available_couriers(
    tenant_id: str,
    shipment_id: str,
    registry: CourierRegistry | None = None,
) -> list[CourierQuote]:
    """Ranked courier options able to serve the shipment's route.

    Raises:
        ShipmentNotFound: no such shipment in the tenant.
        InvalidShipmentState: shipment not in Created or not booked yet.
        CourierAccountUnavailable: no usable account for its courier type.
        RouteNotServiceable: the courier returned no options.
        CourierProviderError: the quote call itself failed.
    """
    shipment = current_domain.repository_for(Shipment).get_for_tenant(tenant_id, shipment_id)
    if ShipmentStatus(shipment.status) != ShipmentStatus.CREATED:
        raise InvalidShipmentState(
            f"Couriers can only be quoted while the shipment is Created (currently {shipment.status})"
        )
    if not shipment.external_shipment_id:
        raise InvalidShipmentState("Shipment has no courier booking reference yet")

    account = resolve_account_for_shipment(
        tenant_id,
        shipment.courier_type,
        preferred_account_id=str(shipment.courier_account_id) if shipment.courier_account_id else None,
    )
    adapter = (registry or get_courier_registry()).get(shipment.courier_type)

    weight = shipment.dimensions.weight if shipment.dimensions and shipment.dimensions.weight else None
    log = logger.bind(tenant_id=tenant_id, shipment_number=shipment.shipment_number, courier_type=shipment.courier_type)

    try:
        quotes = adapter.check_serviceability(
            account.credentials(),
            pickup_pincode=shipment.pickup_address.postal_code,
            delivery_pincode=shipment.delivery_address.postal_code,
            weight=weight or settings.default_weight_kg(),
            is_cod=bool(shipment.is_cod),
            external_order_id=shipment.external_order_id,
        )
    except CourierApiError as exc:
        log.warning("Courier serviceability check failed", error=exc.message)
        raise CourierProviderError(exc.message, courier=shipment.courier_type) from exc
    except Exception as exc:
        log.exception("Courier serviceability call failed unexpectedly")
        raise CourierProviderError(
            f"{shipment.courier_type} serviceability request failed; please try again",
            courier=shipment.courier_type,
        ) from exc

    if not quotes:
        log.info("Route not serviceable")
        raise RouteNotServiceable(
            "No couriers available for this route. Please check the pickup and delivery pincodes.",
            courier=shipment.courier_type,
        )

    log.debug("Courier quotes fetched", count=len(quotes))
    return rank_quotes(quotes)
