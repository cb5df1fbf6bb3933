"""Failure taxonomy of the shipping context.

Lookup and state failures reuse Protean's exception hierarchy so the stock
FastAPI handlers understand them. Courier failures and the post-booking
persistence failure are plain exceptions: they describe something that went
wrong outside this process and must never be mistaken for bad input.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError

from shipping.utils.concurrency import ConcurrencyConflict, StaleWriteError

__all__ = [
    "AwbAlreadyAssigned",
    "AwbAssignmentFailed",
    "BookingInProgress",
    "BookingNotPersisted",
    "ConcurrencyConflict",
    "CourierAccountNotFound",
    "CourierAccountUnavailable",
    "CourierBookingFailed",
    "CourierProviderError",
    "DuplicateActiveShipment",
    "InvalidShipmentState",
    "InvalidTransition",
    "OrderNotFound",
    "OrderProjectionConflict",
    "RouteNotServiceable",
    "ShipmentNotFound",
    "StaleWriteError",
]


# ---------------------------------------------------------------------------
# NotFound
# ---------------------------------------------------------------------------
class _NotFound(ObjectNotFoundError):
    resource = "Record"

    def __init__(self, identifier: str):
        self.identifier = identifier
        self.detail = f"{self.resource} {identifier} not found"
        super().__init__(self.detail)


class OrderNotFound(_NotFound):
    resource = "Order"


class ShipmentNotFound(_NotFound):
    resource = "Shipment"


class CourierAccountNotFound(_NotFound):
    resource = "Courier account"


# ---------------------------------------------------------------------------
# InvalidState
# ---------------------------------------------------------------------------
class InvalidShipmentState(InvalidOperationError):
    """The order, shipment or account is not eligible for the requested operation."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class DuplicateActiveShipment(InvalidShipmentState):
    def __init__(self, order_id: str, shipment_number: str):
        self.order_id = order_id
        self.shipment_number = shipment_number
        super().__init__(f"Order {order_id} already has an active shipment ({shipment_number})")


class BookingInProgress(InvalidShipmentState):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} is already being booked; try again shortly")


class CourierAccountUnavailable(InvalidShipmentState):
    pass


class AwbAlreadyAssigned(InvalidShipmentState):
    def __init__(self, shipment_number: str, awb_number: str):
        self.awb_number = awb_number
        super().__init__(f"Shipment {shipment_number} already has AWB {awb_number}")


class InvalidTransition(ValidationError):
    """The requested status is not reachable from the current one."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        self.detail = f"Cannot go from {current} to {requested}"
        super().__init__({"status": [self.detail]})


# ---------------------------------------------------------------------------
# ExternalProviderFailure
# ---------------------------------------------------------------------------
class CourierProviderError(Exception):
    """The courier refused or failed a call; nothing was persisted."""

    def __init__(self, detail: str, courier: str | None = None):
        super().__init__(detail)
        self.detail = detail
        self.courier = courier


class CourierBookingFailed(CourierProviderError):
    pass


class RouteNotServiceable(CourierProviderError):
    pass


class AwbAssignmentFailed(CourierProviderError):
    pass


# ---------------------------------------------------------------------------
# PersistenceFailureAfterExternalSuccess
# ---------------------------------------------------------------------------
class BookingNotPersisted(Exception):
    """The courier holds a real booking that could not be recorded locally.

    Carries every external reference needed to reconcile by hand. This error
    is never swallowed.
    """

    def __init__(
        self,
        order_id: str,
        external_order_id: str | None,
        external_shipment_id: str | None = None,
        awb_number: str | None = None,
        courier: str | None = None,
    ):
        self.order_id = order_id
        self.external_order_id = external_order_id
        self.external_shipment_id = external_shipment_id
        self.awb_number = awb_number
        self.courier = courier
        self.detail = (
            f"Courier booking succeeded (external order {external_order_id}"
            f"{f', AWB {awb_number}' if awb_number else ''}) but could not be saved; "
            "reconcile manually before retrying"
        )
        super().__init__(self.detail)

    def references(self) -> dict:
        return {
            "order_id": self.order_id,
            "external_order_id": self.external_order_id,
            "external_shipment_id": self.external_shipment_id,
            "awb_number": self.awb_number,
            "courier": self.courier,
        }


# ---------------------------------------------------------------------------
# ConcurrencyConflict
# ---------------------------------------------------------------------------
class OrderProjectionConflict(ConcurrencyConflict):
    """The shipment transition is saved; only the order update lost its races.

    Callers must not replay the shipment edge as if nothing happened. Sending
    the same status again is a no-op for the shipment and retries the order.
    """

    def __init__(self, shipment_id: str, shipment_status: str, order_id: str, attempts: int):
        self.shipment_id = shipment_id
        self.shipment_status = shipment_status
        self.order_id = order_id
        super().__init__(
            f"order {order_id} status",
            attempts,
            detail=(
                f"Shipment {shipment_id} is now {shipment_status}, but order {order_id} could not be "
                f"updated after {attempts} attempts; resend the same status to update the order"
            ),
        )
