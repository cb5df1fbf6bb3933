"""HTTP mapping for the shipping failure taxonomy.

Registered next to Protean's stock handlers; FastAPI picks the most specific
handler along the exception's MRO, so these override the generic mapping for
the shipping-specific subclasses.
"""

from collections.abc import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from shipping.errors import (
    BookingNotPersisted,
    ConcurrencyConflict,
    CourierAccountNotFound,
    CourierProviderError,
    InvalidShipmentState,
    InvalidTransition,
    OrderNotFound,
    OrderProjectionConflict,
    RouteNotServiceable,
    ShipmentNotFound,
)


def create_exception_handler(status_code: int, error_type: str) -> Callable:
    async def handler(_request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"error": error_type, "detail": exc.detail})

    return handler


async def _booking_not_persisted(_request: Request, exc: BookingNotPersisted) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": "BookingNotPersisted", "detail": exc.detail, "references": exc.references()},
    )


async def _order_projection_conflict(_request: Request, exc: OrderProjectionConflict) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "error": "OrderProjectionConflict",
            "detail": exc.detail,
            "shipment_status": exc.shipment_status,
            "shipment_committed": True,
        },
    )


_HANDLERS = [
    (OrderNotFound, 404, "NotFound"),
    (ShipmentNotFound, 404, "NotFound"),
    (CourierAccountNotFound, 404, "NotFound"),
    (InvalidShipmentState, 409, "InvalidState"),
    (InvalidTransition, 422, "InvalidTransition"),
    (ConcurrencyConflict, 409, "ConcurrencyConflict"),
    (RouteNotServiceable, 422, "RouteNotServiceable"),
    (CourierProviderError, 502, "ExternalProviderFailure"),
]


def register_shipping_error_handlers(app: FastAPI) -> None:
    """Install Protean's handlers plus the shipping-specific ones."""
    register_exception_handlers(app)
    for exc_class, status_code, error_type in _HANDLERS:
        app.add_exception_handler(exc_class, create_exception_handler(status_code, error_type))
    app.add_exception_handler(BookingNotPersisted, _booking_not_persisted)
    app.add_exception_handler(OrderProjectionConflict, _order_projection_conflict)
