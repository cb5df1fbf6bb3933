"""Shipping domain API package."""

from shipping.api.errors import register_shipping_error_handlers
from shipping.api.routes import courier_account_router, order_router, shipment_router

__all__ = ["courier_account_router", "order_router", "shipment_router", "register_shipping_error_handlers"]
