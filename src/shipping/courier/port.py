"""Courier port: abstract interface for courier integrations.

Every courier (Shiprocket, Delhivery, ...) is one implementation of this
interface. Application services program against the port and receive the
adapter from a ``CourierRegistry``; credentials are always passed in, never
read from ambient state.
"""

from abc import ABC, abstractmethod

from shipping.courier.models import (
    AwbResult,
    BookingRequest,
    BookingResponse,
    CourierCredentials,
    CourierQuote,
    CourierType,
)


class CourierAdapter(ABC):
    """Abstract interface for courier adapters."""

    courier_type: CourierType
    display_name: str = ""

    @abstractmethod
    def validate_credentials(self, credentials: CourierCredentials) -> None:
        """Check that the credentials authenticate against the courier.

        Raises:
            CourierApiError: if the courier rejects them.
        """
        ...

    @abstractmethod
    def create_shipment(self, credentials: CourierCredentials, request: BookingRequest) -> BookingResponse:
        """Book a shipment with the courier.

        A booking the courier refused is either raised as ``CourierApiError``
        or returned with ``external_order_id`` unset and ``error`` filled in.
        When the order was booked but automatic AWB assignment failed, the
        response has ``is_partial_success`` set and ``awb_error`` explains why.
        """
        ...

    @abstractmethod
    def check_serviceability(
        self,
        credentials: CourierCredentials,
        pickup_pincode: str,
        delivery_pincode: str,
        weight: float,
        is_cod: bool,
        external_order_id: str | None = None,
    ) -> list[CourierQuote]:
        """Return the courier options able to serve the route, unsorted."""
        ...

    @abstractmethod
    def generate_awb(
        self,
        credentials: CourierCredentials,
        external_shipment_id: str,
        courier_id: str | None = None,
    ) -> AwbResult:
        """Bind a courier to a booked shipment and obtain its AWB.

        ``courier_id`` of ``None`` lets the courier auto-select.

        Raises:
            CourierApiError: carrying the courier's own message.
        """
        ...
