"""Fake courier adapter: deterministic courier for testing and development.

Generates mock order ids, AWB numbers, labels and quotes. Every outcome the
real couriers produce (full booking, booked-without-AWB, refusal, transport
error, unserviceable route, AWB failure, bad credentials) can be selected
with ``configure`` so the application services can be exercised end to end.
"""

from uuid import uuid4

from shipping.courier.models import (
    AwbResult,
    BookingRequest,
    BookingResponse,
    CourierApiError,
    CourierCredentials,
    CourierQuote,
    CourierType,
)
from shipping.courier.port import CourierAdapter

BOOKING_MODES = ("full", "partial", "rejected", "error", "crash")

_DEFAULT_QUOTES = [
    CourierQuote(
        courier_id="cr-surface",
        courier_name="Fake Surface",
        freight_charge=62.0,
        cod_charges=20.0,
        estimated_days=6,
        rating=3.9,
        is_surface=True,
    ),
    CourierQuote(
        courier_id="cr-express",
        courier_name="Fake Express",
        freight_charge=118.0,
        cod_charges=25.0,
        estimated_days=2,
        rating=4.6,
        is_recommended=True,
    ),
    CourierQuote(
        courier_id="cr-economy",
        courier_name="Fake Economy",
        freight_charge=48.5,
        cod_charges=20.0,
        estimated_days=8,
        rating=3.2,
        is_surface=True,
    ),
]


class FakeCourier(CourierAdapter):
    """Fake courier that books successfully and assigns an AWB by default."""

    def __init__(self, courier_type: CourierType = CourierType.SHIPROCKET):
        self.courier_type = courier_type
        self.display_name = f"Fake {courier_type.value}"
        self.configure()

    def configure(
        self,
        booking: str = "full",
        failure_reason: str = "Courier unavailable",
        awb_error: str = "No couriers serviceable",
        external_order_id: str | None = None,
        awb_number: str | None = None,
        courier_name: str | None = None,
        quotes: list[CourierQuote] | None = None,
        quote_error: str | None = None,
        awb_should_succeed: bool = True,
        awb_failure_reason: str = "AWB could not be generated",
        credentials_valid: bool = True,
    ):
        """Configure the fake courier behavior for testing. Also clears recorded calls."""
        if booking not in BOOKING_MODES:
            raise ValueError(f"Unknown booking mode: {booking}")
        self.booking = booking
        self.failure_reason = failure_reason
        self.awb_error = awb_error
        self.external_order_id = external_order_id
        self.awb_number = awb_number
        self.courier_name = courier_name
        self.quotes = list(_DEFAULT_QUOTES) if quotes is None else list(quotes)
        self.quote_error = quote_error
        self.awb_should_succeed = awb_should_succeed
        self.awb_failure_reason = awb_failure_reason
        self.credentials_valid = credentials_valid
        self.calls: list[tuple[str, dict]] = []

    def calls_to(self, operation: str) -> list[dict]:
        return [kwargs for name, kwargs in self.calls if name == operation]

    def _label_url(self, shipment_ref: str) -> str:
        return f"https://fake-courier.example.com/labels/{shipment_ref}.pdf"

    def _tracking_url(self, awb: str) -> str:
        return f"https://fake-courier.example.com/track/{awb}"

    def validate_credentials(self, credentials: CourierCredentials) -> None:
        self.calls.append(("validate_credentials", {"credentials": credentials}))
        if not self.credentials_valid or not (credentials.api_key or credentials.access_token):
            raise CourierApiError("Invalid courier credentials", status_code=401)

    def create_shipment(self, credentials: CourierCredentials, request: BookingRequest) -> BookingResponse:
        self.calls.append(("create_shipment", {"credentials": credentials, "request": request}))

        if self.booking == "crash":
            raise RuntimeError("connection reset by peer")
        if self.booking == "error":
            raise CourierApiError(self.failure_reason, status_code=503)
        if self.booking == "rejected":
            return BookingResponse(error=self.failure_reason)

        external_order_id = self.external_order_id or f"FO-{uuid4().hex[:10].upper()}"
        external_shipment_id = f"FS-{uuid4().hex[:10].upper()}"

        if self.booking == "partial":
            return BookingResponse(
                external_order_id=external_order_id,
                external_shipment_id=external_shipment_id,
                is_partial_success=True,
                awb_error=self.awb_error,
            )

        awb = self.awb_number or f"FAKE{uuid4().hex[:10].upper()}"
        return BookingResponse(
            external_order_id=external_order_id,
            external_shipment_id=external_shipment_id,
            awb_number=awb,
            courier_name=self.courier_name or self.display_name,
            label_url=self._label_url(external_shipment_id),
            tracking_url=self._tracking_url(awb),
        )

    def check_serviceability(
        self,
        credentials: CourierCredentials,
        pickup_pincode: str,
        delivery_pincode: str,
        weight: float,
        is_cod: bool,
        external_order_id: str | None = None,
    ) -> list[CourierQuote]:
        self.calls.append(
            (
                "check_serviceability",
                {
                    "credentials": credentials,
                    "pickup_pincode": pickup_pincode,
                    "delivery_pincode": delivery_pincode,
                    "weight": weight,
                    "is_cod": is_cod,
                    "external_order_id": external_order_id,
                },
            )
        )
        if self.quote_error:
            raise CourierApiError(self.quote_error, status_code=502)
        if is_cod:
            return [q.model_copy() for q in self.quotes]
        return [q.model_copy(update={"cod_charges": 0.0}) for q in self.quotes]

    def generate_awb(
        self,
        credentials: CourierCredentials,
        external_shipment_id: str,
        courier_id: str | None = None,
    ) -> AwbResult:
        self.calls.append(
            (
                "generate_awb",
                {
                    "credentials": credentials,
                    "external_shipment_id": external_shipment_id,
                    "courier_id": courier_id,
                },
            )
        )
        if not self.awb_should_succeed:
            raise CourierApiError(self.awb_failure_reason, status_code=422)

        chosen = next((q for q in self.quotes if q.courier_id == courier_id), None)
        awb = self.awb_number or f"FAKE{uuid4().hex[:10].upper()}"
        return AwbResult(
            awb_code=awb,
            courier_name=chosen.courier_name if chosen else (self.courier_name or self.display_name),
            label_url=self._label_url(external_shipment_id),
            tracking_url=self._tracking_url(awb),
        )
