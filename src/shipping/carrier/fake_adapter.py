"""Fake courier adapter — deterministic courier for testing and development.

Generates mock AWB numbers, labels, rates and tracking histories without any
network calls. Behaviour is configurable so tests can exercise business
failures, unserviceable routes and transport faults.
"""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from shipping.carrier import rates
from shipping.carrier.contract import (
    CourierCredentials,
    CourierRate,
    CourierResult,
    CourierType,
    PickupRequest,
    PickupResponse,
    RateRequest,
    ShipmentRequest,
    ShipmentResponse,
    ShipmentStatus,
    TrackingEvent,
    TrackingResponse,
)
from shipping.carrier.port import CourierAdapter

STANDARD = rates.ServiceTariff("STD", "Fake Standard", Decimal("40"), Decimal("20"), 5, is_express=False)
EXPRESS = rates.ServiceTariff("EXP", "Fake Express", Decimal("60"), Decimal("30"), 2, is_express=True)

_STATUS_BY_NAME = {status.value.upper(): status for status in ShipmentStatus}


class FakeCourier(CourierAdapter):
    """Fake courier that always succeeds by default."""

    courier_type = CourierType.FAKE

    def __init__(self) -> None:
        self.should_succeed = True
        self.failure_reason = "Courier unavailable"
        self.transport_error: str | None = None
        self.unserviceable_postal_codes: set[str] = set()
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Courier unavailable",
        unserviceable_postal_codes: set[str] | None = None,
        transport_error: str | None = None,
    ) -> None:
        """Configure the fake courier behaviour for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.unserviceable_postal_codes = set(unserviceable_postal_codes or ())
        self.transport_error = transport_error

    def _record(self, method: str, **kwargs) -> CourierResult | None:
        self.calls.append({"method": method, **kwargs})
        if self.transport_error:
            return CourierResult.transport_failure(self.transport_error)
        if not self.should_succeed:
            return CourierResult.failure(self.failure_reason)
        return None

    def map_status(self, status_code: str | None) -> ShipmentStatus | None:
        if not status_code:
            return None
        return _STATUS_BY_NAME.get(status_code.strip().upper())

    def tracking_url(self, awb_number: str) -> str:
        return f"https://fake-courier.example.com/track/{awb_number}"

    async def validate_credentials(self, credentials: CourierCredentials) -> CourierResult[None]:
        failed = self._record("validate_credentials")
        if failed:
            return failed
        if not credentials.api_key:
            return CourierResult.failure("API key is required", code="missing_credentials")
        return CourierResult.success()

    async def get_rates(self, credentials: CourierCredentials, request: RateRequest) -> CourierResult[list[CourierRate]]:
        failed = self._record("get_rates", request=request)
        if failed:
            return failed
        for postal_code in (request.pickup_postal_code, request.delivery_postal_code):
            if postal_code in self.unserviceable_postal_codes:
                return CourierResult.failure(f"Pincode {postal_code} is not serviceable", code="unserviceable")

        cod_fee = rates.cod_charge(request.cod_amount, Decimal("30"), Decimal("1.5")) if request.is_cod else Decimal("0")
        quotes = [rates.quote(tariff, request.weight_kg, cod_fee) for tariff in (STANDARD, EXPRESS)]
        return CourierResult.success(rates.sort_by_total(quotes))

    async def create_shipment(
        self, credentials: CourierCredentials, request: ShipmentRequest
    ) -> CourierResult[ShipmentResponse]:
        failed = self._record("create_shipment", order_reference=request.order_reference)
        if failed:
            return failed
        if request.delivery.postal_code in self.unserviceable_postal_codes:
            return CourierResult.failure(f"Pincode {request.delivery.postal_code} is not serviceable")

        awb_number = f"FAKE-{uuid4().hex[:12].upper()}"
        shipment_id = f"ship-{uuid4().hex[:8]}"
        tariff = EXPRESS if request.is_express else STANDARD
        return CourierResult.success(
            ShipmentResponse(
                awb_number=awb_number,
                courier_name=self.courier_name,
                provider_shipment_id=shipment_id,
                tracking_url=self.tracking_url(awb_number),
                label_url=f"https://fake-courier.example.com/labels/{shipment_id}.pdf",
                freight_charge=rates.freight_charge(tariff.base_charge, tariff.per_kg, request.weight_kg),
                expected_delivery=rates.expected_delivery(tariff.transit_days),
            )
        )

    async def get_tracking(self, credentials: CourierCredentials, awb_number: str) -> CourierResult[TrackingResponse]:
        failed = self._record("get_tracking", awb_number=awb_number)
        if failed:
            return failed

        now = datetime.now(UTC)
        # Oldest first, as most providers report scans
        events = (
            TrackingEvent(now - timedelta(days=1), "PickedUp", "Warehouse, Mumbai", "Picked up", "PickedUp"),
            TrackingEvent(now - timedelta(hours=2), "InTransit", "Hub, Bhiwandi", "Arrived at hub", "InTransit"),
        )
        return CourierResult.success(
            TrackingResponse(
                awb_number=awb_number,
                current_status="InTransit",
                current_status_code="InTransit",
                current_location="Hub, Bhiwandi",
                expected_delivery=now + timedelta(days=2),
                events=events,
            )
        )

    async def cancel_shipment(self, credentials: CourierCredentials, awb_number: str) -> CourierResult[None]:
        failed = self._record("cancel_shipment", awb_number=awb_number)
        return failed or CourierResult.success()

    async def get_label(self, credentials: CourierCredentials, awb_number: str) -> CourierResult[bytes]:
        failed = self._record("get_label", awb_number=awb_number)
        return failed or CourierResult.success(f"%PDF-1.4 fake label {awb_number}".encode())

    async def schedule_pickup(
        self, credentials: CourierCredentials, request: PickupRequest
    ) -> CourierResult[PickupResponse]:
        failed = self._record("schedule_pickup", awb_numbers=request.awb_numbers)
        if failed:
            return failed
        return CourierResult.success(
            PickupResponse(
                pickup_id=f"PU-{uuid4().hex[:8].upper()}",
                scheduled_date=request.pickup_date or date.today(),
                shipment_count=len(request.awb_numbers),
                time_slot=request.time_slot or "10:00 - 18:00",
            )
        )
