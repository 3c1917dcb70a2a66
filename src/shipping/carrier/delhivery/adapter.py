"""Delhivery adapter — canonical courier contract over the Delhivery API."""

from datetime import UTC, datetime
from decimal import Decimal

import structlog

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
    newest_first,
)
from shipping.carrier.delhivery import statuses
from shipping.carrier.delhivery.client import DelhiveryClient
from shipping.carrier.delhivery.models import (
    CreateShipmentPayload,
    PickupLocation,
    PickupPayload,
    PostalCode,
    ShipmentPayload,
    TrackedShipment,
)
from shipping.carrier.parsing import parse_date, parse_datetime
from shipping.carrier.port import CourierAdapter, courier_operation
from shipping.settings import provider_settings

logger = structlog.get_logger(__name__)

TOKEN_REQUIRED = "API token is required"
VALIDATION_PINCODE = "110001"
DEFAULT_PICKUP_SLOT = "10:00 - 18:00"

EXPRESS = rates.ServiceTariff("E", "Delhivery Express", Decimal("50"), Decimal("25"), 3, is_express=True)
SURFACE = rates.ServiceTariff("S", "Delhivery Surface", Decimal("35"), Decimal("15"), 7, is_express=False)
COD_MINIMUM = Decimal("50")
COD_PERCENT = Decimal("2")


class DelhiveryAdapter(CourierAdapter):
    courier_type = CourierType.DELHIVERY

    def __init__(self, client: DelhiveryClient | None = None) -> None:
        self._client = client or DelhiveryClient(provider_settings(CourierType.DELHIVERY))

    # -------------------------------------------------------------------
    # Status mapping
    # -------------------------------------------------------------------
    def map_status(self, status_code: str | None) -> ShipmentStatus | None:
        return statuses.map_status(status_code)

    def map_tracking_status(self, tracking: TrackingResponse) -> ShipmentStatus | None:
        return statuses.map_tracking(tracking.current_status_code, tracking.current_status)

    def tracking_url(self, awb_number: str) -> str:
        return f"https://www.delhivery.com/track/package/{awb_number}"

    # -------------------------------------------------------------------
    # Contract
    # -------------------------------------------------------------------
    @courier_operation("validate_credentials")
    async def validate_credentials(self, credentials: CourierCredentials) -> CourierResult[None]:
        if not credentials.api_key:
            return CourierResult.failure(TOKEN_REQUIRED, code="missing_credentials")
        response = await self._client.check_pincode(credentials.api_key, VALIDATION_PINCODE)
        if response is None:
            return CourierResult.failure("Delhivery rejected the API token", code="invalid_credentials")
        return CourierResult.success()

    @courier_operation("get_rates")
    async def get_rates(self, credentials: CourierCredentials, request: RateRequest) -> CourierResult[list[CourierRate]]:
        token = credentials.api_key
        if not token:
            return CourierResult.failure(TOKEN_REQUIRED, code="missing_credentials")

        pickup = await self._client.check_pincode(token, request.pickup_postal_code)
        if pickup is None:
            return CourierResult.failure(f"Could not check serviceability of pincode {request.pickup_postal_code}")
        origin = pickup.first
        if origin is None or _is_no(origin.pickup):
            return CourierResult.failure(
                f"Pickup pincode {request.pickup_postal_code} is not serviceable", code="unserviceable_origin"
            )

        delivery = await self._client.check_pincode(token, request.delivery_postal_code)
        if delivery is None:
            return CourierResult.failure(f"Could not check serviceability of pincode {request.delivery_postal_code}")
        destination = delivery.first
        if destination is None:
            return CourierResult.failure(
                f"Delivery pincode {request.delivery_postal_code} is not serviceable",
                code="unserviceable_destination",
            )
        if request.is_cod and not _supports_cod(destination):
            return CourierResult.failure("COD is not available for this route", code="cod_unavailable")

        cod_fee = (
            rates.cod_charge(request.cod_amount, COD_MINIMUM, COD_PERCENT) if request.is_cod else Decimal("0")
        )
        quotes = [rates.quote(tariff, request.weight_kg, cod_fee) for tariff in (EXPRESS, SURFACE)]
        return CourierResult.success(rates.sort_by_total(quotes))

    @courier_operation("create_shipment")
    async def create_shipment(
        self, credentials: CourierCredentials, request: ShipmentRequest
    ) -> CourierResult[ShipmentResponse]:
        token = credentials.api_key
        if not token:
            return CourierResult.failure(TOKEN_REQUIRED, code="missing_credentials")

        waybills = await self._client.fetch_waybills(token, 1)
        payload = self._build_manifest(
            request,
            waybill=waybills[0] if waybills else None,
            pickup_location=credentials.setting("pickup_location", "Primary"),
        )
        response = await self._client.create_shipment(token, payload)
        if response is None:
            return CourierResult.failure("Failed to create shipment in Delhivery")
        if not response.success:
            return CourierResult.failure(
                response.rmk or _package_remarks(response) or "Failed to create shipment in Delhivery",
                code="provider_rejected",
            )

        package = response.packages[0] if response.packages else None
        if package is None or not package.waybill:
            return CourierResult.failure("No waybill received from Delhivery", code="missing_awb")

        logger.info(
            "Delhivery shipment created",
            order_reference=request.order_reference,
            awb_number=package.waybill,
        )
        return CourierResult.success(
            ShipmentResponse(
                awb_number=package.waybill,
                courier_name=self.courier_name,
                provider_shipment_id=package.refnum,
                tracking_url=self.tracking_url(package.waybill),
            )
        )

    @courier_operation("get_tracking")
    async def get_tracking(self, credentials: CourierCredentials, awb_number: str) -> CourierResult[TrackingResponse]:
        token = credentials.api_key
        if not token:
            return CourierResult.failure(TOKEN_REQUIRED, code="missing_credentials")

        response = await self._client.track(token, [awb_number])
        if response is None:
            return CourierResult.failure("Failed to fetch tracking from Delhivery")
        if not response.shipment_data:
            return CourierResult.failure(f"No tracking information found for AWB {awb_number}", code="no_tracking")

        tracking = _to_tracking(response.shipment_data[0].shipment, awb_number)
        if tracking is None:
            return CourierResult.failure(f"No tracking information found for AWB {awb_number}", code="no_tracking")
        return CourierResult.success(tracking)

    @courier_operation("cancel_shipment")
    async def cancel_shipment(self, credentials: CourierCredentials, awb_number: str) -> CourierResult[None]:
        token = credentials.api_key
        if not token:
            return CourierResult.failure(TOKEN_REQUIRED, code="missing_credentials")

        response = await self._client.cancel(token, awb_number)
        if response is None:
            return CourierResult.failure("Failed to cancel shipment in Delhivery")
        if not response.status:
            return CourierResult.failure(
                response.remark or response.remarks or f"Delhivery could not cancel AWB {awb_number}",
                code="provider_rejected",
            )
        return CourierResult.success()

    @courier_operation("get_label")
    async def get_label(self, credentials: CourierCredentials, awb_number: str) -> CourierResult[bytes]:
        token = credentials.api_key
        if not token:
            return CourierResult.failure(TOKEN_REQUIRED, code="missing_credentials")

        content = await self._client.packing_slip(token, awb_number)
        if not content:
            return CourierResult.failure("Failed to fetch label from Delhivery")
        return CourierResult.success(content)

    @courier_operation("schedule_pickup")
    async def schedule_pickup(
        self, credentials: CourierCredentials, request: PickupRequest
    ) -> CourierResult[PickupResponse]:
        token = credentials.api_key
        if not token:
            return CourierResult.failure(TOKEN_REQUIRED, code="missing_credentials")

        payload = PickupPayload(
            pickup_time=request.time_slot or DEFAULT_PICKUP_SLOT,
            pickup_date=request.pickup_date.isoformat(),
            pickup_location=request.warehouse_id or credentials.setting("pickup_location", "Primary"),
            expected_package_count=len(request.awb_numbers),
        )

        response = await self._client.request_pickup(token, payload)
        if response is None:
            return CourierResult.failure("Failed to schedule pickup with Delhivery")
        if response.pickup_id is None or response.success is False:
            return CourierResult.failure(
                response.message or response.error or "Delhivery did not confirm the pickup",
                code="provider_rejected",
            )
        return CourierResult.success(
            PickupResponse(
                pickup_id=str(response.pickup_id),
                scheduled_date=parse_date(response.pickup_date) or request.pickup_date,
                shipment_count=len(request.awb_numbers),
                time_slot=response.pickup_time or payload.pickup_time,
            )
        )

    # -------------------------------------------------------------------
    # Translation helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _build_manifest(request: ShipmentRequest, waybill: str | None, pickup_location: str) -> CreateShipmentPayload:
        delivery, pickup = request.delivery, request.pickup
        cod_amount = (request.cod_amount or request.declared_value) if request.is_cod else Decimal("0")
        shipment = ShipmentPayload(
            name=delivery.name,
            add=delivery.address,
            pin=delivery.postal_code,
            city=delivery.city,
            state=delivery.state,
            phone=delivery.phone,
            order=request.reference_number,
            payment_mode="COD" if request.is_cod else "Prepaid",
            cod_amount=float(cod_amount),
            total_amount=float(request.declared_value),
            order_date=datetime.now(UTC).strftime("%Y-%m-%d"),
            products_desc=request.describe_products(),
            quantity=request.item_count,
            waybill=waybill,
            weight=float(request.weight_kg * 1000),
            shipment_length=_optional_float(request.length_cm),
            shipment_width=_optional_float(request.width_cm),
            shipment_height=_optional_float(request.height_cm),
            return_pin=pickup.postal_code,
            return_city=pickup.city,
            return_state=pickup.state,
            return_add=pickup.address,
            return_phone=pickup.phone,
            return_name=pickup.name,
        )
        return CreateShipmentPayload(
            shipments=[shipment],
            pickup_location=PickupLocation(
                name=pickup_location,
                add=pickup.address,
                city=pickup.city,
                pin_code=pickup.postal_code,
                phone=pickup.phone,
            ),
        )


def _is_no(flag: str | None) -> bool:
    return (flag or "").strip().upper() == "N"


def _supports_cod(postal_code: PostalCode) -> bool:
    return (postal_code.cod or "").strip().upper() == "Y"


def _optional_float(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _package_remarks(response) -> str | None:
    for package in response.packages:
        if isinstance(package.remarks, list) and package.remarks:
            return "; ".join(package.remarks)
        if isinstance(package.remarks, str) and package.remarks:
            return package.remarks
    return None


def _to_tracking(shipment: TrackedShipment, awb_number: str) -> TrackingResponse | None:
    events = [
        TrackingEvent(
            timestamp=parse_datetime(scan.detail.scan_date_time),
            status=scan.detail.scan or "",
            location=scan.detail.scanned_location,
            remarks=scan.detail.instructions,
            status_code=scan.detail.scan_type,
        )
        for scan in shipment.scans
    ]
    block = shipment.status
    if not events and block is None:
        return None
    if not events:
        events.append(
            TrackingEvent(
                timestamp=parse_datetime(block.status_date_time),
                status=block.status or "",
                location=block.status_location,
                remarks=block.instructions,
                status_code=block.status_type,
            )
        )

    latest = newest_first(events)[0]
    current_status = (block.status if block else None) or latest.status
    status_code = (block.status_type if block else None) or latest.status_code
    delivered = (status_code or "").upper() == "DL"
    return TrackingResponse(
        awb_number=shipment.awb or awb_number,
        current_status=current_status,
        current_status_code=status_code,
        current_location=(block.status_location if block else None) or latest.location,
        expected_delivery=parse_datetime(shipment.expected_delivery_date or shipment.promised_delivery_date),
        delivered_at=parse_datetime(block.status_date_time) if delivered and block else None,
        delivered_to=block.received_by if delivered and block else None,
        events=tuple(events),
    )
