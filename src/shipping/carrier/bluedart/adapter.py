"""BlueDart adapter — canonical courier contract over the BlueDart API."""

from datetime import UTC, datetime
from decimal import Decimal

import structlog

from shipping.carrier import rates
from shipping.carrier.bluedart import statuses
from shipping.carrier.bluedart.client import BlueDartClient
from shipping.carrier.bluedart.models import (
    Commodity,
    Consignee,
    Dimension,
    Dimensions,
    PickupRequestData,
    PincodeResult,
    Profile,
    Services,
    Shipper,
    TrackingDetail,
    WaybillRequestData,
)
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
from shipping.carrier.parsing import combine_date_time, parse_datetime
from shipping.carrier.port import CourierAdapter, courier_operation
from shipping.settings import provider_settings

logger = structlog.get_logger(__name__)

LOGIN_REQUIRED = "Login ID and License Key are required"
VALIDATION_PINCODE = "110001"

AIR_EXPRESS = rates.ServiceTariff("A", "BlueDart Air Express", Decimal("65"), Decimal("35"), 2, is_express=True)
APEX_SURFACE = rates.ServiceTariff("D", "BlueDart Apex Surface", Decimal("45"), Decimal("20"), 5, is_express=False)
COD_MINIMUM = Decimal("60")
COD_PERCENT = Decimal("2.5")


def _profile(credentials: CourierCredentials) -> Profile | None:
    if not credentials.api_key or not credentials.api_secret:
        return None
    return Profile(login_id=credentials.api_key, licence_key=credentials.api_secret)


class BlueDartAdapter(CourierAdapter):
    courier_type = CourierType.BLUEDART

    def __init__(self, client: BlueDartClient | None = None) -> None:
        self._client = client or BlueDartClient(provider_settings(CourierType.BLUEDART))

    def map_status(self, status_code: str | None) -> ShipmentStatus | None:
        return statuses.map_status(status_code)

    def tracking_url(self, awb_number: str) -> str:
        return f"https://www.bluedart.com/tracking/{awb_number}"

    @courier_operation("validate_credentials")
    async def validate_credentials(self, credentials: CourierCredentials) -> CourierResult[None]:
        profile = _profile(credentials)
        if profile is None:
            return CourierResult.failure(LOGIN_REQUIRED, code="missing_credentials")

        response = await self._client.services_for_pincode(profile, VALIDATION_PINCODE)
        if response is None or response.result is None or response.result.is_error:
            message = response.result.first_error if response and response.result else None
            return CourierResult.failure(message or "Invalid credentials", code="invalid_credentials")
        return CourierResult.success()

    @courier_operation("get_rates")
    async def get_rates(self, credentials: CourierCredentials, request: RateRequest) -> CourierResult[list[CourierRate]]:
        profile = _profile(credentials)
        if profile is None:
            return CourierResult.failure(LOGIN_REQUIRED, code="missing_credentials")

        pickup = await self._client.services_for_pincode(profile, request.pickup_postal_code)
        if pickup is None:
            return CourierResult.failure(f"Could not check serviceability of pincode {request.pickup_postal_code}")
        if pickup.result is None or pickup.result.is_error:
            return CourierResult.failure(
                f"Pickup pincode {request.pickup_postal_code} is not serviceable", code="unserviceable_origin"
            )

        response = await self._client.services_for_pincode(profile, request.delivery_postal_code)
        if response is None:
            return CourierResult.failure(f"Could not check serviceability of pincode {request.delivery_postal_code}")
        destination = response.result
        if destination is None or destination.is_error:
            return CourierResult.failure(
                f"Pincode {request.delivery_postal_code} is not serviceable", code="unserviceable_destination"
            )
        if request.is_cod and not _supports_cod(destination):
            return CourierResult.failure("COD is not available for this route", code="cod_unavailable")

        cod_fee = (
            rates.cod_charge(request.cod_amount, COD_MINIMUM, COD_PERCENT) if request.is_cod else Decimal("0")
        )
        services = destination.available_service_codes or []
        quotes = []
        if not services or AIR_EXPRESS.service_code in services:
            quotes.append(rates.quote(AIR_EXPRESS, request.weight_kg, cod_fee))
        if not services or APEX_SURFACE.service_code in services or _is_yes(destination.apex_inbound):
            quotes.append(rates.quote(APEX_SURFACE, request.weight_kg, cod_fee))
        if not quotes:
            return CourierResult.failure("No services available for this route", code="no_services")
        return CourierResult.success(rates.sort_by_total(quotes))

    @courier_operation("create_shipment")
    async def create_shipment(
        self, credentials: CourierCredentials, request: ShipmentRequest
    ) -> CourierResult[ShipmentResponse]:
        profile = _profile(credentials)
        if profile is None:
            return CourierResult.failure(LOGIN_REQUIRED, code="missing_credentials")

        response = await self._client.generate_waybill(profile, self._build_waybill(credentials, request))
        if response is None:
            return CourierResult.failure("Failed to create shipment in BlueDart")
        result = response.result
        if result is None or result.is_error:
            message = result.first_error if result else None
            return CourierResult.failure(message or "Failed to create shipment", code="provider_rejected")
        if not result.awb_no:
            return CourierResult.failure("No AWB number received from BlueDart", code="missing_awb")

        logger.info(
            "BlueDart waybill generated",
            order_reference=request.order_reference,
            awb_number=result.awb_no,
            destination_area=result.destination_area,
        )
        return CourierResult.success(
            ShipmentResponse(
                awb_number=result.awb_no,
                courier_name=self.courier_name,
                provider_shipment_id=result.awb_no,
                tracking_url=self.tracking_url(result.awb_no),
            )
        )

    @courier_operation("get_tracking")
    async def get_tracking(self, credentials: CourierCredentials, awb_number: str) -> CourierResult[TrackingResponse]:
        profile = _profile(credentials)
        if profile is None:
            return CourierResult.failure(LOGIN_REQUIRED, code="missing_credentials")

        response = await self._client.track(profile, awb_number)
        if response is None:
            return CourierResult.failure("Failed to fetch tracking from BlueDart")
        result = response.result
        if result is None or result.is_error or not result.details:
            message = result.first_error if result else None
            return CourierResult.failure(message or f"No tracking information found for AWB {awb_number}", code="no_tracking")
        return CourierResult.success(_to_tracking(result.details, awb_number))

    @courier_operation("cancel_shipment")
    async def cancel_shipment(self, credentials: CourierCredentials, awb_number: str) -> CourierResult[None]:
        profile = _profile(credentials)
        if profile is None:
            return CourierResult.failure(LOGIN_REQUIRED, code="missing_credentials")

        response = await self._client.cancel_waybill(profile, awb_number)
        if response is None:
            return CourierResult.failure("Failed to cancel shipment in BlueDart")
        if response.result is None or response.result.is_error:
            message = response.result.first_error if response.result else None
            return CourierResult.failure(message or "Cancellation failed", code="provider_rejected")
        return CourierResult.success()

    @courier_operation("get_label")
    async def get_label(self, credentials: CourierCredentials, awb_number: str) -> CourierResult[bytes]:
        profile = _profile(credentials)
        if profile is None:
            return CourierResult.failure(LOGIN_REQUIRED, code="missing_credentials")

        content = await self._client.print_awb(profile, awb_number)
        if not content:
            return CourierResult.failure("Failed to fetch label from BlueDart")
        return CourierResult.success(content)

    @courier_operation("schedule_pickup")
    async def schedule_pickup(
        self, credentials: CourierCredentials, request: PickupRequest
    ) -> CourierResult[PickupResponse]:
        profile = _profile(credentials)
        if profile is None:
            return CourierResult.failure(LOGIN_REQUIRED, code="missing_credentials")

        pieces = len(request.awb_numbers)
        payload = PickupRequestData(
            area_code=credentials.setting("area_code"),
            customer_code=credentials.setting("customer_code"),
            customer_name=credentials.setting("pickup_name"),
            customer_address1=credentials.setting("pickup_address"),
            customer_pincode=credentials.setting("pickup_pincode"),
            customer_mobile=credentials.setting("pickup_mobile"),
            pickup_date=request.pickup_date.strftime("%d-%b-%Y"),
            pickup_time=request.time_slot,
            number_of_pieces=pieces,
            actual_weight=0.5 * pieces,
        )
        response = await self._client.register_pickup(profile, payload)
        if response is None:
            return CourierResult.failure("Failed to schedule pickup with BlueDart")
        result = response.result
        if result is None or result.is_error or result.registration_number is None:
            message = result.first_error if result else None
            return CourierResult.failure(message or "Pickup scheduling failed", code="provider_rejected")
        return CourierResult.success(
            PickupResponse(
                pickup_id=str(result.registration_number),
                scheduled_date=request.pickup_date,
                shipment_count=pieces,
                time_slot=request.time_slot,
            )
        )

    # -------------------------------------------------------------------
    # Translation helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _build_waybill(credentials: CourierCredentials, request: ShipmentRequest) -> WaybillRequestData:
        delivery, pickup = request.delivery, request.pickup
        if request.is_express:
            product_code = AIR_EXPRESS.service_code
        else:
            product_code = request.service_code or AIR_EXPRESS.service_code

        dimensions = None
        if request.length_cm and request.width_cm and request.height_cm:
            dimensions = Dimensions(
                dimension=[
                    Dimension(
                        length=float(request.length_cm),
                        breadth=float(request.width_cm),
                        height=float(request.height_cm),
                    )
                ]
            )

        cod_amount = (request.cod_amount or request.declared_value) if request.is_cod else Decimal("0")
        return WaybillRequestData(
            consignee=Consignee(
                name=delivery.name,
                address1=delivery.address,
                pincode=delivery.postal_code,
                mobile=delivery.phone,
                email=delivery.email,
            ),
            shipper=Shipper(
                customer_name=pickup.name,
                customer_address1=pickup.address,
                customer_pincode=pickup.postal_code,
                customer_mobile=pickup.phone,
                customer_code=credentials.setting("customer_code"),
                origin_area=credentials.setting("origin_area"),
            ),
            services=Services(
                actual_weight=float(request.weight_kg),
                collectable_amount=float(cod_amount),
                commodity=Commodity(detail1=request.describe_products()[:30]),
                credit_reference_no=request.reference_number,
                declared_value=float(request.declared_value),
                dimensions=dimensions,
                invoice_no=request.reference_number,
                item_count=request.item_count,
                pickup_date=datetime.now(UTC).strftime("%Y-%m-%d"),
                product_code=product_code,
            ),
        )


def _is_yes(flag: str | None) -> bool:
    return (flag or "").strip().upper() in ("Y", "YES")


def _is_no(flag: str | None) -> bool:
    return (flag or "").strip().upper() in ("N", "NO")


def _supports_cod(destination: PincodeResult) -> bool:
    """COD is unsupported only when BlueDart explicitly says so for both networks."""
    flags = (destination.etail_cod_air_inbound, destination.etail_cod_ground_inbound)
    reported = [flag for flag in flags if flag]
    return not reported or not all(_is_no(flag) for flag in reported)


def _to_tracking(details: list[TrackingDetail], awb_number: str) -> TrackingResponse:
    events = [
        TrackingEvent(
            timestamp=combine_date_time(detail.status_date, detail.status_time),
            status=detail.status or "",
            location=detail.status_location,
            remarks=detail.instructions or detail.remarks,
            status_code=detail.status_type,
        )
        for detail in details
    ]
    latest_event = newest_first(events)[0]
    latest = details[events.index(latest_event)]
    delivered = (latest.status_type or "").upper() == "DL"
    return TrackingResponse(
        awb_number=latest.awb_number or awb_number,
        current_status=latest.status or "Unknown",
        current_status_code=latest.status_type,
        current_location=latest.status_location,
        expected_delivery=parse_datetime(latest.expected_delivery_date),
        delivered_at=latest_event.timestamp if delivered else None,
        delivered_to=latest.received_by if delivered else None,
        events=tuple(events),
    )
