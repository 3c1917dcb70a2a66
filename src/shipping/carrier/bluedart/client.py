"""BlueDart HTTP client — credentials travel inside every JSON envelope."""

import base64
from typing import Any

from shipping.carrier.bluedart.models import (
    CancelResponse,
    PickupRequestData,
    PickupResponse,
    PincodeResponse,
    PrintResponse,
    Profile,
    TrackingResponse,
    WaybillRequestData,
    WaybillResponse,
)
from shipping.carrier.http import ProviderClient

_API = "/Ver1.10/ShippingAPI"
WAYBILL_PATH = f"{_API}/WayBill/WayBillGeneration.svc/rest/GenerateWayBill"
CANCEL_PATH = f"{_API}/WayBill/WayBillGeneration.svc/rest/CancelWaybill"
PINCODE_PATH = f"{_API}/Finder/ServiceFinderQuery.svc/rest/GetServicesforPincode"
TRACKING_PATH = f"{_API}/Tracking/TrackingQuery.svc/rest/GetShipmentTracking"
PICKUP_PATH = f"{_API}/Pickup/PickupRegistration.svc/rest/RegisterPickup"
LABEL_PATH = f"{_API}/Manifest/Manifest.svc/rest/PrintAWB"


def _dump(model) -> dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)


class BlueDartClient(ProviderClient):
    provider_name = "BlueDart"

    async def generate_waybill(self, profile: Profile, request: WaybillRequestData) -> WaybillResponse | None:
        response = await self._send(
            "generate_waybill",
            "POST",
            WAYBILL_PATH,
            json={"Request": _dump(request), "Profile": _dump(profile)},
        )
        return self._parse(WaybillResponse, response) if response else None

    async def services_for_pincode(self, profile: Profile, pincode: str) -> PincodeResponse | None:
        response = await self._send(
            "services_for_pincode",
            "POST",
            PINCODE_PATH,
            json={"pinCode": pincode, "Profile": _dump(profile)},
        )
        return self._parse(PincodeResponse, response) if response else None

    async def track(self, profile: Profile, awb_number: str) -> TrackingResponse | None:
        response = await self._send(
            "track",
            "POST",
            TRACKING_PATH,
            json={"AWBNo": awb_number, "Profile": _dump(profile)},
        )
        return self._parse(TrackingResponse, response) if response else None

    async def register_pickup(self, profile: Profile, request: PickupRequestData) -> PickupResponse | None:
        response = await self._send(
            "register_pickup",
            "POST",
            PICKUP_PATH,
            json={"Request": _dump(request), "Profile": _dump(profile)},
        )
        return self._parse(PickupResponse, response) if response else None

    async def cancel_waybill(
        self, profile: Profile, awb_number: str, reason: str = "Customer Request"
    ) -> CancelResponse | None:
        response = await self._send(
            "cancel_waybill",
            "POST",
            CANCEL_PATH,
            json={
                "Request": {"AWBNo": awb_number, "CancellationReason": reason},
                "Profile": _dump(profile),
            },
        )
        return self._parse(CancelResponse, response) if response else None

    async def print_awb(self, profile: Profile, awb_number: str) -> bytes | None:
        """Fetch the AWB label; BlueDart returns the PDF base64-encoded in JSON."""
        response = await self._send(
            "print_awb",
            "POST",
            LABEL_PATH,
            json={
                "Request": {"AWBNo": awb_number, "PrintFormat": "PDF"},
                "Profile": _dump(profile),
            },
        )
        if response is None:
            return None
        printed = self._parse(PrintResponse, response)
        if printed.result is None or printed.result.is_error or not printed.result.content:
            return None
        return base64.b64decode(printed.result.content, validate=True)
