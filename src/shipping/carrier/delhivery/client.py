"""Delhivery HTTP client — token auth, form-wrapped JSON for manifests."""

import structlog

from shipping.carrier.delhivery.models import (
    CancelResponse,
    CreateShipmentPayload,
    CreateShipmentResponse,
    PickupPayload,
    PickupResponse,
    PincodeResponse,
    TrackingResponse,
)
from shipping.carrier.http import ProviderClient

logger = structlog.get_logger(__name__)


class DelhiveryClient(ProviderClient):
    provider_name = "Delhivery"

    @staticmethod
    def _auth(token: str) -> dict[str, str]:
        return {"Authorization": f"Token {token}"}

    async def check_pincode(self, token: str, pincode: str) -> PincodeResponse | None:
        response = await self._send(
            "check_pincode",
            "GET",
            "/c/api/pin-codes/json/",
            params={"filter_codes": pincode},
            headers=self._auth(token),
        )
        return self._parse(PincodeResponse, response) if response else None

    async def fetch_waybills(self, token: str, count: int = 1) -> list[str]:
        """Reserve waybill numbers; Delhivery answers with a bare comma-separated string."""
        response = await self._send(
            "fetch_waybills",
            "GET",
            "/waybill/api/fetch/json/",
            params={"count": count},
            headers=self._auth(token),
        )
        if response is None:
            return []
        raw = response.text.strip().strip("[]")
        return [wb.strip().strip('"') for wb in raw.split(",") if wb.strip().strip('"')]

    async def create_shipment(self, token: str, payload: CreateShipmentPayload) -> CreateShipmentResponse | None:
        response = await self._send(
            "create_shipment",
            "POST",
            "/api/cmu/create.json",
            data={"format": "json", "data": payload.model_dump_json(exclude_none=True)},
            headers=self._auth(token),
        )
        return self._parse(CreateShipmentResponse, response) if response else None

    async def track(self, token: str, waybills: list[str]) -> TrackingResponse | None:
        response = await self._send(
            "track",
            "GET",
            f"{self.settings.tracking_url}/api/v1/packages/json/",
            params={"waybill": ",".join(waybills)},
            headers=self._auth(token),
        )
        return self._parse(TrackingResponse, response) if response else None

    async def request_pickup(self, token: str, payload: PickupPayload) -> PickupResponse | None:
        response = await self._send(
            "request_pickup",
            "POST",
            "/fm/request/new/",
            json=payload.model_dump(),
            headers=self._auth(token),
        )
        return self._parse(PickupResponse, response) if response else None

    async def cancel(self, token: str, waybill: str) -> CancelResponse | None:
        response = await self._send(
            "cancel",
            "POST",
            "/api/p/edit",
            data={"waybill": waybill, "cancellation": "true"},
            headers=self._auth(token),
        )
        return self._parse(CancelResponse, response) if response else None

    async def packing_slip(self, token: str, waybill: str) -> bytes | None:
        response = await self._send(
            "packing_slip",
            "GET",
            "/api/p/packing_slip",
            params={"wbns": waybill, "pdf": "true"},
            headers=self._auth(token),
        )
        if response is None:
            return None
        logger.debug("Delhivery packing slip fetched", waybill=waybill, size=len(response.content))
        return response.content
