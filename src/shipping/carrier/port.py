"""Courier port — abstract interface for courier provider integrations.

All courier adapters implement this interface. Callers program against the
port; adapters are selected per courier account through the registry in
``shipping.carrier``.
"""

import functools
from abc import ABC, abstractmethod

import httpx
import structlog

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
    TrackingResponse,
)

logger = structlog.get_logger(__name__)


def courier_operation(operation: str):
    """Convert transport faults raised inside an adapter method into failure results.

    ``httpx`` errors (timeouts included) and malformed provider bodies never
    cross the adapter boundary. ``asyncio.CancelledError`` is not an
    ``Exception`` and passes through untouched, so cancelling the caller
    cancels the in-flight request.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except httpx.TimeoutException as exc:
                logger.error(
                    "Courier request timed out",
                    courier=self.courier_type.value,
                    operation=operation,
                    error=str(exc),
                )
                return CourierResult.transport_failure(f"{self.courier_type.value} request timed out during {operation}")
            except (httpx.HTTPError, ValueError) as exc:
                logger.error(
                    "Courier request failed",
                    courier=self.courier_type.value,
                    operation=operation,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                return CourierResult.transport_failure(str(exc) or type(exc).__name__)

        return wrapper

    return decorator


class CourierAdapter(ABC):
    """Abstract interface for courier adapters."""

    courier_type: CourierType

    @property
    def courier_name(self) -> str:
        return self.courier_type.value

    @abstractmethod
    async def validate_credentials(self, credentials: CourierCredentials) -> CourierResult[None]:
        """Confirm the credentials are live with a read-only provider call."""
        ...

    @abstractmethod
    async def get_rates(self, credentials: CourierCredentials, request: RateRequest) -> CourierResult[list[CourierRate]]:
        """Quote every service available on the route, cheapest first.

        Unserviceable origin/destination or unsupported COD is a failure
        result naming the cause, never a partial list.
        """
        ...

    @abstractmethod
    async def create_shipment(
        self, credentials: CourierCredentials, request: ShipmentRequest
    ) -> CourierResult[ShipmentResponse]:
        """Book a shipment. A provider answer without an AWB is a failure."""
        ...

    @abstractmethod
    async def get_tracking(self, credentials: CourierCredentials, awb_number: str) -> CourierResult[TrackingResponse]:
        """Fetch the provider's scan history for one AWB."""
        ...

    @abstractmethod
    async def cancel_shipment(self, credentials: CourierCredentials, awb_number: str) -> CourierResult[None]:
        ...

    @abstractmethod
    async def get_label(self, credentials: CourierCredentials, awb_number: str) -> CourierResult[bytes]:
        ...

    @abstractmethod
    async def schedule_pickup(
        self, credentials: CourierCredentials, request: PickupRequest
    ) -> CourierResult[PickupResponse]:
        ...

    @abstractmethod
    def map_status(self, status_code: str | None) -> ShipmentStatus | None:
        """Map a provider status code onto the canonical status, or ``None`` when unknown."""
        ...

    def map_tracking_status(self, tracking: TrackingResponse) -> ShipmentStatus | None:
        """Canonical status for a polled tracking response."""
        return self.map_status(tracking.current_status_code)

    @abstractmethod
    def tracking_url(self, awb_number: str) -> str:
        ...
