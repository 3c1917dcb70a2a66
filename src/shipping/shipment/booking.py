"""Booking application service — the seam between order handling and couriers.

Callers pass a tenant's courier account and a canonical request; the
service resolves the adapter, talks to the courier and, on success, records
the outcome through the Shipment aggregate. Courier failures come back as
``CourierResult`` failures so callers can decide whether to retry.
"""

import asyncio
import json
import weakref
from dataclasses import dataclass
from datetime import UTC, date, datetime, time

import structlog
from protean.utils.globals import current_domain

from shipping.carrier import UnsupportedCourierError, get_adapter
from shipping.carrier.contract import (
    CourierAccount,
    CourierRate,
    CourierResult,
    RateRequest,
    ShipmentRequest,
    ShipmentStatus,
)
from shipping.carrier.port import CourierAdapter
from shipping.shipment.registration import RegisterShipment, find_by_order_reference
from shipping.shipment.shipment import Shipment, TrackingSource
from shipping.shipment.tracking import record_courier_status
from shipping.transitions import TransitionOutcome

logger = structlog.get_logger(__name__)

# Held across lookup, courier booking and registration; entries vanish once no booking holds them
_order_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


@dataclass(frozen=True)
class BookingConfirmation:
    shipment_id: str
    shipment_number: str
    awb_number: str | None
    status: str
    tracking_url: str | None = None
    already_booked: bool = False

    @classmethod
    def from_shipment(cls, shipment: Shipment, already_booked: bool = False) -> "BookingConfirmation":
        return cls(
            shipment_id=str(shipment.id),
            shipment_number=shipment.shipment_number,
            awb_number=shipment.awb_number,
            status=shipment.status,
            tracking_url=shipment.tracking_url,
            already_booked=already_booked,
        )


def _resolve_adapter(account: CourierAccount) -> tuple[CourierAdapter | None, CourierResult | None]:
    if not account.is_active:
        return None, CourierResult.failure(
            f"Courier account {account.name or account.courier_type.value} is inactive", code="inactive_account"
        )
    try:
        return get_adapter(account), None
    except UnsupportedCourierError as exc:
        return None, CourierResult.failure(str(exc), code="unsupported_courier")


def _as_datetime(value: date | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=UTC)


async def quote_rates(account: CourierAccount, request: RateRequest) -> CourierResult[list[CourierRate]]:
    adapter, failure = _resolve_adapter(account)
    if failure:
        return failure
    return await adapter.get_rates(account.credentials, request)


def _order_lock(order_reference: str) -> asyncio.Lock:
    lock = _order_locks.get(order_reference)
    if lock is None:
        lock = asyncio.Lock()
        _order_locks[order_reference] = lock
    return lock


async def book_shipment(account: CourierAccount, request: ShipmentRequest) -> CourierResult[BookingConfirmation]:
    """Book a shipment with the courier and register it, once per order reference.

    Concurrent calls for one order are serialized, so only the first reaches
    the courier. If another process registered the order while this call was
    booking, the surplus AWB is cancelled with the courier.
    """
    async with _order_lock(request.order_reference):
        return await _book_once(account, request)


async def _book_once(account: CourierAccount, request: ShipmentRequest) -> CourierResult[BookingConfirmation]:
    existing = find_by_order_reference(request.order_reference)
    if existing is not None:
        logger.info(
            "Order already booked, returning existing shipment",
            order_reference=request.order_reference,
            shipment_id=str(existing.id),
        )
        return CourierResult.success(BookingConfirmation.from_shipment(existing, already_booked=True))

    adapter, failure = _resolve_adapter(account)
    if failure:
        return failure

    result = await adapter.create_shipment(account.credentials, request)
    if not result.ok:
        logger.warning(
            "Courier booking failed",
            courier=adapter.courier_name,
            order_reference=request.order_reference,
            error=result.error_message,
            kind=result.kind.value if result.kind else None,
        )
        return result

    response = result.data
    delivery = request.delivery
    shipment_id = current_domain.process(
        RegisterShipment(
            order_reference=request.order_reference,
            courier_type=account.courier_type.value,
            awb_number=response.awb_number,
            provider_shipment_id=response.provider_shipment_id,
            tracking_url=response.tracking_url,
            label_url=response.label_url,
            service_code=request.service_code,
            weight_kg=float(request.weight_kg),
            is_cod=request.is_cod,
            cod_amount=float(request.cod_amount or 0),
            declared_value=float(request.declared_value),
            delivery=json.dumps(
                {
                    "name": delivery.name,
                    "phone": delivery.phone,
                    "address": delivery.address,
                    "city": delivery.city,
                    "state": delivery.state,
                    "postal_code": delivery.postal_code,
                }
            ),
            expected_delivery=_as_datetime(response.expected_delivery),
        ),
        asynchronous=False,
    )
    shipment = current_domain.repository_for(Shipment).get(shipment_id)
    if response.awb_number and shipment.awb_number != response.awb_number:
        await _cancel_surplus(adapter, account, request.order_reference, response.awb_number)
        return CourierResult.success(BookingConfirmation.from_shipment(shipment, already_booked=True))
    return CourierResult.success(BookingConfirmation.from_shipment(shipment))


async def _cancel_surplus(
    adapter: CourierAdapter, account: CourierAccount, order_reference: str, awb_number: str
) -> None:
    cancelled = await adapter.cancel_shipment(account.credentials, awb_number)
    if cancelled.ok:
        logger.warning("Cancelled surplus courier booking", order_reference=order_reference, awb_number=awb_number)
    else:
        logger.error(
            "Surplus courier booking could not be cancelled",
            order_reference=order_reference,
            awb_number=awb_number,
            error=cancelled.error_message,
        )


async def cancel_booking(account: CourierAccount, shipment_id: str) -> CourierResult[TransitionOutcome]:
    """Cancel with the courier first, then move the shipment to Cancelled."""
    shipment = current_domain.repository_for(Shipment).get(shipment_id)
    if shipment.is_terminal:
        return CourierResult.failure(
            f"Shipment {shipment.shipment_number} cannot be cancelled in {shipment.status} state",
            code="invalid_state",
        )

    adapter, failure = _resolve_adapter(account)
    if failure:
        return failure

    if shipment.awb_number:
        result = await adapter.cancel_shipment(account.credentials, shipment.awb_number)
        if not result.ok:
            return result

    outcome = record_courier_status(
        ShipmentStatus.CANCELLED,
        shipment_id=str(shipment.id),
        provider_status="Cancelled",
        remarks="Cancelled by merchant",
        source=TrackingSource.MANUAL,
    )
    return CourierResult.success(outcome)


async def sync_tracking(account: CourierAccount, shipment_id: str) -> CourierResult[TransitionOutcome]:
    """Poll the courier and reconcile its current status into the shipment."""
    shipment = current_domain.repository_for(Shipment).get(shipment_id)
    if not shipment.awb_number:
        return CourierResult.failure(f"Shipment {shipment.shipment_number} has no AWB number", code="missing_awb")

    adapter, failure = _resolve_adapter(account)
    if failure:
        return failure

    result = await adapter.get_tracking(account.credentials, shipment.awb_number)
    if not result.ok:
        return result

    tracking = result.data
    latest = tracking.latest_event
    outcome = record_courier_status(
        adapter.map_tracking_status(tracking),
        shipment_id=str(shipment.id),
        provider_status=tracking.current_status,
        provider_status_code=tracking.current_status_code,
        location=tracking.current_location,
        remarks=latest.remarks if latest else None,
        delivered_to=tracking.delivered_to,
        occurred_at=tracking.delivered_at or (latest.timestamp if latest else None),
        source=TrackingSource.POLL,
    )
    return CourierResult.success(outcome)
