"""Courier status recording — command, handler and per-shipment serialization.

Webhook deliveries are handled independently per request, so two updates
for the same shipment can race. ``record_courier_status`` takes the
shipment's lock around the whole command (load, apply, commit). Locks come from
a fixed pool of stripes, so unrelated shipments only rarely contend.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from shipping.carrier.contract import ShipmentStatus
from shipping.domain import shipping
from shipping.shipment.registration import find_by_awb
from shipping.shipment.shipment import Shipment, TrackingSource
from shipping.transitions import TransitionOutcome

logger = structlog.get_logger(__name__)

LOCK_STRIPES = 64

# One shipment always maps to the same stripe
_shipment_locks = tuple(threading.RLock() for _ in range(LOCK_STRIPES))


@contextmanager
def shipment_lock(shipment_id: str) -> Iterator[None]:
    """Hold the single-writer lock for one shipment."""
    with _shipment_locks[hash(shipment_id) % LOCK_STRIPES]:
        yield


@shipping.command(part_of="Shipment")
class RecordCourierStatus:
    """Apply a courier-reported status to a shipment.

    The shipment is addressed by ``shipment_id`` or, for webhooks, by AWB.
    ``status`` is the canonical status value; leave it empty when the
    provider code did not map.
    """

    shipment_id = Identifier()
    awb_number = String(max_length=50)
    status = String(max_length=50, choices=ShipmentStatus)
    provider_status = String(max_length=200)
    provider_status_code = String(max_length=50)
    location = String(max_length=200)
    remarks = Text()
    delivered_to = String(max_length=200)
    occurred_at = DateTime()
    source = String(max_length=20, default=TrackingSource.WEBHOOK.value)


def _resolve_shipment_id(shipment_id: str | None, awb_number: str | None) -> str:
    if shipment_id:
        return str(shipment_id)
    if not awb_number:
        raise ValidationError({"awb_number": ["Either shipment_id or awb_number is required"]})
    shipment = find_by_awb(awb_number)
    if shipment is None:
        raise ObjectNotFoundError(f"No shipment found for AWB {awb_number}")
    return str(shipment.id)


@shipping.command_handler(part_of=Shipment)
class CourierStatusHandler:
    @handle(RecordCourierStatus)
    def record_courier_status(self, command):
        repo = current_domain.repository_for(Shipment)
        shipment = repo.get(_resolve_shipment_id(command.shipment_id, command.awb_number))
        outcome = shipment.apply_status(
            ShipmentStatus(command.status) if command.status else None,
            provider_status=command.provider_status,
            provider_status_code=command.provider_status_code,
            location=command.location,
            remarks=command.remarks,
            occurred_at=command.occurred_at,
            delivered_to=command.delivered_to,
            source=command.source or TrackingSource.WEBHOOK.value,
        )
        if outcome.mutated:
            repo.add(shipment)
        if outcome.is_rejected:
            logger.warning(
                "Courier status rejected",
                shipment_id=str(shipment.id),
                current_status=outcome.status,
                requested_status=command.status,
                rejection=outcome.rejection.value,
            )
        return outcome


def record_courier_status(
    status: ShipmentStatus | None,
    awb_number: str | None = None,
    shipment_id: str | None = None,
    provider_status: str | None = None,
    provider_status_code: str | None = None,
    location: str | None = None,
    remarks: str | None = None,
    delivered_to: str | None = None,
    occurred_at: datetime | None = None,
    source: TrackingSource = TrackingSource.WEBHOOK,
) -> TransitionOutcome:
    """Serialize and process a ``RecordCourierStatus`` for one shipment.

    Raises ``ObjectNotFoundError`` when no shipment carries the AWB.
    """
    resolved_id = _resolve_shipment_id(shipment_id, awb_number)
    with shipment_lock(resolved_id):
        return current_domain.process(
            RecordCourierStatus(
                shipment_id=resolved_id,
                awb_number=awb_number,
                status=status.value if status else None,
                provider_status=provider_status,
                provider_status_code=provider_status_code,
                location=location,
                remarks=remarks,
                delivered_to=delivered_to,
                occurred_at=occurred_at,
                source=source.value,
            ),
            asynchronous=False,
        )
