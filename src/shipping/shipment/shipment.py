"""Shipment aggregate (CQRS) — canonical courier shipment lifecycle.

A Shipment is booked with exactly one courier and then driven by that
courier's tracking updates, which arrive out of order and are frequently
redelivered. Every update goes through ``apply_status``; fields are never
set directly from outside the aggregate.

State Machine:
    CREATED → MANIFESTED → PICKED_UP → IN_TRANSIT → OUT_FOR_DELIVERY → {DELIVERED | DELIVERY_FAILED}
    DELIVERY_FAILED → {IN_TRANSIT (reattempt) | RTO_INITIATED}
    RTO_INITIATED → RTO_IN_TRANSIT → RTO_DELIVERED
    any non-terminal → {CANCELLED | LOST}

Couriers skip intermediate scans, so any state reachable along the graph is
accepted as long as it does not move backwards in the lifecycle. The only
backward edge is DELIVERY_FAILED → IN_TRANSIT.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

import structlog
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    String,
    Text,
    ValueObject,
)

from shipping.carrier.contract import CourierType, ShipmentStatus
from shipping.domain import shipping
from shipping.settings import get_policy
from shipping.shipment.events import (
    InventoryRestockRequested,
    ShipmentDelivered,
    ShipmentDeliveryFailed,
    ShipmentRegistered,
    ShipmentStatusChanged,
)
from shipping.transitions import TransitionOutcome, TransitionRejection

logger = structlog.get_logger(__name__)


class TrackingSource(Enum):
    WEBHOOK = "webhook"
    POLL = "poll"
    MANUAL = "manual"


_TRANSITIONS = {
    ShipmentStatus.CREATED: {ShipmentStatus.MANIFESTED},
    ShipmentStatus.MANIFESTED: {ShipmentStatus.PICKED_UP},
    ShipmentStatus.PICKED_UP: {ShipmentStatus.IN_TRANSIT},
    ShipmentStatus.IN_TRANSIT: {ShipmentStatus.OUT_FOR_DELIVERY},
    ShipmentStatus.OUT_FOR_DELIVERY: {ShipmentStatus.DELIVERED, ShipmentStatus.DELIVERY_FAILED},
    ShipmentStatus.DELIVERY_FAILED: {ShipmentStatus.IN_TRANSIT, ShipmentStatus.RTO_INITIATED},
    ShipmentStatus.RTO_INITIATED: {ShipmentStatus.RTO_IN_TRANSIT},
    ShipmentStatus.RTO_IN_TRANSIT: {ShipmentStatus.RTO_DELIVERED},
    ShipmentStatus.DELIVERED: set(),  # terminal
    ShipmentStatus.RTO_DELIVERED: set(),  # terminal
    ShipmentStatus.CANCELLED: set(),  # terminal
    ShipmentStatus.LOST: set(),  # terminal
}

TERMINAL_STATUSES = frozenset(status for status, targets in _TRANSITIONS.items() if not targets)

_ABORT_STATUSES = frozenset({ShipmentStatus.CANCELLED, ShipmentStatus.LOST})

_LIFECYCLE_RANK = {
    ShipmentStatus.CREATED: 0,
    ShipmentStatus.MANIFESTED: 1,
    ShipmentStatus.PICKED_UP: 2,
    ShipmentStatus.IN_TRANSIT: 3,
    ShipmentStatus.OUT_FOR_DELIVERY: 4,
    ShipmentStatus.DELIVERED: 5,
    ShipmentStatus.DELIVERY_FAILED: 5,
    ShipmentStatus.RTO_INITIATED: 6,
    ShipmentStatus.RTO_IN_TRANSIT: 7,
    ShipmentStatus.RTO_DELIVERED: 8,
}

_BACKWARD_EDGES = {(ShipmentStatus.DELIVERY_FAILED, ShipmentStatus.IN_TRANSIT)}

_RTO_STATUSES = frozenset({ShipmentStatus.RTO_INITIATED, ShipmentStatus.RTO_IN_TRANSIT, ShipmentStatus.RTO_DELIVERED})
_RESTOCK_TRIGGERS = frozenset({ShipmentStatus.RTO_INITIATED, ShipmentStatus.RTO_DELIVERED})


def _reachable_from(status: ShipmentStatus) -> frozenset[ShipmentStatus]:
    seen: set[ShipmentStatus] = set()
    frontier = list(_TRANSITIONS[status])
    while frontier:
        target = frontier.pop()
        if target not in seen:
            seen.add(target)
            frontier.extend(_TRANSITIONS[target])
    return frozenset(seen)


_REACHABLE = {status: _reachable_from(status) for status in ShipmentStatus}


def check_transition(current: ShipmentStatus, target: ShipmentStatus) -> TransitionRejection | None:
    """Return why ``current → target`` is not allowed, or None when it is."""
    if current in TERMINAL_STATUSES:
        return TransitionRejection.SHIPMENT_IN_TERMINAL_STATE
    if target in _ABORT_STATUSES:
        return None
    if (current, target) in _BACKWARD_EDGES:
        return None
    if _LIFECYCLE_RANK[target] < _LIFECYCLE_RANK[current]:
        return TransitionRejection.REGRESSION_NOT_ALLOWED
    if target not in _REACHABLE[current]:
        return TransitionRejection.INVALID_TRANSITION
    return None


def generate_shipment_number(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"SHP-{now:%Y%m%d%H%M%S}-{uuid4().hex[:6].upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@shipping.value_object(part_of="Shipment")
class Consignee:
    """Who the shipment is delivered to."""

    name = String(max_length=200)
    phone = String(max_length=20)
    address = String(max_length=500)
    city = String(max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=10)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@shipping.entity(part_of="Shipment")
class TrackingEntry:
    """A courier status event as received, kept for audit."""

    status = String(required=True, max_length=50, choices=ShipmentStatus)
    provider_status = String(max_length=200)
    provider_status_code = String(max_length=50)
    location = String(max_length=200)
    remarks = Text()
    source = String(max_length=20, choices=TrackingSource, default=TrackingSource.WEBHOOK.value)
    outcome = String(max_length=20)
    occurred_at = DateTime(required=True)
    recorded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@shipping.aggregate
class Shipment:
    shipment_number = String(required=True, max_length=30)
    order_reference = String(required=True, max_length=100)
    courier_type = String(required=True, choices=CourierType)
    awb_number = String(max_length=50)
    provider_shipment_id = String(max_length=100)
    tracking_url = String(max_length=500)
    label_url = String(max_length=500)
    status = String(
        choices=ShipmentStatus,
        default=ShipmentStatus.CREATED.value,
    )
    service_code = String(max_length=20)
    weight_kg = Float(min_value=0.0)
    is_cod = Boolean(default=False)
    cod_amount = Float(default=0.0)
    declared_value = Float(default=0.0)
    delivery = ValueObject(Consignee)
    expected_delivery = DateTime()
    picked_up_at = DateTime()
    delivered_at = DateTime()
    delivered_to = String(max_length=200)
    rto_initiated_at = DateTime()
    cancelled_at = DateTime()
    restock_requested = Boolean(default=False)
    tracking_history = HasMany(TrackingEntry)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def register(
        cls,
        order_reference: str,
        courier_type: str,
        awb_number: str | None = None,
        provider_shipment_id: str | None = None,
        tracking_url: str | None = None,
        label_url: str | None = None,
        service_code: str | None = None,
        weight_kg: float | None = None,
        is_cod: bool = False,
        cod_amount: float = 0.0,
        declared_value: float = 0.0,
        delivery: dict | None = None,
        expected_delivery: datetime | None = None,
    ):
        """Register a shipment the courier has accepted."""
        now = datetime.now(UTC)
        shipment = cls(
            shipment_number=generate_shipment_number(now),
            order_reference=order_reference,
            courier_type=courier_type,
            awb_number=awb_number,
            provider_shipment_id=provider_shipment_id,
            tracking_url=tracking_url,
            label_url=label_url,
            service_code=service_code,
            weight_kg=weight_kg,
            is_cod=is_cod,
            cod_amount=cod_amount,
            declared_value=declared_value,
            delivery=Consignee(**delivery) if delivery else None,
            expected_delivery=expected_delivery,
            status=ShipmentStatus.CREATED.value,
            created_at=now,
            updated_at=now,
        )
        shipment.raise_(
            ShipmentRegistered(
                shipment_id=str(shipment.id),
                shipment_number=shipment.shipment_number,
                order_reference=order_reference,
                courier_type=courier_type,
                awb_number=awb_number,
                status=shipment.status,
                weight_kg=weight_kg,
                is_cod=is_cod,
                cod_amount=cod_amount,
                registered_at=now,
            )
        )
        return shipment

    @property
    def is_terminal(self) -> bool:
        return ShipmentStatus(self.status) in TERMINAL_STATUSES

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def apply_status(
        self,
        status: ShipmentStatus | None,
        provider_status: str | None = None,
        provider_status_code: str | None = None,
        location: str | None = None,
        remarks: str | None = None,
        occurred_at: datetime | None = None,
        delivered_to: str | None = None,
        source: str = TrackingSource.WEBHOOK.value,
    ) -> TransitionOutcome:
        """Reconcile a canonical courier status into this shipment.

        Unmapped statuses are ignored, repeats are recorded as duplicates,
        and invalid moves are rejected without touching the aggregate.
        """
        current = ShipmentStatus(self.status)
        if status is None:
            logger.debug(
                "Ignoring unmapped courier status",
                shipment_id=str(self.id),
                provider_status=provider_status,
                provider_status_code=provider_status_code,
            )
            return TransitionOutcome.ignored(
                current.value, f"Unmapped courier status {provider_status_code or provider_status!r}"
            )

        now = datetime.now(UTC)
        occurred_at = occurred_at or now

        if status == current:
            self._record_tracking(status, provider_status, provider_status_code, location, remarks, occurred_at, source, "duplicate")
            self.updated_at = now
            if status == ShipmentStatus.DELIVERY_FAILED:
                self._raise_delivery_failed(provider_status, provider_status_code, location, remarks, occurred_at, repeated=True)
            return TransitionOutcome.duplicate(current.value)

        rejection = check_transition(current, status)
        if rejection is not None:
            return TransitionOutcome.rejected(
                current.value,
                rejection,
                f"Cannot transition shipment from {current.value} to {status.value}",
            )

        self.status = status.value
        self._stamp_milestones(status, occurred_at, now, delivered_to)
        self._record_tracking(status, provider_status, provider_status_code, location, remarks, occurred_at, source, "applied")
        self.updated_at = now

        self.raise_(
            ShipmentStatusChanged(
                shipment_id=str(self.id),
                order_reference=self.order_reference,
                awb_number=self.awb_number,
                courier_type=self.courier_type,
                previous_status=current.value,
                status=status.value,
                location=location,
                occurred_at=occurred_at,
            )
        )
        if status == ShipmentStatus.DELIVERED:
            self.raise_(
                ShipmentDelivered(
                    shipment_id=str(self.id),
                    order_reference=self.order_reference,
                    awb_number=self.awb_number,
                    delivered_to=self.delivered_to,
                    delivered_at=self.delivered_at,
                )
            )
        elif status == ShipmentStatus.DELIVERY_FAILED:
            self._raise_delivery_failed(provider_status, provider_status_code, location, remarks, occurred_at, repeated=False)
        elif status in _RESTOCK_TRIGGERS:
            self._request_restock(status, now)

        return TransitionOutcome.applied(current.value, status.value)

    def cancel(self, remarks: str | None = None) -> TransitionOutcome:
        return self.apply_status(
            ShipmentStatus.CANCELLED,
            provider_status="Cancelled",
            remarks=remarks,
            source=TrackingSource.MANUAL.value,
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _stamp_milestones(
        self, status: ShipmentStatus, occurred_at: datetime, now: datetime, delivered_to: str | None
    ) -> None:
        rank = _LIFECYCLE_RANK.get(status)
        if self.picked_up_at is None and rank is not None and rank >= _LIFECYCLE_RANK[ShipmentStatus.PICKED_UP]:
            self.picked_up_at = occurred_at
        if status == ShipmentStatus.DELIVERED:
            self.delivered_at = occurred_at
            self.delivered_to = delivered_to
        elif status in _RTO_STATUSES and self.rto_initiated_at is None:
            self.rto_initiated_at = occurred_at
        elif status == ShipmentStatus.CANCELLED:
            self.cancelled_at = now

    def _record_tracking(
        self,
        status: ShipmentStatus,
        provider_status: str | None,
        provider_status_code: str | None,
        location: str | None,
        remarks: str | None,
        occurred_at: datetime,
        source: str,
        outcome: str,
    ) -> None:
        self.add_tracking_history(
            TrackingEntry(
                status=status.value,
                provider_status=provider_status or "",
                provider_status_code=provider_status_code or "",
                location=location or "",
                remarks=remarks or "",
                source=source,
                outcome=outcome,
                occurred_at=occurred_at,
                recorded_at=datetime.now(UTC),
            )
        )

    def _raise_delivery_failed(
        self,
        provider_status: str | None,
        provider_status_code: str | None,
        location: str | None,
        remarks: str | None,
        occurred_at: datetime,
        repeated: bool,
    ) -> None:
        self.raise_(
            ShipmentDeliveryFailed(
                shipment_id=str(self.id),
                order_reference=self.order_reference,
                awb_number=self.awb_number,
                provider_status=provider_status,
                provider_status_code=provider_status_code,
                location=location,
                remarks=remarks,
                repeated=repeated,
                failed_at=occurred_at,
            )
        )

    def _request_restock(self, status: ShipmentStatus, now: datetime) -> None:
        if self.restock_requested or not get_policy().restock_on_rto:
            return
        self.restock_requested = True
        self.raise_(
            InventoryRestockRequested(
                shipment_id=str(self.id),
                order_reference=self.order_reference,
                awb_number=self.awb_number,
                status=status.value,
                requested_at=now,
            )
        )
