"""Canonical courier contract — provider-agnostic request and response shapes.

Every provider adapter translates its own wire format into these types, and
nothing provider-native travels past the adapter boundary. Money and weight
are `Decimal` so rate estimates stay exact.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class CourierType(Enum):
    DELHIVERY = "Delhivery"
    BLUEDART = "BlueDart"
    FAKE = "Fake"


class ShipmentStatus(Enum):
    CREATED = "Created"
    MANIFESTED = "Manifested"
    PICKED_UP = "PickedUp"
    IN_TRANSIT = "InTransit"
    OUT_FOR_DELIVERY = "OutForDelivery"
    DELIVERED = "Delivered"
    DELIVERY_FAILED = "DeliveryFailed"
    RTO_INITIATED = "RTOInitiated"
    RTO_IN_TRANSIT = "RTOInTransit"
    RTO_DELIVERED = "RTODelivered"
    CANCELLED = "Cancelled"
    LOST = "Lost"


class FailureKind(Enum):
    BUSINESS = "business"
    TRANSPORT = "transport"


# ---------------------------------------------------------------------------
# Accounts and credentials
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class CourierCredentials:
    """Opaque provider credentials plus free-form provider settings.

    Secrets are excluded from ``repr`` so structured logs never carry them.
    """

    api_key: str | None = field(default=None, repr=False)
    api_secret: str | None = field(default=None, repr=False)
    access_token: str | None = field(default=None, repr=False)
    account_id: str | None = None
    settings: Mapping[str, str] = field(default_factory=dict)

    def setting(self, name: str, default: str = "") -> str:
        value = self.settings.get(name)
        return value if value else default


@dataclass(frozen=True)
class CourierAccount:
    """A tenant's configured courier account."""

    courier_type: CourierType
    credentials: CourierCredentials
    name: str = ""
    is_active: bool = True


# ---------------------------------------------------------------------------
# Rates
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RateRequest:
    pickup_postal_code: str
    delivery_postal_code: str
    weight_kg: Decimal
    length_cm: Decimal | None = None
    width_cm: Decimal | None = None
    height_cm: Decimal | None = None
    declared_value: Decimal | None = None
    is_cod: bool = False
    cod_amount: Decimal | None = None


@dataclass(frozen=True)
class CourierRate:
    """An advisory quote for one service; not a binding price."""

    service_code: str
    service_name: str
    freight_charge: Decimal
    cod_charge: Decimal
    total_charge: Decimal
    estimated_days: int
    expected_delivery: date | None = None
    is_express: bool = False
    is_surface: bool = False


# ---------------------------------------------------------------------------
# Shipments
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Party:
    """Pickup or delivery contact."""

    name: str
    phone: str
    address: str
    city: str
    state: str
    postal_code: str
    email: str | None = None


@dataclass(frozen=True)
class ShipmentItem:
    name: str
    quantity: int
    unit_price: Decimal
    sku: str | None = None


@dataclass(frozen=True)
class ShipmentRequest:
    order_reference: str
    pickup: Party
    delivery: Party
    weight_kg: Decimal
    items: tuple[ShipmentItem, ...] = ()
    order_number: str | None = None
    length_cm: Decimal | None = None
    width_cm: Decimal | None = None
    height_cm: Decimal | None = None
    declared_value: Decimal = Decimal("0")
    is_cod: bool = False
    cod_amount: Decimal | None = None
    service_code: str | None = None
    is_express: bool = False

    @property
    def reference_number(self) -> str:
        return self.order_number or self.order_reference

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items) or 1

    def describe_products(self) -> str:
        return ", ".join(item.name for item in self.items)


@dataclass(frozen=True)
class ShipmentResponse:
    awb_number: str
    courier_name: str
    provider_shipment_id: str | None = None
    tracking_url: str | None = None
    label_url: str | None = None
    freight_charge: Decimal | None = None
    expected_delivery: date | None = None


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class TrackingEvent:
    """A single provider scan, in the provider's own vocabulary."""

    timestamp: datetime | None
    status: str
    location: str | None = None
    remarks: str | None = None
    status_code: str | None = None


def newest_first(events) -> list[TrackingEvent]:
    """Sort by timestamp, newest first; providers do not guarantee an order.

    Undated events sink to the end in received order.
    """
    dated = [e for e in events if e.timestamp is not None]
    undated = [e for e in events if e.timestamp is None]
    return sorted(dated, key=lambda e: e.timestamp, reverse=True) + undated


@dataclass(frozen=True)
class TrackingResponse:
    awb_number: str
    current_status: str
    current_status_code: str | None = None
    current_location: str | None = None
    expected_delivery: datetime | None = None
    delivered_at: datetime | None = None
    delivered_to: str | None = None
    events: tuple[TrackingEvent, ...] = ()

    def events_newest_first(self) -> list[TrackingEvent]:
        return newest_first(self.events)

    @property
    def latest_event(self) -> TrackingEvent | None:
        ordered = self.events_newest_first()
        return ordered[0] if ordered else None


# ---------------------------------------------------------------------------
# Pickups
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class PickupRequest:
    awb_numbers: tuple[str, ...]
    pickup_date: date
    time_slot: str | None = None
    warehouse_id: str | None = None


@dataclass(frozen=True)
class PickupResponse:
    pickup_id: str
    scheduled_date: date
    shipment_count: int
    time_slot: str | None = None


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class CourierResult(Generic[T]):
    """Outcome of a courier operation.

    Expected business conditions and transport faults both come back as a
    failed result; ``kind`` tells the caller which one it was so it can
    decide whether a retry makes sense.
    """

    ok: bool
    data: T | None = None
    error_message: str | None = None
    error_code: str | None = None
    kind: FailureKind | None = None

    @classmethod
    def success(cls, data: T | None = None) -> "CourierResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, message: str, code: str | None = None) -> "CourierResult[T]":
        return cls(ok=False, error_message=message, error_code=code, kind=FailureKind.BUSINESS)

    @classmethod
    def transport_failure(cls, message: str) -> "CourierResult[T]":
        return cls(ok=False, error_message=message, error_code="transport_error", kind=FailureKind.TRANSPORT)

    @property
    def is_transport_failure(self) -> bool:
        return self.kind == FailureKind.TRANSPORT
