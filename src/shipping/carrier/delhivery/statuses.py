"""Delhivery status vocabulary → canonical shipment status."""

from shipping.carrier.contract import ShipmentStatus

# UD  Dispatched (out for pickup)      PP  Pending pickup
# OP  Order placed / manifested        FM  First mile
# PU  Picked up                        IT  In transit
# RAD Reached at destination hub       LM  Last mile
# OC  Out for delivery                 DL  Delivered
# CN  Cancelled                        CR  Cancellation requested
# RTO RTO initiated                    RT  RTO in transit
# RTD RTO delivered                    ND  Not delivered (NDR)
# DNA Delivery not attempted           LT  Lost
# NS  Not serviceable (no transition)
STATUS_CODES = {
    "UD": ShipmentStatus.MANIFESTED,
    "PP": ShipmentStatus.MANIFESTED,
    "OP": ShipmentStatus.MANIFESTED,
    "FM": ShipmentStatus.MANIFESTED,
    "PU": ShipmentStatus.PICKED_UP,
    "IT": ShipmentStatus.IN_TRANSIT,
    "RAD": ShipmentStatus.IN_TRANSIT,
    "LM": ShipmentStatus.IN_TRANSIT,
    "OC": ShipmentStatus.OUT_FOR_DELIVERY,
    "DL": ShipmentStatus.DELIVERED,
    "CN": ShipmentStatus.CANCELLED,
    "CR": ShipmentStatus.CANCELLED,
    "RTO": ShipmentStatus.RTO_INITIATED,
    "RT": ShipmentStatus.RTO_IN_TRANSIT,
    "RTD": ShipmentStatus.RTO_DELIVERED,
    "ND": ShipmentStatus.DELIVERY_FAILED,
    "DNA": ShipmentStatus.DELIVERY_FAILED,
    "LT": ShipmentStatus.LOST,
}

# Free-text ``Status`` values reported by the tracking API, lower-cased.
STATUS_NAMES = {
    "manifested": ShipmentStatus.MANIFESTED,
    "not picked": ShipmentStatus.MANIFESTED,
    "picked up": ShipmentStatus.PICKED_UP,
    "in transit": ShipmentStatus.IN_TRANSIT,
    "pending": ShipmentStatus.IN_TRANSIT,
    "dispatched": ShipmentStatus.OUT_FOR_DELIVERY,
    "out for delivery": ShipmentStatus.OUT_FOR_DELIVERY,
    "delivered": ShipmentStatus.DELIVERED,
    "undelivered": ShipmentStatus.DELIVERY_FAILED,
    "cancelled": ShipmentStatus.CANCELLED,
    "canceled": ShipmentStatus.CANCELLED,
    "rto": ShipmentStatus.RTO_INITIATED,
    "returned": ShipmentStatus.RTO_DELIVERED,
    "rto delivered": ShipmentStatus.RTO_DELIVERED,
    "lost": ShipmentStatus.LOST,
}


def map_status(status_code: str | None) -> ShipmentStatus | None:
    if not status_code:
        return None
    return STATUS_CODES.get(status_code.strip().upper())


def map_status_name(status: str | None) -> ShipmentStatus | None:
    if not status:
        return None
    return STATUS_NAMES.get(" ".join(status.lower().split()))


def map_tracking(status_type: str | None, status: str | None) -> ShipmentStatus | None:
    """Canonical status for a tracking-API status block.

    The free-text ``Status`` is more precise than ``StatusType`` on the
    forward leg; on the return leg (``RT``) the text repeats forward words
    ("In Transit", "Delivered"), so the leg decides.
    """
    by_name = map_status_name(status)
    if status_type and status_type.strip().upper() == "RT":
        if by_name in (ShipmentStatus.DELIVERED, ShipmentStatus.RTO_DELIVERED):
            return ShipmentStatus.RTO_DELIVERED
        return ShipmentStatus.RTO_IN_TRANSIT
    return by_name or map_status(status_type)
