"""BlueDart status codes → canonical shipment status."""

from shipping.carrier.contract import ShipmentStatus

STATUS_CODES = {
    "PKF": ShipmentStatus.MANIFESTED,  # pickup request registered
    "PKD": ShipmentStatus.PICKED_UP,
    "IT": ShipmentStatus.IN_TRANSIT,
    "LD": ShipmentStatus.IN_TRANSIT,  # arrived at location
    "OD": ShipmentStatus.OUT_FOR_DELIVERY,
    "DL": ShipmentStatus.DELIVERED,
    "ND": ShipmentStatus.DELIVERY_FAILED,
    "DLE": ShipmentStatus.DELIVERY_FAILED,  # delivery exception
    "HD": ShipmentStatus.DELIVERY_FAILED,  # held, holiday
    "CN": ShipmentStatus.CANCELLED,
    "RTO": ShipmentStatus.RTO_INITIATED,
    "RTD": ShipmentStatus.RTO_DELIVERED,
    "LST": ShipmentStatus.LOST,
}


def map_status(status_code: str | None) -> ShipmentStatus | None:
    if not status_code:
        return None
    return STATUS_CODES.get(status_code.strip().upper())
