"""Shipment domain events — immutable facts about courier shipments.

All events are past tense, versioned, and carry sufficient data for the NDR
workflow, notification fan-out and the Inventory domain's restock handler.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from shipping.domain import shipping


@shipping.event(part_of="Shipment")
class ShipmentRegistered:
    """A shipment was booked with a courier and registered for tracking."""

    __version__ = "v1"

    shipment_id = Identifier(required=True)
    shipment_number = String(required=True)
    order_reference = String(required=True)
    courier_type = String(required=True)
    awb_number = String()
    status = String(required=True)
    weight_kg = Float()
    is_cod = Boolean(default=False)
    cod_amount = Float()
    registered_at = DateTime(required=True)


@shipping.event(part_of="Shipment")
class ShipmentStatusChanged:
    """The canonical status of a shipment changed."""

    __version__ = "v1"

    shipment_id = Identifier(required=True)
    order_reference = String(required=True)
    awb_number = String()
    courier_type = String(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    location = String()
    occurred_at = DateTime(required=True)


@shipping.event(part_of="Shipment")
class ShipmentDeliveryFailed:
    """A delivery attempt failed.

    ``repeated`` is set when the courier reports the same failure again
    (typically a redelivered webhook) while the shipment is already in
    DeliveryFailed.
    """

    __version__ = "v1"

    shipment_id = Identifier(required=True)
    order_reference = String(required=True)
    awb_number = String()
    provider_status = String()
    provider_status_code = String()
    location = String()
    remarks = Text()
    repeated = Boolean(default=False)
    failed_at = DateTime(required=True)


@shipping.event(part_of="Shipment")
class ShipmentDelivered:
    """The courier confirmed delivery to the consignee."""

    __version__ = "v1"

    shipment_id = Identifier(required=True)
    order_reference = String(required=True)
    awb_number = String()
    delivered_to = String()
    delivered_at = DateTime(required=True)


@shipping.event(part_of="Shipment")
class InventoryRestockRequested:
    """Units of a returned-to-origin shipment should go back to stock."""

    __version__ = "v1"

    shipment_id = Identifier(required=True)
    order_reference = String(required=True)
    awb_number = String()
    status = String(required=True)
    requested_at = DateTime(required=True)
