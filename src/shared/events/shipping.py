"""Cross-domain event contracts for Shipping domain events.

These classes define the event shape for consumption by other domains
(e.g., the Inventory domain to restock units returned to origin, the
Notifications domain to message customers on status changes). They are
registered as external events via domain.register_external_event() with
matching __type__ strings so Protean's stream deserialization works
correctly.

The source-of-truth events are in src/shipping/shipment/events.py.
"""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Identifier, String


class ShipmentStatusChanged(BaseEvent):
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


class InventoryRestockRequested(BaseEvent):
    """Units of a returned-to-origin shipment should go back to stock."""

    __version__ = "v1"

    shipment_id = Identifier(required=True)
    order_reference = String(required=True)
    awb_number = String()
    status = String(required=True)
    requested_at = DateTime(required=True)
