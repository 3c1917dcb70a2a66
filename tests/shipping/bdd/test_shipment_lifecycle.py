"""BDD tests for the shipment lifecycle."""

from pytest_bdd import parsers, scenarios, then, when
from shipping.carrier.contract import ShipmentStatus
from shipping.shipment.events import (
    InventoryRestockRequested,
    ShipmentDelivered,
    ShipmentDeliveryFailed,
    ShipmentStatusChanged,
)

scenarios("features/shipment_lifecycle.feature")

_SHIPMENT_EVENT_CLASSES = {
    "ShipmentStatusChanged": ShipmentStatusChanged,
    "ShipmentDelivered": ShipmentDelivered,
    "ShipmentDeliveryFailed": ShipmentDeliveryFailed,
    "InventoryRestockRequested": InventoryRestockRequested,
}


def _raised(shipment, event_type):
    event_cls = _SHIPMENT_EVENT_CLASSES[event_type]
    return [e for e in shipment._events if isinstance(e, event_cls)]


@when(parsers.cfparse('the courier reports "{status}"'), target_fixture="outcome")
def courier_reports(shipment, status):
    return shipment.apply_status(ShipmentStatus(status), provider_status=status, location="Hub")


@when("the courier reports an unmapped status", target_fixture="outcome")
def courier_reports_unmapped(shipment):
    return shipment.apply_status(None, provider_status="Shipment held at gate", provider_status_code="XX")


@when("the shipment is cancelled", target_fixture="outcome")
def cancel_shipment(shipment):
    return shipment.cancel("Order cancelled by customer")


@then(parsers.cfparse('the shipment status is "{status}"'))
def shipment_status_is(shipment, status):
    assert shipment.status == status


@then(parsers.cfparse("the shipment has {count:d} tracking entries"))
def shipment_has_n_tracking_entries(shipment, count):
    assert len(shipment.tracking_history) == count


@then(parsers.cfparse("the shipment raised a {event_type} event"))
def shipment_event_raised(shipment, event_type):
    assert _raised(shipment, event_type), (
        f"No {event_type} event found. Events: {[type(e).__name__ for e in shipment._events]}"
    )


@then(parsers.cfparse("the shipment raised no {event_type} event"))
def shipment_event_not_raised(shipment, event_type):
    assert not _raised(shipment, event_type)


@then(parsers.cfparse("the shipment raised {count:d} {event_type} event"))
def shipment_event_raised_n_times(shipment, count, event_type):
    assert len(_raised(shipment, event_type)) == count


@then("the shipment is terminal")
def shipment_is_terminal(shipment):
    assert shipment.is_terminal


@then("stock is due back in the warehouse")
def restock_requested(shipment):
    assert shipment.restock_requested is True
    assert shipment.rto_initiated_at is not None
