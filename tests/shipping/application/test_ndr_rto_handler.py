"""Application tests for NdrEventHandler — shipment reacts to RTO decisions."""

from datetime import UTC, datetime

from protean import current_domain
from shipping.carrier.contract import CourierType, ShipmentStatus
from shipping.ndr.events import NdrRtoRequested
from shipping.shipment.ndr_events import NdrEventHandler
from shipping.shipment.shipment import Shipment, TrackingSource


def _shipment(status: ShipmentStatus) -> Shipment:
    shipment = Shipment.register(
        order_reference="ORD-RTO-1",
        courier_type=CourierType.BLUEDART.value,
        awb_number="69012345678",
    )
    shipment.status = status.value
    current_domain.repository_for(Shipment).add(shipment)
    return shipment


def _rto_requested(shipment_id: str) -> NdrRtoRequested:
    return NdrRtoRequested(
        ndr_case_id="ndr-1",
        shipment_id=shipment_id,
        awb_number="69012345678",
        requested_by="agent-1",
        remarks="Customer refused twice",
        requested_at=datetime.now(UTC),
    )


class TestRtoRequested:
    def test_failed_shipment_moves_to_rto(self):
        shipment = _shipment(ShipmentStatus.DELIVERY_FAILED)

        NdrEventHandler().on_rto_requested(_rto_requested(str(shipment.id)))

        refreshed = current_domain.repository_for(Shipment).get(shipment.id)
        assert refreshed.status == ShipmentStatus.RTO_INITIATED.value
        assert refreshed.rto_initiated_at is not None
        entry = refreshed.tracking_history[-1]
        assert entry.source == TrackingSource.MANUAL.value
        assert entry.remarks == "Customer refused twice"

    def test_repeated_request_does_not_restock_twice(self):
        shipment = _shipment(ShipmentStatus.DELIVERY_FAILED)
        handler = NdrEventHandler()

        handler.on_rto_requested(_rto_requested(str(shipment.id)))
        handler.on_rto_requested(_rto_requested(str(shipment.id)))

        refreshed = current_domain.repository_for(Shipment).get(shipment.id)
        assert refreshed.status == ShipmentStatus.RTO_INITIATED.value
        assert refreshed.restock_requested is True
        assert len(refreshed.tracking_history) == 2

    def test_terminal_shipment_is_left_alone(self):
        shipment = _shipment(ShipmentStatus.DELIVERED)

        NdrEventHandler().on_rto_requested(_rto_requested(str(shipment.id)))

        refreshed = current_domain.repository_for(Shipment).get(shipment.id)
        assert refreshed.status == ShipmentStatus.DELIVERED.value
        assert len(refreshed.tracking_history) == 0
