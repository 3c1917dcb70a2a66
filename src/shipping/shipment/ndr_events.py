"""Shipment reacts to NDR decisions.

When the NDR desk decides to return a shipment to origin, the shipment
moves to RTOInitiated through the same state machine courier updates use.
The NDR case and the shipment keep their own RTO facts; neither closes the
other.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from shipping.carrier.contract import ShipmentStatus
from shipping.domain import shipping
from shipping.ndr.events import NdrRtoRequested
from shipping.shipment.shipment import Shipment, TrackingSource
from shipping.shipment.tracking import shipment_lock

logger = structlog.get_logger(__name__)


@shipping.event_handler(part_of=Shipment, stream_category="shipping::ndr_case")
class NdrEventHandler:
    """Applies return-to-origin requests raised by NDR cases."""

    @handle(NdrRtoRequested)
    def on_rto_requested(self, event: NdrRtoRequested) -> None:
        shipment_id = str(event.shipment_id)
        with shipment_lock(shipment_id):
            repo = current_domain.repository_for(Shipment)
            shipment = repo.get(shipment_id)
            outcome = shipment.apply_status(
                ShipmentStatus.RTO_INITIATED,
                provider_status="RTO requested by NDR desk",
                remarks=event.remarks,
                occurred_at=event.requested_at,
                source=TrackingSource.MANUAL.value,
            )
            if outcome.mutated:
                repo.add(shipment)

        if outcome.is_rejected:
            logger.warning(
                "Shipment could not move to RTO",
                shipment_id=shipment_id,
                ndr_case_id=str(event.ndr_case_id),
                status=outcome.status,
                rejection=outcome.rejection.value,
            )
        else:
            logger.info(
                "Shipment moved to RTO from NDR case",
                shipment_id=shipment_id,
                ndr_case_id=str(event.ndr_case_id),
                outcome=outcome.result.value,
            )
