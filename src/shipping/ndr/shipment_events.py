"""NDR reacts to Shipment events.

A failed delivery opens a case unless one is already open for the shipment.
While a case is open, a repeated report of the same failure is appended to
its history, and a fresh failure (after a reattempt) counts as another
attempt.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from shipping.domain import shipping
from shipping.ndr.ndr_case import NdrCase
from shipping.ndr.reasons import reason_from_remarks
from shipping.shipment.events import ShipmentDeliveryFailed

logger = structlog.get_logger(__name__)


def cases_for_shipment(shipment_id: str) -> list[NdrCase]:
    results = current_domain.repository_for(NdrCase)._dao.query.filter(shipment_id=shipment_id).all()
    return list(results.items) if results else []


def open_case_for_shipment(shipment_id: str) -> NdrCase | None:
    return next((case for case in cases_for_shipment(shipment_id) if not case.is_resolved), None)


@shipping.event_handler(part_of=NdrCase, stream_category="shipping::shipment")
class ShipmentEventHandler:
    """Opens and updates NDR cases from shipment delivery failures."""

    @handle(ShipmentDeliveryFailed)
    def on_delivery_failed(self, event: ShipmentDeliveryFailed) -> None:
        repo = current_domain.repository_for(NdrCase)
        shipment_id = str(event.shipment_id)
        remarks = event.remarks or event.provider_status
        case = open_case_for_shipment(shipment_id)

        if case is not None:
            if event.repeated:
                case.append_delivery_event(event.provider_status, remarks, event.failed_at)
                logger.info("Repeated delivery failure appended to NDR case", ndr_case_id=str(case.id))
            else:
                outcome = case.record_failed_attempt(reason_from_remarks(remarks), remarks, event.failed_at)
                logger.info(
                    "Failed delivery attempt recorded on NDR case",
                    ndr_case_id=str(case.id),
                    attempt_count=case.attempt_count,
                    status=outcome.status,
                )
            repo.add(case)
            return

        if event.repeated and cases_for_shipment(shipment_id):
            logger.info(
                "Ignoring repeated delivery failure for a resolved NDR case",
                shipment_id=shipment_id,
                awb_number=event.awb_number,
            )
            return

        case = NdrCase.open(
            shipment_id=shipment_id,
            order_reference=event.order_reference,
            awb_number=event.awb_number,
            reason_code=reason_from_remarks(remarks),
            reason_description=remarks,
            occurred_at=event.failed_at,
        )
        repo.add(case)
        logger.info(
            "NDR case opened",
            ndr_case_id=str(case.id),
            shipment_id=shipment_id,
            reason_code=case.reason_code,
        )
