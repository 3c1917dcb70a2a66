"""Shipment registration — command and handler.

Registration is idempotent on the order reference: a retried booking for
the same order returns the shipment that already exists.
"""

import json

import structlog
from protean import handle
from protean.fields import Boolean, DateTime, Float, String, Text
from protean.utils.globals import current_domain

from shipping.domain import shipping
from shipping.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)


@shipping.command(part_of="Shipment")
class RegisterShipment:
    """Register a shipment the courier has accepted."""

    order_reference = String(required=True, max_length=100)
    courier_type = String(required=True, max_length=50)
    awb_number = String(max_length=50)
    provider_shipment_id = String(max_length=100)
    tracking_url = String(max_length=500)
    label_url = String(max_length=500)
    service_code = String(max_length=20)
    weight_kg = Float()
    is_cod = Boolean(default=False)
    cod_amount = Float(default=0.0)
    declared_value = Float(default=0.0)
    delivery = Text()  # JSON consignee dict
    expected_delivery = DateTime()


def find_by_order_reference(order_reference: str) -> Shipment | None:
    results = current_domain.repository_for(Shipment)._dao.query.filter(order_reference=order_reference).all()
    return results.first if results and results.items else None


def find_by_awb(awb_number: str) -> Shipment | None:
    results = current_domain.repository_for(Shipment)._dao.query.filter(awb_number=awb_number).all()
    return results.first if results and results.items else None


@shipping.command_handler(part_of=Shipment)
class RegisterShipmentHandler:
    @handle(RegisterShipment)
    def register_shipment(self, command):
        existing = find_by_order_reference(command.order_reference)
        if existing is not None:
            logger.info(
                "Shipment already registered for order",
                order_reference=command.order_reference,
                shipment_id=str(existing.id),
            )
            return str(existing.id)

        delivery = json.loads(command.delivery) if isinstance(command.delivery, str) else command.delivery
        shipment = Shipment.register(
            order_reference=command.order_reference,
            courier_type=command.courier_type,
            awb_number=command.awb_number,
            provider_shipment_id=command.provider_shipment_id,
            tracking_url=command.tracking_url,
            label_url=command.label_url,
            service_code=command.service_code,
            weight_kg=command.weight_kg,
            is_cod=command.is_cod,
            cod_amount=command.cod_amount,
            declared_value=command.declared_value,
            delivery=delivery,
            expected_delivery=command.expected_delivery,
        )
        current_domain.repository_for(Shipment).add(shipment)
        logger.info(
            "Shipment registered",
            shipment_id=str(shipment.id),
            shipment_number=shipment.shipment_number,
            courier_type=command.courier_type,
            awb_number=command.awb_number,
        )
        return str(shipment.id)
