"""Delhivery push notifications (scan updates)."""

from shipping.carrier.contract import CourierType
from shipping.carrier.delhivery import statuses
from shipping.carrier.delhivery.models import WebhookPayload
from shipping.carrier.parsing import parse_datetime
from shipping.carrier.webhooks import WebhookHandler, WebhookResult


class DelhiveryWebhookHandler(WebhookHandler):
    courier_type = CourierType.DELHIVERY
    payload_model = WebhookPayload

    def _translate(self, model: WebhookPayload) -> WebhookResult:
        if not model.waybill:
            return WebhookResult.invalid(self.courier_type, "Delhivery webhook is missing the waybill")

        code = model.status_code or model.status_type
        return WebhookResult(
            courier_type=self.courier_type,
            success=True,
            message=model.status,
            awb_number=model.waybill,
            reference=model.reference_number,
            provider_status=model.status,
            provider_status_code=code,
            status=statuses.map_status(code),
            location=model.location,
            remarks=model.remarks,
            occurred_at=parse_datetime(model.timestamp),
            delivered_to=model.delivered_to or model.received_by,
        )
