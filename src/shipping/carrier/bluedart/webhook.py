"""BlueDart status push notifications."""

from shipping.carrier.bluedart import statuses
from shipping.carrier.bluedart.models import WebhookPayload
from shipping.carrier.contract import CourierType
from shipping.carrier.parsing import combine_date_time
from shipping.carrier.webhooks import WebhookHandler, WebhookResult


class BlueDartWebhookHandler(WebhookHandler):
    courier_type = CourierType.BLUEDART
    payload_model = WebhookPayload

    def _translate(self, model: WebhookPayload) -> WebhookResult:
        if not model.awb_no:
            return WebhookResult.invalid(self.courier_type, "BlueDart webhook is missing the AWB number")

        status = statuses.map_status(model.status_code)
        return WebhookResult(
            courier_type=self.courier_type,
            success=True,
            message=model.status,
            awb_number=model.awb_no,
            reference=model.reference_no,
            provider_status=model.status,
            provider_status_code=model.status_code,
            status=status,
            location=model.status_location,
            remarks=model.remarks,
            occurred_at=combine_date_time(model.status_date, model.status_time),
            delivered_to=model.received_by,
        )
