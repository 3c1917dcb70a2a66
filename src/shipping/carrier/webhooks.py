"""Inbound courier webhooks — parse, map, and report a canonical result.

Handlers are pure translation components: they never touch the database.
Malformed or partial payloads come back as ``WebhookResult(success=False)``
instead of raising, so the HTTP layer can always answer the provider.
"""

import hmac
import json
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from pydantic import BaseModel

from shipping.carrier.contract import CourierType, ShipmentStatus
from shipping.settings import provider_settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class WebhookResult:
    courier_type: CourierType
    success: bool
    message: str | None = None
    awb_number: str | None = None
    reference: str | None = None
    provider_status: str | None = None
    provider_status_code: str | None = None
    status: ShipmentStatus | None = None
    location: str | None = None
    remarks: str | None = None
    occurred_at: datetime | None = None
    delivered_to: str | None = None

    @classmethod
    def invalid(cls, courier_type: CourierType, message: str) -> "WebhookResult":
        return cls(courier_type=courier_type, success=False, message=message)

    @property
    def is_mapped(self) -> bool:
        return self.success and self.status is not None


class WebhookHandler(ABC):
    """Base for per-provider webhook handlers."""

    courier_type: CourierType
    payload_model: type[BaseModel]

    def parse(self, payload: bytes | str | Mapping[str, Any]) -> WebhookResult:
        try:
            data = json.loads(payload) if isinstance(payload, (bytes, str)) else payload
            model = self.payload_model.model_validate(data)
        except ValueError as exc:
            logger.warning(
                "Invalid courier webhook payload",
                courier=self.courier_type.value,
                error=str(exc),
            )
            return WebhookResult.invalid(self.courier_type, f"Invalid {self.courier_type.value} webhook payload")

        result = self._translate(model)
        if result.success and result.status is None:
            logger.debug(
                "Unmapped courier status code",
                courier=self.courier_type.value,
                awb_number=result.awb_number,
                status_code=result.provider_status_code,
            )
        return result

    def verify_token(self, token: str | None) -> bool:
        """Check the shared secret, when one is configured for this provider."""
        expected = provider_settings(self.courier_type).webhook_token
        if not expected:
            return True
        return hmac.compare_digest(expected.encode(), (token or "").encode())

    @abstractmethod
    def _translate(self, model: BaseModel) -> WebhookResult:
        ...


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
_handler_instances: dict[CourierType, WebhookHandler] = {}


def get_webhook_handler(courier_type: CourierType) -> WebhookHandler:
    """Return the webhook handler for a courier (singleton per courier type)."""
    if courier_type not in _handler_instances:
        if courier_type == CourierType.DELHIVERY:
            from shipping.carrier.delhivery.webhook import DelhiveryWebhookHandler

            _handler_instances[courier_type] = DelhiveryWebhookHandler()
        elif courier_type == CourierType.BLUEDART:
            from shipping.carrier.bluedart.webhook import BlueDartWebhookHandler

            _handler_instances[courier_type] = BlueDartWebhookHandler()
        else:
            raise ValueError(f"No webhook handler for courier: {courier_type.value}")

    return _handler_instances[courier_type]


def reset_webhook_handlers() -> None:
    """Reset all webhook handler singletons (useful for testing)."""
    _handler_instances.clear()
