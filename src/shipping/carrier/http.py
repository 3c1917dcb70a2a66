"""Base HTTP transport for provider clients.

Clients own wire concerns only: auth envelope, serialization, a bounded
timeout and deserialization into provider-native models. A non-2xx answer
is logged with its raw body and reported as ``None``; transport faults
(timeouts, connection errors) propagate to the adapter, which turns them
into failure results.
"""

from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel

from shipping.settings import ProviderSettings

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

_MAX_LOGGED_BODY = 2000


class ProviderClient:
    """Thin async wrapper around ``httpx.AsyncClient`` for one provider."""

    provider_name = "provider"

    def __init__(
        self,
        settings: ProviderSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=httpx.Timeout(settings.timeout_seconds),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ProviderClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _send(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response | None:
        response = await self._client.request(method, url, **kwargs)
        if response.is_success:
            return response

        logger.error(
            "Courier API call failed",
            provider=self.provider_name,
            operation=operation,
            status_code=response.status_code,
            body=response.text[:_MAX_LOGGED_BODY],
        )
        return None

    @staticmethod
    def _parse(model: type[M], response: httpx.Response) -> M:
        """Deserialize a JSON body; malformed bodies raise ``ValueError``."""
        return model.model_validate(response.json())
