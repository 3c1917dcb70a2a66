"""Runtime settings for the shipping context.

Provider endpoints and timeouts come from environment variables. The
shipping policy (restock on RTO, NDR escalation threshold) is a swappable
singleton so tenants and tests can override it without touching the
environment.
"""

import os
from dataclasses import dataclass

from shipping.carrier.contract import CourierType

DEFAULT_TIMEOUT_SECONDS = 30.0

_DEFAULT_BASE_URLS = {
    CourierType.DELHIVERY: "https://track.delhivery.com",
    CourierType.BLUEDART: "https://apigateway.bluedart.com/in/transportation",
    CourierType.FAKE: "https://fake-courier.example.com",
}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_prefix(courier_type: CourierType) -> str:
    return courier_type.value.upper()


# ---------------------------------------------------------------------------
# Provider endpoints
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ProviderSettings:
    base_url: str
    tracking_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    webhook_token: str | None = None


def provider_settings(courier_type: CourierType) -> ProviderSettings:
    """Build endpoint settings for a provider from the environment.

    ``<PROVIDER>_TIMEOUT_SECONDS`` wins over ``COURIER_TIMEOUT_SECONDS``;
    both fall back to 30 seconds.
    """
    prefix = _env_prefix(courier_type)
    base_url = os.environ.get(f"{prefix}_BASE_URL", _DEFAULT_BASE_URLS[courier_type]).rstrip("/")
    tracking_url = os.environ.get(f"{prefix}_TRACKING_URL", base_url).rstrip("/")
    timeout = os.environ.get(f"{prefix}_TIMEOUT_SECONDS") or os.environ.get("COURIER_TIMEOUT_SECONDS")
    return ProviderSettings(
        base_url=base_url,
        tracking_url=tracking_url,
        timeout_seconds=float(timeout) if timeout else DEFAULT_TIMEOUT_SECONDS,
        webhook_token=os.environ.get(f"{prefix}_WEBHOOK_TOKEN") or None,
    )


# ---------------------------------------------------------------------------
# Shipping policy
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ShippingPolicy:
    restock_on_rto: bool = True
    ndr_max_attempts: int = 3
    allow_ndr_reopen: bool = False


_current_policy: ShippingPolicy | None = None


def get_policy() -> ShippingPolicy:
    """Return the active shipping policy, loading it from the environment once."""
    global _current_policy
    if _current_policy is None:
        _current_policy = ShippingPolicy(
            restock_on_rto=_env_flag("SHIPPING_RESTOCK_ON_RTO", True),
            ndr_max_attempts=int(os.environ.get("NDR_MAX_ATTEMPTS", "3")),
            allow_ndr_reopen=_env_flag("NDR_ALLOW_REOPEN", False),
        )
    return _current_policy


def set_policy(policy: ShippingPolicy) -> None:
    """Override the active policy (useful for tests)."""
    global _current_policy
    _current_policy = policy


def reset_policy() -> None:
    """Reset to the environment-derived policy."""
    global _current_policy
    _current_policy = None
