"""Courier adapter registry — pluggable courier provider integration.

Maps each courier type to a factory and hands out one adapter instance per
type. Command handlers resolve adapters from a tenant's courier account;
tests swap in fakes with ``set_adapter`` and clear state with
``reset_adapters``.
"""

from collections.abc import Callable

from shipping.carrier.contract import CourierAccount, CourierType
from shipping.carrier.port import CourierAdapter


class UnsupportedCourierError(ValueError):
    """No adapter is registered for the requested courier type."""


def _delhivery() -> CourierAdapter:
    from shipping.carrier.delhivery import DelhiveryAdapter

    return DelhiveryAdapter()


def _bluedart() -> CourierAdapter:
    from shipping.carrier.bluedart import BlueDartAdapter

    return BlueDartAdapter()


def _fake() -> CourierAdapter:
    from shipping.carrier.fake_adapter import FakeCourier

    return FakeCourier()


_DEFAULT_FACTORIES: dict[CourierType, Callable[[], CourierAdapter]] = {
    CourierType.DELHIVERY: _delhivery,
    CourierType.BLUEDART: _bluedart,
    CourierType.FAKE: _fake,
}

_factories: dict[CourierType, Callable[[], CourierAdapter]] = dict(_DEFAULT_FACTORIES)
_adapter_instances: dict[CourierType, CourierAdapter] = {}


def register_adapter(courier_type: CourierType, factory: Callable[[], CourierAdapter]) -> None:
    """Register (or replace) the factory used to build a courier's adapter."""
    _factories[courier_type] = factory
    _adapter_instances.pop(courier_type, None)


def has_adapter(courier_type: CourierType) -> bool:
    return courier_type in _factories


def registered_couriers() -> list[CourierType]:
    return list(_factories)


def get_adapter(courier: CourierType | CourierAccount) -> CourierAdapter:
    """Return the adapter for a courier type or account (singleton per type)."""
    courier_type = courier.courier_type if isinstance(courier, CourierAccount) else courier
    if courier_type not in _adapter_instances:
        factory = _factories.get(courier_type)
        if factory is None:
            raise UnsupportedCourierError(f"No adapter registered for courier: {courier_type.value}")
        _adapter_instances[courier_type] = factory()
    return _adapter_instances[courier_type]


def set_adapter(courier_type: CourierType, adapter: CourierAdapter) -> None:
    """Override the live adapter for a courier (useful for tests)."""
    _adapter_instances[courier_type] = adapter


def reset_adapters() -> None:
    """Restore default factories and drop cached adapters (useful for testing)."""
    _factories.clear()
    _factories.update(_DEFAULT_FACTORIES)
    _adapter_instances.clear()
