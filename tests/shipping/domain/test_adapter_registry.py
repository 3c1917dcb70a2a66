"""Courier adapter registry: lookup by type or account, overrides and reset."""

import pytest
from shipping.carrier import (
    UnsupportedCourierError,
    get_adapter,
    has_adapter,
    register_adapter,
    registered_couriers,
    reset_adapters,
    set_adapter,
)
from shipping.carrier.bluedart import BlueDartAdapter
from shipping.carrier.contract import CourierAccount, CourierCredentials, CourierType
from shipping.carrier.delhivery import DelhiveryAdapter
from shipping.carrier.fake_adapter import FakeCourier


class TestLookup:
    def test_every_courier_type_is_registered(self):
        assert set(registered_couriers()) == set(CourierType)

    def test_resolves_by_type(self):
        assert isinstance(get_adapter(CourierType.DELHIVERY), DelhiveryAdapter)
        assert isinstance(get_adapter(CourierType.BLUEDART), BlueDartAdapter)

    def test_resolves_by_account(self):
        account = CourierAccount(CourierType.BLUEDART, CourierCredentials(api_key="login"))
        assert get_adapter(account) is get_adapter(CourierType.BLUEDART)

    def test_one_instance_per_type(self):
        assert get_adapter(CourierType.DELHIVERY) is get_adapter(CourierType.DELHIVERY)

    def test_adapter_reports_its_courier(self):
        assert get_adapter(CourierType.DELHIVERY).courier_type == CourierType.DELHIVERY


class TestOverrides:
    def test_set_adapter_replaces_live_instance(self):
        fake = FakeCourier()
        set_adapter(CourierType.DELHIVERY, fake)
        assert get_adapter(CourierType.DELHIVERY) is fake

    def test_register_adapter_rebuilds_from_new_factory(self):
        get_adapter(CourierType.BLUEDART)
        fake = FakeCourier()
        register_adapter(CourierType.BLUEDART, lambda: fake)
        assert get_adapter(CourierType.BLUEDART) is fake

    def test_unregistered_type_raises(self, monkeypatch):
        from shipping import carrier

        monkeypatch.delitem(carrier._factories, CourierType.FAKE)
        carrier._adapter_instances.pop(CourierType.FAKE, None)

        assert not has_adapter(CourierType.FAKE)
        with pytest.raises(UnsupportedCourierError):
            get_adapter(CourierType.FAKE)

    def test_reset_restores_defaults(self):
        set_adapter(CourierType.DELHIVERY, FakeCourier())
        reset_adapters()
        assert isinstance(get_adapter(CourierType.DELHIVERY), DelhiveryAdapter)
