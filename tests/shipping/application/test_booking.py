"""Application tests for the booking service against the fake courier."""

import asyncio
from decimal import Decimal

import pytest
from protean import current_domain
from shipping import carrier
from shipping.carrier import get_adapter, set_adapter
from shipping.carrier.contract import (
    CourierAccount,
    CourierCredentials,
    CourierType,
    Party,
    RateRequest,
    ShipmentItem,
    ShipmentRequest,
    ShipmentStatus,
)
from shipping.carrier.fake_adapter import FakeCourier
from shipping.shipment.booking import book_shipment, cancel_booking, quote_rates, sync_tracking
from shipping.shipment.registration import RegisterShipment, find_by_order_reference
from shipping.shipment.shipment import Shipment, TrackingSource
from shipping.shipment.tracking import record_courier_status
from shipping.transitions import TransitionResult


@pytest.fixture()
def fake():
    courier = FakeCourier()
    set_adapter(CourierType.FAKE, courier)
    return courier


@pytest.fixture()
def account():
    return CourierAccount(CourierType.FAKE, CourierCredentials(api_key="test-key"), name="Fake Express")


def _party(name, postal_code):
    return Party(
        name=name,
        phone="9876543210",
        address="12 MG Road",
        city="Bengaluru",
        state="Karnataka",
        postal_code=postal_code,
    )


def _request(order_reference="ORD-1001", delivery_postal_code="560001"):
    return ShipmentRequest(
        order_reference=order_reference,
        pickup=_party("Warehouse", "400001"),
        delivery=_party("Asha Rao", delivery_postal_code),
        weight_kg=Decimal("2.5"),
        items=(ShipmentItem("Kurta", 1, Decimal("1500")),),
        declared_value=Decimal("1500"),
        is_cod=True,
        cod_amount=Decimal("1500"),
    )


class TestBookShipment:
    async def test_cod_booking_returns_awb_and_created_status(self, fake, account):
        result = await book_shipment(account, _request())

        assert result.ok
        confirmation = result.data
        assert confirmation.awb_number.startswith("FAKE-")
        assert confirmation.status == ShipmentStatus.CREATED.value
        assert not confirmation.already_booked

        shipment = current_domain.repository_for(Shipment).get(confirmation.shipment_id)
        assert shipment.courier_type == CourierType.FAKE.value
        assert shipment.weight_kg == 2.5
        assert shipment.cod_amount == 1500.0
        assert shipment.delivery.postal_code == "560001"
        assert shipment.tracking_url == confirmation.tracking_url

    async def test_rebooking_same_order_returns_existing_shipment(self, fake, account):
        first = await book_shipment(account, _request())
        second = await book_shipment(account, _request())

        assert second.data.already_booked
        assert second.data.shipment_id == first.data.shipment_id
        assert second.data.awb_number == first.data.awb_number
        assert [call["method"] for call in fake.calls].count("create_shipment") == 1

    async def test_courier_failure_registers_nothing(self, fake, account):
        fake.configure(should_succeed=False, failure_reason="Manifest rejected")
        result = await book_shipment(account, _request())

        assert not result.ok
        assert result.error_message == "Manifest rejected"
        assert find_by_order_reference("ORD-1001") is None

    async def test_transport_fault_is_reported_as_such(self, fake, account):
        fake.configure(transport_error="Fake request timed out during create_shipment")
        result = await book_shipment(account, _request())

        assert result.is_transport_failure
        assert find_by_order_reference("ORD-1001") is None

    async def test_inactive_account_is_refused(self, fake):
        account = CourierAccount(CourierType.FAKE, CourierCredentials(api_key="k"), name="Old", is_active=False)
        result = await book_shipment(account, _request())

        assert result.error_code == "inactive_account"
        assert fake.calls == []

    async def test_unregistered_courier_is_refused(self, account, monkeypatch):
        monkeypatch.delitem(carrier._factories, CourierType.FAKE)
        carrier._adapter_instances.pop(CourierType.FAKE, None)

        result = await book_shipment(account, _request())

        assert result.error_code == "unsupported_courier"


class SlowCourier(FakeCourier):
    """Yields to the event loop mid-booking, as a real HTTP call would."""

    async def create_shipment(self, credentials, request):
        await asyncio.sleep(0.01)
        return await super().create_shipment(credentials, request)


class RacedCourier(FakeCourier):
    """Another worker registers the order while this booking is in flight."""

    async def create_shipment(self, credentials, request):
        current_domain.process(
            RegisterShipment(
                order_reference=request.order_reference,
                courier_type=CourierType.FAKE.value,
                awb_number="FAKE-OTHERWORKER",
            ),
            asynchronous=False,
        )
        return await super().create_shipment(credentials, request)


class TestConcurrentBooking:
    async def test_same_order_is_booked_with_the_courier_once(self, account):
        slow = SlowCourier()
        set_adapter(CourierType.FAKE, slow)

        first, second = await asyncio.gather(book_shipment(account, _request()), book_shipment(account, _request()))

        assert [call["method"] for call in slow.calls].count("create_shipment") == 1
        assert first.data.shipment_id == second.data.shipment_id
        assert first.data.awb_number == second.data.awb_number
        assert sorted([first.data.already_booked, second.data.already_booked]) == [False, True]

    async def test_different_orders_are_not_serialized_together(self, account):
        slow = SlowCourier()
        set_adapter(CourierType.FAKE, slow)

        first, second = await asyncio.gather(
            book_shipment(account, _request("ORD-1001")), book_shipment(account, _request("ORD-1002"))
        )

        assert first.data.shipment_id != second.data.shipment_id
        assert [call["method"] for call in slow.calls].count("create_shipment") == 2

    async def test_surplus_awb_is_cancelled(self, account):
        raced = RacedCourier()
        set_adapter(CourierType.FAKE, raced)

        result = await book_shipment(account, _request())

        assert result.ok
        assert result.data.already_booked
        assert result.data.awb_number == "FAKE-OTHERWORKER"
        surplus = raced.calls[-1]
        assert surplus["method"] == "cancel_shipment"
        assert surplus["awb_number"].startswith("FAKE-")
        assert surplus["awb_number"] != "FAKE-OTHERWORKER"


class TestQuoteRates:
    async def test_rates_are_cheapest_first(self, fake, account):
        request = RateRequest("400001", "560001", Decimal("2.5"), is_cod=True, cod_amount=Decimal("1500"))
        result = await quote_rates(account, request)

        assert result.ok
        totals = [rate.total_charge for rate in result.data]
        assert totals == sorted(totals)

    async def test_unserviceable_pincode_fails_without_rates(self, fake, account):
        fake.configure(unserviceable_postal_codes={"999999"})
        result = await quote_rates(account, RateRequest("400001", "999999", Decimal("1")))

        assert not result.ok
        assert result.data is None
        assert "999999" in result.error_message


class TestCancelBooking:
    async def test_cancel_with_courier_then_shipment(self, fake, account):
        booked = await book_shipment(account, _request())
        result = await cancel_booking(account, booked.data.shipment_id)

        assert result.ok
        assert result.data.result == TransitionResult.APPLIED
        shipment = current_domain.repository_for(Shipment).get(booked.data.shipment_id)
        assert shipment.status == ShipmentStatus.CANCELLED.value
        assert shipment.tracking_history[-1].source == TrackingSource.MANUAL.value
        assert any(call["method"] == "cancel_shipment" for call in fake.calls)

    async def test_courier_refusal_keeps_shipment(self, fake, account):
        booked = await book_shipment(account, _request())
        fake.configure(should_succeed=False, failure_reason="Already manifested")

        result = await cancel_booking(account, booked.data.shipment_id)

        assert not result.ok
        shipment = current_domain.repository_for(Shipment).get(booked.data.shipment_id)
        assert shipment.status == ShipmentStatus.CREATED.value

    async def test_delivered_shipment_cannot_be_cancelled(self, fake, account):
        booked = await book_shipment(account, _request())
        record_courier_status(ShipmentStatus.OUT_FOR_DELIVERY, shipment_id=booked.data.shipment_id)
        record_courier_status(ShipmentStatus.DELIVERED, shipment_id=booked.data.shipment_id)

        result = await cancel_booking(account, booked.data.shipment_id)

        assert result.error_code == "invalid_state"
        assert not any(call["method"] == "cancel_shipment" for call in fake.calls)


class TestSyncTracking:
    async def test_polled_status_is_reconciled(self, fake, account):
        booked = await book_shipment(account, _request())
        result = await sync_tracking(account, booked.data.shipment_id)

        assert result.ok
        assert result.data.result == TransitionResult.APPLIED
        shipment = current_domain.repository_for(Shipment).get(booked.data.shipment_id)
        assert shipment.status == ShipmentStatus.IN_TRANSIT.value
        entry = shipment.tracking_history[-1]
        assert entry.source == TrackingSource.POLL.value
        assert entry.location == "Hub, Bhiwandi"
        assert entry.remarks == "Arrived at hub"

    async def test_shipment_without_awb_cannot_be_polled(self, account):
        shipment_id = current_domain.process(
            RegisterShipment(order_reference="ORD-NOAWB", courier_type=CourierType.FAKE.value),
            asynchronous=False,
        )
        result = await sync_tracking(account, shipment_id)
        assert result.error_code == "missing_awb"

    async def test_registry_hands_out_the_configured_fake(self, fake, account):
        assert get_adapter(account) is fake
