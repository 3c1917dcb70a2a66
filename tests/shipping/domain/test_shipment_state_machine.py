"""Tests for the Shipment state machine — reconciliation of courier updates."""

import re
from datetime import UTC, datetime

import pytest
from shipping.carrier.contract import CourierType, ShipmentStatus
from shipping.settings import ShippingPolicy, set_policy
from shipping.shipment.events import (
    InventoryRestockRequested,
    ShipmentDelivered,
    ShipmentDeliveryFailed,
    ShipmentRegistered,
    ShipmentStatusChanged,
)
from shipping.shipment.shipment import (
    TERMINAL_STATUSES,
    Shipment,
    TrackingSource,
    check_transition,
    generate_shipment_number,
)
from shipping.transitions import TransitionRejection, TransitionResult


def _delivery():
    return {
        "name": "Asha Rao",
        "phone": "9876543210",
        "address": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postal_code": "560001",
    }


def _shipment(status=None):
    shipment = Shipment.register(
        order_reference="ORD-1001",
        courier_type=CourierType.DELHIVERY.value,
        awb_number="1234567890123",
        weight_kg=2.5,
        is_cod=True,
        cod_amount=1500.0,
        delivery=_delivery(),
    )
    if status is not None:
        shipment.status = status.value
    shipment._events.clear()
    return shipment


def _events_of(shipment, event_cls):
    return [e for e in shipment._events if isinstance(e, event_cls)]


class TestRegistration:
    def test_registered_shipment_starts_created(self):
        shipment = Shipment.register(
            order_reference="ORD-1",
            courier_type=CourierType.BLUEDART.value,
            awb_number="69012345678",
            delivery=_delivery(),
        )
        assert shipment.status == ShipmentStatus.CREATED.value
        assert shipment.delivery.city == "Bengaluru"
        assert len(shipment.tracking_history) == 0

    def test_registration_raises_event(self):
        shipment = Shipment.register(order_reference="ORD-2", courier_type=CourierType.FAKE.value)
        registered = _events_of(shipment, ShipmentRegistered)
        assert len(registered) == 1
        assert registered[0].order_reference == "ORD-2"
        assert registered[0].status == ShipmentStatus.CREATED.value

    def test_shipment_number_format(self):
        number = generate_shipment_number(datetime(2024, 3, 5, 10, 30, 0, tzinfo=UTC))
        assert re.fullmatch(r"SHP-20240305103000-[0-9A-F]{6}", number)


class TestForwardTransitions:
    def test_next_status_is_applied(self):
        shipment = _shipment()
        outcome = shipment.apply_status(ShipmentStatus.MANIFESTED, provider_status="Manifested")

        assert outcome.result == TransitionResult.APPLIED
        assert outcome.previous_status == ShipmentStatus.CREATED.value
        assert outcome.status == ShipmentStatus.MANIFESTED.value
        assert outcome.changed_state
        assert shipment.status == ShipmentStatus.MANIFESTED.value

    def test_applied_status_raises_status_changed(self):
        shipment = _shipment(ShipmentStatus.MANIFESTED)
        shipment.apply_status(ShipmentStatus.PICKED_UP, location="Mumbai")

        changed = _events_of(shipment, ShipmentStatusChanged)
        assert len(changed) == 1
        assert changed[0].previous_status == ShipmentStatus.MANIFESTED.value
        assert changed[0].status == ShipmentStatus.PICKED_UP.value
        assert changed[0].location == "Mumbai"

    def test_skipped_intermediate_scans_are_accepted(self):
        shipment = _shipment(ShipmentStatus.MANIFESTED)
        outcome = shipment.apply_status(ShipmentStatus.OUT_FOR_DELIVERY)
        assert outcome.result == TransitionResult.APPLIED
        assert shipment.status == ShipmentStatus.OUT_FOR_DELIVERY.value

    def test_picked_up_at_is_stamped_when_pickup_is_skipped(self):
        shipment = _shipment(ShipmentStatus.MANIFESTED)
        occurred = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)
        shipment.apply_status(ShipmentStatus.IN_TRANSIT, occurred_at=occurred)
        assert shipment.picked_up_at == occurred

    def test_applied_status_is_recorded_in_history(self):
        shipment = _shipment()
        shipment.apply_status(
            ShipmentStatus.MANIFESTED,
            provider_status="Manifested",
            provider_status_code="UD",
            location="Delhi",
            source=TrackingSource.POLL.value,
        )
        assert len(shipment.tracking_history) == 1
        entry = shipment.tracking_history[0]
        assert entry.status == ShipmentStatus.MANIFESTED.value
        assert entry.provider_status_code == "UD"
        assert entry.source == TrackingSource.POLL.value
        assert entry.outcome == "applied"

    def test_delivery_stamps_recipient_and_raises_delivered(self):
        shipment = _shipment(ShipmentStatus.OUT_FOR_DELIVERY)
        occurred = datetime(2024, 5, 3, 14, 0, tzinfo=UTC)
        shipment.apply_status(ShipmentStatus.DELIVERED, occurred_at=occurred, delivered_to="Self")

        assert shipment.delivered_at == occurred
        assert shipment.delivered_to == "Self"
        delivered = _events_of(shipment, ShipmentDelivered)
        assert len(delivered) == 1
        assert delivered[0].delivered_to == "Self"


class TestIdempotence:
    def test_same_status_twice_is_duplicate(self):
        shipment = _shipment(ShipmentStatus.IN_TRANSIT)
        outcome = shipment.apply_status(ShipmentStatus.IN_TRANSIT, location="Hub B")

        assert outcome.result == TransitionResult.DUPLICATE
        assert not outcome.changed_state
        assert shipment.status == ShipmentStatus.IN_TRANSIT.value

    def test_duplicate_is_kept_in_history_without_status_event(self):
        shipment = _shipment(ShipmentStatus.IN_TRANSIT)
        shipment.apply_status(ShipmentStatus.IN_TRANSIT)

        assert len(shipment.tracking_history) == 1
        assert shipment.tracking_history[0].outcome == "duplicate"
        assert _events_of(shipment, ShipmentStatusChanged) == []

    def test_redelivered_delivery_is_duplicate(self):
        shipment = _shipment(ShipmentStatus.OUT_FOR_DELIVERY)
        shipment.apply_status(ShipmentStatus.DELIVERED)
        shipment._events.clear()

        outcome = shipment.apply_status(ShipmentStatus.DELIVERED)
        assert outcome.result == TransitionResult.DUPLICATE
        assert _events_of(shipment, ShipmentDelivered) == []

    def test_repeated_failure_raises_repeated_delivery_failed(self):
        shipment = _shipment(ShipmentStatus.DELIVERY_FAILED)
        shipment.apply_status(ShipmentStatus.DELIVERY_FAILED, remarks="Customer not available")

        failed = _events_of(shipment, ShipmentDeliveryFailed)
        assert len(failed) == 1
        assert failed[0].repeated is True


class TestMonotonicity:
    def test_regression_is_rejected(self):
        shipment = _shipment(ShipmentStatus.IN_TRANSIT)
        outcome = shipment.apply_status(ShipmentStatus.PICKED_UP)

        assert outcome.is_rejected
        assert outcome.rejection == TransitionRejection.REGRESSION_NOT_ALLOWED
        assert outcome.message == "Cannot transition shipment from InTransit to PickedUp"
        assert shipment.status == ShipmentStatus.IN_TRANSIT.value

    def test_rejected_update_leaves_aggregate_untouched(self):
        shipment = _shipment(ShipmentStatus.OUT_FOR_DELIVERY)
        shipment.apply_status(ShipmentStatus.MANIFESTED)

        assert len(shipment.tracking_history) == 0
        assert shipment._events == []

    def test_reattempt_after_failure_is_allowed(self):
        shipment = _shipment(ShipmentStatus.DELIVERY_FAILED)
        outcome = shipment.apply_status(ShipmentStatus.IN_TRANSIT)
        assert outcome.result == TransitionResult.APPLIED
        assert shipment.status == ShipmentStatus.IN_TRANSIT.value

    def test_out_for_delivery_after_failure_is_a_regression(self):
        shipment = _shipment(ShipmentStatus.DELIVERY_FAILED)
        outcome = shipment.apply_status(ShipmentStatus.OUT_FOR_DELIVERY)
        assert outcome.rejection == TransitionRejection.REGRESSION_NOT_ALLOWED

    def test_rto_leg_cannot_move_backwards(self):
        shipment = _shipment(ShipmentStatus.RTO_IN_TRANSIT)
        outcome = shipment.apply_status(ShipmentStatus.RTO_INITIATED)
        assert outcome.rejection == TransitionRejection.REGRESSION_NOT_ALLOWED

    def test_check_transition_reports_reason(self):
        assert check_transition(ShipmentStatus.OUT_FOR_DELIVERY, ShipmentStatus.DELIVERED) is None
        assert (
            check_transition(ShipmentStatus.RTO_INITIATED, ShipmentStatus.DELIVERY_FAILED)
            == TransitionRejection.REGRESSION_NOT_ALLOWED
        )

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    def test_terminal_statuses_accept_nothing_new(self, terminal):
        shipment = _shipment(terminal)
        outcome = shipment.apply_status(ShipmentStatus.IN_TRANSIT)

        assert outcome.rejection == TransitionRejection.SHIPMENT_IN_TERMINAL_STATE
        assert shipment.status == terminal.value
        assert shipment.is_terminal


class TestUnmappedStatus:
    def test_unmapped_status_is_ignored(self):
        shipment = _shipment(ShipmentStatus.IN_TRANSIT)
        outcome = shipment.apply_status(None, provider_status="Held at hub", provider_status_code="NS")

        assert outcome.result == TransitionResult.IGNORED
        assert outcome.rejection == TransitionRejection.UNMAPPED_STATUS
        assert not outcome.mutated
        assert shipment.status == ShipmentStatus.IN_TRANSIT.value
        assert len(shipment.tracking_history) == 0
        assert shipment._events == []


class TestAbort:
    def test_cancel_from_non_terminal(self):
        shipment = _shipment(ShipmentStatus.MANIFESTED)
        outcome = shipment.cancel("Merchant request")

        assert outcome.result == TransitionResult.APPLIED
        assert shipment.status == ShipmentStatus.CANCELLED.value
        assert shipment.cancelled_at is not None
        assert shipment.tracking_history[0].source == TrackingSource.MANUAL.value

    def test_cancel_after_delivery_is_rejected(self):
        shipment = _shipment(ShipmentStatus.DELIVERED)
        outcome = shipment.cancel()
        assert outcome.rejection == TransitionRejection.SHIPMENT_IN_TERMINAL_STATE

    def test_lost_from_rto_leg(self):
        shipment = _shipment(ShipmentStatus.RTO_IN_TRANSIT)
        outcome = shipment.apply_status(ShipmentStatus.LOST)
        assert outcome.result == TransitionResult.APPLIED
        assert shipment.is_terminal


class TestDeliveryFailure:
    def test_first_failure_raises_delivery_failed(self):
        shipment = _shipment(ShipmentStatus.OUT_FOR_DELIVERY)
        shipment.apply_status(
            ShipmentStatus.DELIVERY_FAILED,
            provider_status="Undelivered",
            provider_status_code="ND",
            remarks="Customer refused",
        )

        failed = _events_of(shipment, ShipmentDeliveryFailed)
        assert len(failed) == 1
        assert failed[0].repeated is False
        assert failed[0].remarks == "Customer refused"
        assert failed[0].provider_status_code == "ND"


class TestReturnToOrigin:
    def test_rto_requests_restock_once(self):
        shipment = _shipment(ShipmentStatus.DELIVERY_FAILED)
        shipment.apply_status(ShipmentStatus.RTO_INITIATED)
        shipment.apply_status(ShipmentStatus.RTO_IN_TRANSIT)
        shipment.apply_status(ShipmentStatus.RTO_DELIVERED)

        restocks = _events_of(shipment, InventoryRestockRequested)
        assert len(restocks) == 1
        assert restocks[0].status == ShipmentStatus.RTO_INITIATED.value
        assert shipment.restock_requested is True

    def test_return_leg_scan_alone_does_not_restock(self):
        shipment = _shipment(ShipmentStatus.DELIVERY_FAILED)
        shipment.apply_status(ShipmentStatus.RTO_IN_TRANSIT)

        assert _events_of(shipment, InventoryRestockRequested) == []
        assert shipment.restock_requested is False

        shipment.apply_status(ShipmentStatus.RTO_DELIVERED)
        restocks = _events_of(shipment, InventoryRestockRequested)
        assert [restock.status for restock in restocks] == [ShipmentStatus.RTO_DELIVERED.value]

    def test_rto_stamps_initiation_time(self):
        shipment = _shipment(ShipmentStatus.DELIVERY_FAILED)
        occurred = datetime(2024, 6, 1, 8, 0, tzinfo=UTC)
        shipment.apply_status(ShipmentStatus.RTO_INITIATED, occurred_at=occurred)
        assert shipment.rto_initiated_at == occurred

    def test_restock_is_skipped_when_policy_disables_it(self):
        set_policy(ShippingPolicy(restock_on_rto=False))
        shipment = _shipment(ShipmentStatus.DELIVERY_FAILED)
        shipment.apply_status(ShipmentStatus.RTO_INITIATED)

        assert _events_of(shipment, InventoryRestockRequested) == []
        assert shipment.restock_requested is False
