"""Shared BDD fixtures and step definitions for the Shipping domain."""

import pytest
from pytest_bdd import given, parsers, then
from shipping.carrier.contract import CourierType, ShipmentStatus
from shipping.ndr.ndr_case import NdrCase, NdrStatus
from shipping.ndr.reasons import NdrReason
from shipping.settings import ShippingPolicy, set_policy
from shipping.shipment.shipment import Shipment


@pytest.fixture()
def outcome():
    """Holds the TransitionOutcome of the last When step."""
    return None


def _registered_shipment(courier_type: str = CourierType.DELHIVERY.value) -> Shipment:
    shipment = Shipment.register(
        order_reference="ORD-BDD-001",
        courier_type=courier_type,
        awb_number="1234567890123",
        weight_kg=1.5,
        is_cod=True,
        cod_amount=1299.0,
    )
    shipment._events.clear()
    return shipment


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a registered "{courier}" shipment'), target_fixture="shipment")
def registered_shipment(courier):
    return _registered_shipment(CourierType(courier).value)


@given(parsers.cfparse('a shipment in "{status}" status'), target_fixture="shipment")
def shipment_in_status(status):
    shipment = _registered_shipment()
    shipment.status = ShipmentStatus(status).value
    shipment._events.clear()
    return shipment


def _open_case() -> NdrCase:
    case = NdrCase.open(
        shipment_id="ship-bdd-001",
        order_reference="ORD-BDD-001",
        awb_number="1234567890123",
        reason_code=NdrReason.CUSTOMER_NOT_AVAILABLE,
    )
    case._events.clear()
    return case


@given("an open NDR case", target_fixture="case")
def open_case():
    return _open_case()


@given(parsers.cfparse('an NDR case in "{status}" status'), target_fixture="case")
def case_in_status(status):
    case = _open_case()
    case.status = NdrStatus(status).value
    case._events.clear()
    return case


@given(parsers.cfparse("the desk allows {attempts:d} delivery attempts"))
def desk_attempt_limit(attempts):
    set_policy(ShippingPolicy(ndr_max_attempts=attempts))


@given("reopening resolved cases is enabled")
def reopen_enabled():
    set_policy(ShippingPolicy(allow_ndr_reopen=True))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the transition is {result}"))
def transition_result_is(outcome, result):
    assert outcome is not None, "No transition was attempted"
    assert outcome.result.value == result, f"Expected {result}, got {outcome.result.value} ({outcome.message})"


@then(parsers.cfparse('the rejection reason is "{reason}"'))
def rejection_reason_is(outcome, reason):
    assert outcome.is_rejected
    assert outcome.rejection.value == reason
