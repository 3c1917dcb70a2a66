import pytest
from shipping.ndr.reasons import REASON_LABELS, NdrReason, reason_from_remarks


@pytest.mark.parametrize(
    "remarks,expected",
    [
        ("Customer refused to accept", NdrReason.CUSTOMER_REFUSED),
        ("Consignee phone switched off", NdrReason.CUSTOMER_UNREACHABLE),
        ("Customer not available at address", NdrReason.CUSTOMER_NOT_AVAILABLE),
        ("Incomplete address, landmark missing", NdrReason.INCORRECT_ADDRESS),
        ("Customer asked to reschedule for next day", NdrReason.FUTURE_DELIVERY_REQUESTED),
        ("COD not ready", NdrReason.COD_NOT_READY),
        ("Office closed on Sunday", NdrReason.PREMISES_CLOSED),
        ("Customer out of station", NdrReason.CUSTOMER_OUT_OF_STATION),
        ("Customer requested address change", NdrReason.ADDRESS_CHANGE_REQUESTED),
        ("Wants open delivery", NdrReason.OPEN_DELIVERY_REQUESTED),
        ("Society security did not allow entry", NdrReason.SECURITY_RESTRICTION),
        ("Heavy rain in area", NdrReason.WEATHER_ISSUE),
        ("Package damaged in transit", NdrReason.PRODUCT_DAMAGED),
    ],
)
def test_remarks_classify_into_reason(remarks, expected):
    assert reason_from_remarks(remarks) == expected


def test_matching_ignores_case_and_spacing():
    assert reason_from_remarks("CUSTOMER   REFUSED") == NdrReason.CUSTOMER_REFUSED


def test_unknown_or_missing_remarks_are_other():
    assert reason_from_remarks("Shipment misrouted") == NdrReason.OTHER
    assert reason_from_remarks(None) == NdrReason.OTHER
    assert reason_from_remarks("") == NdrReason.OTHER


def test_every_reason_has_a_label():
    assert set(REASON_LABELS) == set(NdrReason)
