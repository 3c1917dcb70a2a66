"""NDR reason codes and the keyword mapping from courier remarks."""

from enum import Enum


class NdrReason(Enum):
    CUSTOMER_NOT_AVAILABLE = "CustomerNotAvailable"
    CUSTOMER_REFUSED = "CustomerRefused"
    INCORRECT_ADDRESS = "IncorrectAddress"
    FUTURE_DELIVERY_REQUESTED = "FutureDeliveryRequested"
    CUSTOMER_UNREACHABLE = "CustomerUnreachable"
    PREMISES_CLOSED = "PremisesClosed"
    CUSTOMER_OUT_OF_STATION = "CustomerOutOfStation"
    COD_NOT_READY = "CODNotReady"
    ADDRESS_CHANGE_REQUESTED = "AddressChangeRequested"
    PRODUCT_DAMAGED = "ProductDamaged"
    OPEN_DELIVERY_REQUESTED = "OpenDeliveryRequested"
    SECURITY_RESTRICTION = "SecurityRestriction"
    WEATHER_ISSUE = "WeatherIssue"
    OTHER = "Other"


REASON_LABELS = {
    NdrReason.CUSTOMER_NOT_AVAILABLE: "Customer Not Available",
    NdrReason.CUSTOMER_REFUSED: "Customer Refused",
    NdrReason.INCORRECT_ADDRESS: "Address Incomplete/Incorrect",
    NdrReason.FUTURE_DELIVERY_REQUESTED: "Future Delivery Requested",
    NdrReason.CUSTOMER_UNREACHABLE: "Customer Unreachable",
    NdrReason.PREMISES_CLOSED: "Premises Closed",
    NdrReason.CUSTOMER_OUT_OF_STATION: "Customer Out of Station",
    NdrReason.COD_NOT_READY: "COD Amount Not Ready",
    NdrReason.ADDRESS_CHANGE_REQUESTED: "Address Change Requested",
    NdrReason.PRODUCT_DAMAGED: "Product Damaged",
    NdrReason.OPEN_DELIVERY_REQUESTED: "Open Delivery Requested",
    NdrReason.SECURITY_RESTRICTION: "Security Restriction",
    NdrReason.WEATHER_ISSUE: "Weather Issue",
    NdrReason.OTHER: "Other",
}

# First match wins, so specific phrases precede generic ones.
_KEYWORDS: tuple[tuple[NdrReason, tuple[str, ...]], ...] = (
    (NdrReason.COD_NOT_READY, ("cod not ready", "cash not ready", "no cash", "amount not ready", "payment not ready")),
    (NdrReason.ADDRESS_CHANGE_REQUESTED, ("address change", "change address", "change of address", "change in address")),
    (
        NdrReason.INCORRECT_ADDRESS,
        ("incorrect address", "wrong address", "incomplete address", "address incomplete", "address not found",
         "bad address", "unlocatable", "address issue"),
    ),
    (NdrReason.OPEN_DELIVERY_REQUESTED, ("open delivery", "open box", "open the package", "check before")),
    (
        NdrReason.FUTURE_DELIVERY_REQUESTED,
        ("future delivery", "deliver later", "reschedul", "next day", "later date", "asked to come"),
    ),
    (NdrReason.CUSTOMER_REFUSED, ("refus", "rejected", "not accept", "denied delivery", "does not want")),
    (NdrReason.CUSTOMER_OUT_OF_STATION, ("out of station", "out of town", "not in station", "out of city")),
    (NdrReason.PREMISES_CLOSED, ("premises closed", "office closed", "shop closed", "door locked", "house locked")),
    (
        NdrReason.CUSTOMER_UNREACHABLE,
        ("unreachable", "not reachable", "switched off", "not answering", "no response", "not contactable",
         "phone not picked", "call not answered"),
    ),
    (NdrReason.CUSTOMER_NOT_AVAILABLE, ("not available", "unavailable", "not at home", "nobody at home")),
    (NdrReason.PRODUCT_DAMAGED, ("damage",)),
    (NdrReason.SECURITY_RESTRICTION, ("security", "entry restricted", "no entry", "entry not allowed")),
    (NdrReason.WEATHER_ISSUE, ("weather", "heavy rain", "flood", "cyclone")),
)


def reason_from_remarks(text: str | None) -> NdrReason:
    """Classify free-text courier remarks into an NDR reason."""
    if not text:
        return NdrReason.OTHER
    lowered = " ".join(text.lower().split())
    for reason, keywords in _KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return reason
    return NdrReason.OTHER
