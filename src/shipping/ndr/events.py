"""NDR case domain events."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from shipping.domain import shipping


@shipping.event(part_of="NdrCase")
class NdrCaseOpened:
    """A non-delivery case was opened after a failed delivery attempt."""

    __version__ = "v1"

    ndr_case_id = Identifier(required=True)
    shipment_id = Identifier(required=True)
    order_reference = String()
    awb_number = String()
    reason_code = String(required=True)
    reason_description = Text()
    opened_at = DateTime(required=True)


@shipping.event(part_of="NdrCase")
class NdrCaseAssigned:
    """An agent was assigned (or reassigned) to a case."""

    __version__ = "v1"

    ndr_case_id = Identifier(required=True)
    assigned_to = String(required=True)
    previous_assignee = String()
    assigned_at = DateTime(required=True)


@shipping.event(part_of="NdrCase")
class NdrActionLogged:
    """An agent contacted the customer or annotated the case."""

    __version__ = "v1"

    ndr_case_id = Identifier(required=True)
    action_type = String(required=True)
    performed_by = String()
    outcome = String()
    performed_at = DateTime(required=True)


@shipping.event(part_of="NdrCase")
class NdrStatusChanged:
    """A case moved between workflow statuses."""

    __version__ = "v1"

    ndr_case_id = Identifier(required=True)
    shipment_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    changed_by = String()
    changed_at = DateTime(required=True)


@shipping.event(part_of="NdrCase")
class NdrReattemptScheduled:
    """A delivery reattempt was booked with the courier."""

    __version__ = "v1"

    ndr_case_id = Identifier(required=True)
    shipment_id = Identifier(required=True)
    awb_number = String()
    reattempt_at = DateTime(required=True)
    scheduled_by = String()


@shipping.event(part_of="NdrCase")
class NdrDeliveryAttemptFailed:
    """Another delivery attempt failed while the case was open."""

    __version__ = "v1"

    ndr_case_id = Identifier(required=True)
    shipment_id = Identifier(required=True)
    attempt_count = Integer(required=True)
    reason_code = String()
    failed_at = DateTime(required=True)


@shipping.event(part_of="NdrCase")
class NdrCaseEscalated:
    """A case was escalated, manually or after too many failed attempts."""

    __version__ = "v1"

    ndr_case_id = Identifier(required=True)
    shipment_id = Identifier(required=True)
    attempt_count = Integer(required=True)
    escalated_by = String()
    escalated_at = DateTime(required=True)


@shipping.event(part_of="NdrCase")
class NdrCaseResolved:
    """A case reached a terminal status."""

    __version__ = "v1"

    ndr_case_id = Identifier(required=True)
    shipment_id = Identifier(required=True)
    status = String(required=True)
    resolution = Text()
    resolved_by = String()
    resolved_at = DateTime(required=True)


@shipping.event(part_of="NdrCase")
class NdrCaseReopened:
    """A resolved case was reopened under a policy that permits it."""

    __version__ = "v1"

    ndr_case_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    reopened_by = String()
    reopened_at = DateTime(required=True)


@shipping.event(part_of="NdrCase")
class NdrRtoRequested:
    """The NDR desk decided to return the shipment to origin."""

    __version__ = "v1"

    ndr_case_id = Identifier(required=True)
    shipment_id = Identifier(required=True)
    awb_number = String()
    requested_by = String()
    remarks = Text()
    requested_at = DateTime(required=True)
