"""NdrCase aggregate (CQRS) — non-delivery report workflow.

An NDR case is opened when a delivery attempt fails and tracks the desk's
work to rescue the delivery: assignment, customer contact, reattempts,
escalation and explicit resolution. Every action and status change is
appended to ``actions``; entries are never edited.

State Machine:
    OPEN → {ASSIGNED, CUSTOMER_CONTACTED, REATTEMPT_SCHEDULED, RTO_INITIATED, ESCALATED}
    ASSIGNED → {CUSTOMER_CONTACTED, REATTEMPT_SCHEDULED, RTO_INITIATED, ESCALATED}
    CUSTOMER_CONTACTED → {REATTEMPT_SCHEDULED, RTO_INITIATED, ESCALATED, CLOSED_ADDRESS_UPDATED}
    REATTEMPT_SCHEDULED → {REATTEMPT_IN_PROGRESS, RTO_INITIATED, ESCALATED}
    REATTEMPT_IN_PROGRESS → {DELIVERED, RTO_INITIATED, REATTEMPT_SCHEDULED, ESCALATED}
    ESCALATED → {REATTEMPT_SCHEDULED, RTO_INITIATED, CLOSED_DELIVERED, CLOSED_RTO, CLOSED_ADDRESS_UPDATED}
    RTO_INITIATED → CLOSED_RTO

Resolved cases (DELIVERED and CLOSED_*) stay resolved unless the reopen
policy is switched on.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from shipping.domain import shipping
from shipping.ndr.events import (
    NdrActionLogged,
    NdrCaseAssigned,
    NdrCaseEscalated,
    NdrCaseOpened,
    NdrCaseReopened,
    NdrCaseResolved,
    NdrDeliveryAttemptFailed,
    NdrReattemptScheduled,
    NdrRtoRequested,
    NdrStatusChanged,
)
from shipping.ndr.reasons import REASON_LABELS, NdrReason
from shipping.settings import get_policy
from shipping.transitions import TransitionOutcome, TransitionRejection

SYSTEM_ACTOR = "system"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NdrStatus(Enum):
    OPEN = "Open"
    ASSIGNED = "Assigned"
    CUSTOMER_CONTACTED = "CustomerContacted"
    REATTEMPT_SCHEDULED = "ReattemptScheduled"
    REATTEMPT_IN_PROGRESS = "ReattemptInProgress"
    ESCALATED = "Escalated"
    RTO_INITIATED = "RTOInitiated"
    DELIVERED = "Delivered"
    CLOSED_DELIVERED = "ClosedDelivered"
    CLOSED_RTO = "ClosedRTO"
    CLOSED_ADDRESS_UPDATED = "ClosedAddressUpdated"


class NdrActionType(Enum):
    PHONE_CALL = "PhoneCall"
    WHATSAPP_MESSAGE = "WhatsAppMessage"
    SMS = "SMS"
    EMAIL = "Email"
    REMARK_ADDED = "RemarkAdded"
    CALLBACK_SCHEDULED = "CallbackScheduled"
    REATTEMPT_REQUESTED = "ReattemptRequested"
    ADDRESS_UPDATED = "AddressUpdated"
    RTO_INITIATED = "RTOInitiated"
    ESCALATED = "Escalated"
    ASSIGNED = "Assigned"
    STATUS_CHANGED = "StatusChanged"
    DELIVERY_ATTEMPT_FAILED = "DeliveryAttemptFailed"
    COURIER_UPDATE = "CourierUpdate"
    CASE_OPENED = "CaseOpened"
    CASE_REOPENED = "CaseReopened"


class ContactOutcome(Enum):
    CONNECTED = "Connected"
    RESPONDED = "Responded"
    NO_ANSWER = "NoAnswer"
    BUSY = "Busy"
    SWITCHED_OFF = "SwitchedOff"
    WRONG_NUMBER = "WrongNumber"
    NOT_RESPONDED = "NotResponded"
    SENT = "Sent"


CONTACT_ACTIONS = frozenset(
    {NdrActionType.PHONE_CALL, NdrActionType.WHATSAPP_MESSAGE, NdrActionType.SMS, NdrActionType.EMAIL}
)
# Reattempts, RTO, escalation and status moves have their own commands
LOGGABLE_ACTIONS = CONTACT_ACTIONS | {NdrActionType.REMARK_ADDED, NdrActionType.CALLBACK_SCHEDULED}
SUCCESSFUL_CONTACT_OUTCOMES = frozenset({ContactOutcome.CONNECTED.value, ContactOutcome.RESPONDED.value})

_VALID_TRANSITIONS = {
    NdrStatus.OPEN: {
        NdrStatus.ASSIGNED,
        NdrStatus.CUSTOMER_CONTACTED,
        NdrStatus.REATTEMPT_SCHEDULED,
        NdrStatus.RTO_INITIATED,
        NdrStatus.ESCALATED,
    },
    NdrStatus.ASSIGNED: {
        NdrStatus.CUSTOMER_CONTACTED,
        NdrStatus.REATTEMPT_SCHEDULED,
        NdrStatus.RTO_INITIATED,
        NdrStatus.ESCALATED,
    },
    NdrStatus.CUSTOMER_CONTACTED: {
        NdrStatus.REATTEMPT_SCHEDULED,
        NdrStatus.RTO_INITIATED,
        NdrStatus.ESCALATED,
        NdrStatus.CLOSED_ADDRESS_UPDATED,
    },
    NdrStatus.REATTEMPT_SCHEDULED: {
        NdrStatus.REATTEMPT_IN_PROGRESS,
        NdrStatus.RTO_INITIATED,
        NdrStatus.ESCALATED,
    },
    NdrStatus.REATTEMPT_IN_PROGRESS: {
        NdrStatus.DELIVERED,
        NdrStatus.RTO_INITIATED,
        NdrStatus.REATTEMPT_SCHEDULED,
        NdrStatus.ESCALATED,
    },
    NdrStatus.ESCALATED: {
        NdrStatus.REATTEMPT_SCHEDULED,
        NdrStatus.RTO_INITIATED,
        NdrStatus.CLOSED_DELIVERED,
        NdrStatus.CLOSED_RTO,
        NdrStatus.CLOSED_ADDRESS_UPDATED,
    },
    NdrStatus.RTO_INITIATED: {NdrStatus.CLOSED_RTO},
    NdrStatus.DELIVERED: set(),  # terminal
    NdrStatus.CLOSED_DELIVERED: set(),  # terminal
    NdrStatus.CLOSED_RTO: set(),  # terminal
    NdrStatus.CLOSED_ADDRESS_UPDATED: set(),  # terminal
}

RESOLVED_STATUSES = frozenset(
    {
        NdrStatus.DELIVERED,
        NdrStatus.CLOSED_DELIVERED,
        NdrStatus.CLOSED_RTO,
        NdrStatus.CLOSED_ADDRESS_UPDATED,
    }
)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@shipping.entity(part_of="NdrCase")
class NdrAction:
    """One entry of the case's audit trail."""

    action_type = String(required=True, max_length=50, choices=NdrActionType)
    performed_by = String(max_length=100)
    performed_at = DateTime(required=True)
    outcome = String(max_length=50)
    details = Text()
    status_from = String(max_length=50)
    status_to = String(max_length=50)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@shipping.aggregate
class NdrCase:
    shipment_id = Identifier(required=True)
    order_reference = String(max_length=100)
    awb_number = String(max_length=50)
    status = String(
        choices=NdrStatus,
        default=NdrStatus.OPEN.value,
    )
    reason_code = String(
        choices=NdrReason,
        default=NdrReason.OTHER.value,
    )
    reason_description = Text()
    ndr_date = DateTime()
    assigned_to = String(max_length=100)
    assigned_at = DateTime()
    attempt_count = Integer(default=1, min_value=1)
    next_reattempt_at = DateTime()
    escalated_at = DateTime()
    resolved_at = DateTime()
    resolution = Text()
    remarks = Text()
    actions = HasMany(NdrAction)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def open(
        cls,
        shipment_id: str,
        order_reference: str | None = None,
        awb_number: str | None = None,
        reason_code: NdrReason = NdrReason.OTHER,
        reason_description: str | None = None,
        occurred_at: datetime | None = None,
    ):
        """Open a case for a shipment whose delivery attempt failed."""
        now = datetime.now(UTC)
        case = cls(
            shipment_id=shipment_id,
            order_reference=order_reference,
            awb_number=awb_number,
            status=NdrStatus.OPEN.value,
            reason_code=reason_code.value,
            reason_description=reason_description or REASON_LABELS[reason_code],
            ndr_date=occurred_at or now,
            attempt_count=1,
            created_at=now,
            updated_at=now,
        )
        case._log(
            NdrActionType.CASE_OPENED,
            SYSTEM_ACTOR,
            details=reason_description,
            status_to=NdrStatus.OPEN,
            at=now,
        )
        case.raise_(
            NdrCaseOpened(
                ndr_case_id=str(case.id),
                shipment_id=shipment_id,
                order_reference=order_reference,
                awb_number=awb_number,
                reason_code=reason_code.value,
                reason_description=case.reason_description,
                opened_at=now,
            )
        )
        return case

    @property
    def is_resolved(self) -> bool:
        return NdrStatus(self.status) in RESOLVED_STATUSES

    # -------------------------------------------------------------------
    # Transition helpers
    # -------------------------------------------------------------------
    def _rejected(self, rejection: TransitionRejection, message: str) -> TransitionOutcome:
        return TransitionOutcome.rejected(self.status, rejection, message)

    def _check_transition(self, target: NdrStatus) -> TransitionOutcome | None:
        current = NdrStatus(self.status)
        if current in RESOLVED_STATUSES:
            if target in RESOLVED_STATUSES:
                return self._rejected(TransitionRejection.CASE_ALREADY_RESOLVED, f"Case is already resolved as {current.value}")
            return self._rejected(
                TransitionRejection.CANNOT_REOPEN_RESOLVED_CASE,
                f"Cannot reopen resolved case ({current.value}) as {target.value}",
            )
        if target not in _VALID_TRANSITIONS[current]:
            return self._rejected(
                TransitionRejection.INVALID_TRANSITION,
                f"Cannot transition case from {current.value} to {target.value}",
            )
        return None

    def _check_open(self) -> TransitionOutcome | None:
        if self.is_resolved:
            return self._rejected(TransitionRejection.CASE_ALREADY_RESOLVED, f"Case is already resolved as {self.status}")
        return None

    def _log(
        self,
        action_type: NdrActionType,
        performed_by: str | None,
        outcome: str | None = None,
        details: str | None = None,
        status_from: NdrStatus | None = None,
        status_to: NdrStatus | None = None,
        at: datetime | None = None,
    ) -> None:
        self.add_actions(
            NdrAction(
                action_type=action_type.value,
                performed_by=performed_by or SYSTEM_ACTOR,
                performed_at=at or datetime.now(UTC),
                outcome=outcome,
                details=details,
                status_from=status_from.value if status_from else None,
                status_to=status_to.value if status_to else None,
            )
        )

    def _move(
        self,
        target: NdrStatus,
        performed_by: str | None,
        action_type: NdrActionType = NdrActionType.STATUS_CHANGED,
        outcome: str | None = None,
        details: str | None = None,
    ) -> TransitionOutcome:
        """Apply an already validated status change and record it."""
        now = datetime.now(UTC)
        previous = NdrStatus(self.status)
        self.status = target.value
        self.updated_at = now
        self._log(action_type, performed_by, outcome, details, previous, target, at=now)
        self.raise_(
            NdrStatusChanged(
                ndr_case_id=str(self.id),
                shipment_id=str(self.shipment_id),
                previous_status=previous.value,
                status=target.value,
                changed_by=performed_by,
                changed_at=now,
            )
        )

        if target == NdrStatus.ESCALATED:
            self.escalated_at = now
            self.raise_(
                NdrCaseEscalated(
                    ndr_case_id=str(self.id),
                    shipment_id=str(self.shipment_id),
                    attempt_count=self.attempt_count,
                    escalated_by=performed_by,
                    escalated_at=now,
                )
            )
        elif target == NdrStatus.RTO_INITIATED:
            self.raise_(
                NdrRtoRequested(
                    ndr_case_id=str(self.id),
                    shipment_id=str(self.shipment_id),
                    awb_number=self.awb_number,
                    requested_by=performed_by,
                    remarks=details,
                    requested_at=now,
                )
            )
        elif target in RESOLVED_STATUSES:
            self.resolved_at = now
            self.next_reattempt_at = None
            self.raise_(
                NdrCaseResolved(
                    ndr_case_id=str(self.id),
                    shipment_id=str(self.shipment_id),
                    status=target.value,
                    resolution=self.resolution or details,
                    resolved_by=performed_by,
                    resolved_at=now,
                )
            )
        return TransitionOutcome.applied(previous.value, target.value)

    # -------------------------------------------------------------------
    # Assignment
    # -------------------------------------------------------------------
    def assign(self, agent: str, assigned_by: str | None = None) -> TransitionOutcome:
        """Assign the case to an agent; a later assignment replaces the earlier one."""
        rejected = self._check_open()
        if rejected:
            return rejected
        if self.assigned_to == agent:
            return TransitionOutcome.duplicate(self.status)

        now = datetime.now(UTC)
        previous_assignee = self.assigned_to
        self.assigned_to = agent
        self.assigned_at = now
        self.raise_(
            NdrCaseAssigned(
                ndr_case_id=str(self.id),
                assigned_to=agent,
                previous_assignee=previous_assignee,
                assigned_at=now,
            )
        )

        details = f"Assigned to {agent}" if previous_assignee is None else f"Reassigned from {previous_assignee} to {agent}"
        if NdrStatus(self.status) == NdrStatus.OPEN:
            return self._move(NdrStatus.ASSIGNED, assigned_by, NdrActionType.ASSIGNED, details=details)

        self.updated_at = now
        self._log(NdrActionType.ASSIGNED, assigned_by, details=details, at=now)
        return TransitionOutcome.applied(self.status, self.status)

    # -------------------------------------------------------------------
    # Contact log
    # -------------------------------------------------------------------
    def log_action(
        self,
        action_type: NdrActionType,
        performed_by: str,
        outcome: str | None = None,
        details: str | None = None,
    ) -> TransitionOutcome:
        """Log an agent action; a successful contact moves Open/Assigned cases forward."""
        rejected = self._check_open()
        if rejected:
            return rejected
        if action_type not in LOGGABLE_ACTIONS:
            return self._rejected(
                TransitionRejection.ACTION_NOT_LOGGABLE,
                f"{action_type.value} cannot be logged directly; use the matching desk command",
            )

        now = datetime.now(UTC)
        self.raise_(
            NdrActionLogged(
                ndr_case_id=str(self.id),
                action_type=action_type.value,
                performed_by=performed_by,
                outcome=outcome,
                performed_at=now,
            )
        )
        current = NdrStatus(self.status)
        if (
            action_type in CONTACT_ACTIONS
            and outcome in SUCCESSFUL_CONTACT_OUTCOMES
            and current in (NdrStatus.OPEN, NdrStatus.ASSIGNED)
        ):
            return self._move(NdrStatus.CUSTOMER_CONTACTED, performed_by, action_type, outcome, details)

        self.updated_at = now
        self._log(action_type, performed_by, outcome, details, at=now)
        return TransitionOutcome.applied(current.value, current.value)

    # -------------------------------------------------------------------
    # Reattempts
    # -------------------------------------------------------------------
    def schedule_reattempt(
        self, reattempt_at: datetime, scheduled_by: str | None = None, remarks: str | None = None
    ) -> TransitionOutcome:
        """Book a reattempt; the date must lie in the future."""
        current = NdrStatus(self.status)
        if current != NdrStatus.REATTEMPT_SCHEDULED:
            rejected = self._check_transition(NdrStatus.REATTEMPT_SCHEDULED)
            if rejected:
                return rejected

        reattempt_at = _as_utc(reattempt_at)
        if reattempt_at <= datetime.now(UTC):
            return self._rejected(
                TransitionRejection.REATTEMPT_DATE_IN_PAST,
                f"Reattempt date {reattempt_at.isoformat()} is not in the future",
            )

        self.next_reattempt_at = reattempt_at
        details = remarks or f"Reattempt scheduled for {reattempt_at.isoformat()}"
        self.raise_(
            NdrReattemptScheduled(
                ndr_case_id=str(self.id),
                shipment_id=str(self.shipment_id),
                awb_number=self.awb_number,
                reattempt_at=reattempt_at,
                scheduled_by=scheduled_by,
            )
        )
        if current == NdrStatus.REATTEMPT_SCHEDULED:
            self.updated_at = datetime.now(UTC)
            self._log(NdrActionType.REATTEMPT_REQUESTED, scheduled_by, details=details)
            return TransitionOutcome.applied(current.value, current.value)
        return self._move(NdrStatus.REATTEMPT_SCHEDULED, scheduled_by, NdrActionType.REATTEMPT_REQUESTED, details=details)

    def start_reattempt(self, started_by: str | None = None) -> TransitionOutcome:
        rejected = self._check_transition(NdrStatus.REATTEMPT_IN_PROGRESS)
        if rejected:
            return rejected
        return self._move(NdrStatus.REATTEMPT_IN_PROGRESS, started_by, details="Reattempt window opened")

    # -------------------------------------------------------------------
    # Courier-driven updates
    # -------------------------------------------------------------------
    def record_failed_attempt(
        self,
        reason_code: NdrReason | None = None,
        remarks: str | None = None,
        occurred_at: datetime | None = None,
    ) -> TransitionOutcome:
        """Count another failed delivery; escalate once the policy threshold is passed."""
        rejected = self._check_open()
        if rejected:
            return rejected

        now = datetime.now(UTC)
        current = NdrStatus(self.status)
        self.attempt_count = (self.attempt_count or 1) + 1
        if reason_code is not None and reason_code != NdrReason.OTHER:
            self.reason_code = reason_code.value
            self.reason_description = REASON_LABELS[reason_code]
        self.updated_at = now
        self._log(
            NdrActionType.DELIVERY_ATTEMPT_FAILED,
            SYSTEM_ACTOR,
            outcome=f"Attempt {self.attempt_count}",
            details=remarks,
            at=occurred_at or now,
        )
        self.raise_(
            NdrDeliveryAttemptFailed(
                ndr_case_id=str(self.id),
                shipment_id=str(self.shipment_id),
                attempt_count=self.attempt_count,
                reason_code=self.reason_code,
                failed_at=occurred_at or now,
            )
        )

        if (
            self.attempt_count > get_policy().ndr_max_attempts
            and self.escalated_at is None
            and NdrStatus.ESCALATED in _VALID_TRANSITIONS[current]
        ):
            return self._move(
                NdrStatus.ESCALATED,
                SYSTEM_ACTOR,
                NdrActionType.ESCALATED,
                details=f"Escalated after {self.attempt_count} failed delivery attempts",
            )
        return TransitionOutcome.applied(current.value, current.value)

    def append_delivery_event(
        self,
        provider_status: str | None = None,
        remarks: str | None = None,
        occurred_at: datetime | None = None,
    ) -> TransitionOutcome:
        """Keep a repeated courier report in the audit trail without changing the case."""
        rejected = self._check_open()
        if rejected:
            return rejected
        self._log(
            NdrActionType.COURIER_UPDATE,
            SYSTEM_ACTOR,
            outcome=provider_status,
            details=remarks,
            at=occurred_at,
        )
        self.updated_at = datetime.now(UTC)
        return TransitionOutcome.duplicate(self.status)

    # -------------------------------------------------------------------
    # Status changes and resolution
    # -------------------------------------------------------------------
    def update_status(
        self, target: NdrStatus, updated_by: str | None = None, remarks: str | None = None
    ) -> TransitionOutcome:
        if NdrStatus(self.status) == target:
            return TransitionOutcome.duplicate(self.status)
        rejected = self._check_transition(target)
        if rejected:
            return rejected
        if remarks:
            self.remarks = remarks
        action_type = NdrActionType.RTO_INITIATED if target == NdrStatus.RTO_INITIATED else NdrActionType.STATUS_CHANGED
        if target == NdrStatus.ESCALATED:
            action_type = NdrActionType.ESCALATED
        return self._move(target, updated_by, action_type, details=remarks)

    def resolve(
        self,
        target: NdrStatus,
        resolved_by: str | None = None,
        resolution: str | None = None,
        remarks: str | None = None,
    ) -> TransitionOutcome:
        """Close the case explicitly; only resolved statuses are accepted."""
        if target not in RESOLVED_STATUSES:
            return self._rejected(TransitionRejection.NOT_A_RESOLUTION, f"{target.value} is not a resolution status")
        rejected = self._check_open()
        if rejected:
            return rejected
        self.resolution = resolution
        if remarks:
            self.remarks = remarks
        return self._move(target, resolved_by, details=remarks or resolution)

    def reopen(self, reopened_by: str | None = None, remarks: str | None = None) -> TransitionOutcome:
        if not self.is_resolved:
            return self._rejected(TransitionRejection.INVALID_TRANSITION, "Only resolved cases can be reopened")
        if not get_policy().allow_ndr_reopen:
            return self._rejected(TransitionRejection.REOPEN_DISABLED, "Reopening resolved cases is disabled")

        now = datetime.now(UTC)
        previous = NdrStatus(self.status)
        target = NdrStatus.ASSIGNED if self.assigned_to else NdrStatus.OPEN
        self.status = target.value
        self.resolved_at = None
        self.resolution = None
        self.updated_at = now
        self._log(NdrActionType.CASE_REOPENED, reopened_by, details=remarks, status_from=previous, status_to=target, at=now)
        self.raise_(
            NdrCaseReopened(
                ndr_case_id=str(self.id),
                previous_status=previous.value,
                status=target.value,
                reopened_by=reopened_by,
                reopened_at=now,
            )
        )
        return TransitionOutcome.applied(previous.value, target.value)
