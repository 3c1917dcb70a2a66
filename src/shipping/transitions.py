"""Outcome of a state-machine transition.

Invalid transitions are reported, not raised, so bulk callers (webhook
replays, batch NDR updates) can collect per-item failures without aborting
the batch. A rejected outcome guarantees the aggregate was left untouched.
"""

from dataclasses import dataclass
from enum import Enum


class TransitionRejection(Enum):
    UNMAPPED_STATUS = "unmapped_status"
    SHIPMENT_IN_TERMINAL_STATE = "shipment_in_terminal_state"
    REGRESSION_NOT_ALLOWED = "regression_not_allowed"
    INVALID_TRANSITION = "invalid_transition"
    CANNOT_REOPEN_RESOLVED_CASE = "cannot_reopen_resolved_case"
    CASE_ALREADY_RESOLVED = "case_already_resolved"
    REOPEN_DISABLED = "reopen_disabled"
    NOT_A_RESOLUTION = "not_a_resolution"
    REATTEMPT_DATE_IN_PAST = "reattempt_date_in_past"
    ACTION_NOT_LOGGABLE = "action_not_loggable"


class TransitionResult(Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    REJECTED = "rejected"


@dataclass(frozen=True)
class TransitionOutcome:
    result: TransitionResult
    status: str | None = None
    previous_status: str | None = None
    rejection: TransitionRejection | None = None
    message: str | None = None

    @classmethod
    def applied(cls, previous_status: str, status: str) -> "TransitionOutcome":
        return cls(TransitionResult.APPLIED, status=status, previous_status=previous_status)

    @classmethod
    def duplicate(cls, status: str) -> "TransitionOutcome":
        return cls(TransitionResult.DUPLICATE, status=status, previous_status=status)

    @classmethod
    def ignored(cls, status: str, message: str) -> "TransitionOutcome":
        return cls(
            TransitionResult.IGNORED,
            status=status,
            previous_status=status,
            rejection=TransitionRejection.UNMAPPED_STATUS,
            message=message,
        )

    @classmethod
    def rejected(cls, status: str, rejection: TransitionRejection, message: str) -> "TransitionOutcome":
        return cls(
            TransitionResult.REJECTED,
            status=status,
            previous_status=status,
            rejection=rejection,
            message=message,
        )

    @property
    def changed_state(self) -> bool:
        return self.result == TransitionResult.APPLIED and self.status != self.previous_status

    @property
    def mutated(self) -> bool:
        """True when the aggregate must be persisted (state change or history append)."""
        return self.result in (TransitionResult.APPLIED, TransitionResult.DUPLICATE)

    @property
    def is_rejected(self) -> bool:
        return self.result == TransitionResult.REJECTED
