"""NDR desk commands and handler.

Each handler returns the ``TransitionOutcome`` of the operation. Rejected
operations are not persisted, so the stored case is exactly as it was.
"""

from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from shipping.domain import shipping
from shipping.ndr.ndr_case import NdrActionType, NdrCase, NdrStatus


@shipping.command(part_of="NdrCase")
class AssignNdrCase:
    ndr_case_id = Identifier(required=True)
    agent = String(required=True, max_length=100)
    assigned_by = String(max_length=100)


@shipping.command(part_of="NdrCase")
class LogNdrAction:
    ndr_case_id = Identifier(required=True)
    action_type = String(required=True, max_length=50, choices=NdrActionType)
    performed_by = String(required=True, max_length=100)
    outcome = String(max_length=50)
    details = Text()


@shipping.command(part_of="NdrCase")
class ScheduleReattempt:
    ndr_case_id = Identifier(required=True)
    reattempt_at = DateTime(required=True)
    scheduled_by = String(max_length=100)
    remarks = Text()


@shipping.command(part_of="NdrCase")
class StartReattempt:
    ndr_case_id = Identifier(required=True)
    started_by = String(max_length=100)


@shipping.command(part_of="NdrCase")
class UpdateNdrStatus:
    ndr_case_id = Identifier(required=True)
    status = String(required=True, max_length=50, choices=NdrStatus)
    updated_by = String(max_length=100)
    remarks = Text()


@shipping.command(part_of="NdrCase")
class ResolveNdrCase:
    ndr_case_id = Identifier(required=True)
    status = String(required=True, max_length=50, choices=NdrStatus)
    resolved_by = String(max_length=100)
    resolution = Text()
    remarks = Text()


@shipping.command(part_of="NdrCase")
class ReopenNdrCase:
    ndr_case_id = Identifier(required=True)
    reopened_by = String(max_length=100)
    remarks = Text()


@shipping.command_handler(part_of=NdrCase)
class NdrCaseHandler:
    def _apply(self, ndr_case_id, operation):
        repo = current_domain.repository_for(NdrCase)
        case = repo.get(ndr_case_id)
        outcome = operation(case)
        if outcome.mutated:
            repo.add(case)
        return outcome

    @handle(AssignNdrCase)
    def assign(self, command):
        return self._apply(command.ndr_case_id, lambda case: case.assign(command.agent, command.assigned_by))

    @handle(LogNdrAction)
    def log_action(self, command):
        return self._apply(
            command.ndr_case_id,
            lambda case: case.log_action(
                NdrActionType(command.action_type),
                command.performed_by,
                outcome=command.outcome,
                details=command.details,
            ),
        )

    @handle(ScheduleReattempt)
    def schedule_reattempt(self, command):
        return self._apply(
            command.ndr_case_id,
            lambda case: case.schedule_reattempt(command.reattempt_at, command.scheduled_by, command.remarks),
        )

    @handle(StartReattempt)
    def start_reattempt(self, command):
        return self._apply(command.ndr_case_id, lambda case: case.start_reattempt(command.started_by))

    @handle(UpdateNdrStatus)
    def update_status(self, command):
        return self._apply(
            command.ndr_case_id,
            lambda case: case.update_status(NdrStatus(command.status), command.updated_by, command.remarks),
        )

    @handle(ResolveNdrCase)
    def resolve(self, command):
        return self._apply(
            command.ndr_case_id,
            lambda case: case.resolve(
                NdrStatus(command.status),
                command.resolved_by,
                resolution=command.resolution,
                remarks=command.remarks,
            ),
        )

    @handle(ReopenNdrCase)
    def reopen(self, command):
        return self._apply(command.ndr_case_id, lambda case: case.reopen(command.reopened_by, command.remarks))
