"""FastAPI routes for the Shipping domain."""

from fastapi import APIRouter, Header, HTTPException, Request
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from shipping.api.schemas import (
    AssignNdrCaseRequest,
    LogNdrActionRequest,
    NdrActionResponse,
    NdrCaseResponse,
    ReopenNdrCaseRequest,
    ResolveNdrCaseRequest,
    ScheduleReattemptRequest,
    ShipmentDetailResponse,
    StartReattemptRequest,
    TrackingEntryResponse,
    TransitionResponse,
    UpdateNdrStatusRequest,
    WebhookResponse,
)
from shipping.carrier.contract import CourierType
from shipping.carrier.webhooks import get_webhook_handler
from shipping.ndr.management import (
    AssignNdrCase,
    LogNdrAction,
    ReopenNdrCase,
    ResolveNdrCase,
    ScheduleReattempt,
    StartReattempt,
    UpdateNdrStatus,
)
from shipping.ndr.ndr_case import NdrCase
from shipping.ndr.shipment_events import cases_for_shipment
from shipping.shipment.registration import find_by_awb
from shipping.shipment.shipment import Shipment
from shipping.shipment.tracking import record_courier_status
from shipping.transitions import TransitionOutcome


def _courier_from_path(courier: str) -> CourierType | None:
    return next((ct for ct in CourierType if ct.value.lower() == courier.lower()), None)


def _shipment_response(shipment: Shipment) -> ShipmentDetailResponse:
    history = sorted(shipment.tracking_history or [], key=lambda entry: entry.recorded_at)
    return ShipmentDetailResponse(
        shipment_id=str(shipment.id),
        shipment_number=shipment.shipment_number,
        order_reference=shipment.order_reference,
        courier_type=shipment.courier_type,
        awb_number=shipment.awb_number,
        tracking_url=shipment.tracking_url,
        status=shipment.status,
        is_cod=shipment.is_cod,
        cod_amount=shipment.cod_amount,
        expected_delivery=shipment.expected_delivery,
        picked_up_at=shipment.picked_up_at,
        delivered_at=shipment.delivered_at,
        delivered_to=shipment.delivered_to,
        rto_initiated_at=shipment.rto_initiated_at,
        cancelled_at=shipment.cancelled_at,
        restock_requested=shipment.restock_requested,
        tracking_history=[
            TrackingEntryResponse(
                status=entry.status,
                provider_status=entry.provider_status,
                provider_status_code=entry.provider_status_code,
                location=entry.location,
                remarks=entry.remarks,
                source=entry.source,
                outcome=entry.outcome,
                occurred_at=entry.occurred_at,
            )
            for entry in history
        ],
    )


def _ndr_case_response(case: NdrCase) -> NdrCaseResponse:
    actions = sorted(case.actions or [], key=lambda action: action.performed_at)
    return NdrCaseResponse(
        ndr_case_id=str(case.id),
        shipment_id=str(case.shipment_id),
        awb_number=case.awb_number,
        status=case.status,
        reason_code=case.reason_code,
        reason_description=case.reason_description,
        assigned_to=case.assigned_to,
        attempt_count=case.attempt_count,
        next_reattempt_at=case.next_reattempt_at,
        escalated_at=case.escalated_at,
        resolved_at=case.resolved_at,
        resolution=case.resolution,
        actions=[
            NdrActionResponse(
                action_type=action.action_type,
                performed_by=action.performed_by,
                performed_at=action.performed_at,
                outcome=action.outcome,
                details=action.details,
                status_from=action.status_from,
                status_to=action.status_to,
            )
            for action in actions
        ],
    )


def _transition_response(outcome: TransitionOutcome) -> TransitionResponse:
    if outcome.is_rejected:
        raise HTTPException(
            status_code=409,
            detail={"reason": outcome.rejection.value, "message": outcome.message, "status": outcome.status},
        )
    return TransitionResponse(
        result=outcome.result.value,
        status=outcome.status,
        previous_status=outcome.previous_status,
    )


def _process(command_cls, **fields) -> TransitionResponse:
    try:
        outcome = current_domain.process(command_cls(**fields), asynchronous=False)
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.messages) from exc
    return _transition_response(outcome)


# ---------------------------------------------------------------------------
# Courier Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks/couriers", tags=["webhooks"])


@webhook_router.post("/{courier}", response_model=WebhookResponse)
async def courier_webhook(
    courier: str,
    request: Request,
    x_webhook_token: str = Header(default=""),
) -> WebhookResponse:
    """Receive a courier tracking update and apply it to the shipment."""
    body = await request.body()
    if not body.strip():
        raise HTTPException(status_code=400, detail="Empty payload")

    courier_type = _courier_from_path(courier)
    try:
        handler = get_webhook_handler(courier_type) if courier_type else None
    except ValueError:
        handler = None
    if handler is None:
        raise HTTPException(status_code=404, detail=f"Unknown courier: {courier}")

    if not handler.verify_token(x_webhook_token):
        raise HTTPException(status_code=401, detail="Invalid webhook token")

    result = handler.parse(body)
    if not result.success:
        return WebhookResponse(success=False, message=result.message, outcome="invalid")

    canonical_status = result.status.value if result.status else None
    shipment = find_by_awb(result.awb_number)
    if shipment is None:
        return WebhookResponse(
            success=False,
            message=f"No shipment found for AWB {result.awb_number}",
            awb_number=result.awb_number,
            canonical_status=canonical_status,
            outcome="unknown_shipment",
        )

    outcome = record_courier_status(
        result.status,
        shipment_id=str(shipment.id),
        awb_number=result.awb_number,
        provider_status=result.provider_status,
        provider_status_code=result.provider_status_code,
        location=result.location,
        remarks=result.remarks,
        delivered_to=result.delivered_to,
        occurred_at=result.occurred_at,
    )
    return WebhookResponse(
        success=not outcome.is_rejected,
        message=outcome.message,
        awb_number=result.awb_number,
        canonical_status=canonical_status,
        outcome=outcome.result.value,
        shipment_id=str(shipment.id),
    )


# ---------------------------------------------------------------------------
# Shipment Router
# ---------------------------------------------------------------------------
shipment_router = APIRouter(prefix="/shipments", tags=["shipments"])


@shipment_router.get("/by-awb/{awb_number}", response_model=ShipmentDetailResponse)
async def get_shipment_by_awb(awb_number: str) -> ShipmentDetailResponse:
    shipment = find_by_awb(awb_number)
    if shipment is None:
        raise HTTPException(status_code=404, detail=f"No shipment found for AWB {awb_number}")
    return _shipment_response(shipment)


@shipment_router.get("/{shipment_id}", response_model=ShipmentDetailResponse)
async def get_shipment(shipment_id: str) -> ShipmentDetailResponse:
    try:
        shipment = current_domain.repository_for(Shipment).get(shipment_id)
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _shipment_response(shipment)


@shipment_router.get("/{shipment_id}/ndr-cases", response_model=list[NdrCaseResponse])
async def list_shipment_ndr_cases(shipment_id: str) -> list[NdrCaseResponse]:
    return [_ndr_case_response(case) for case in cases_for_shipment(shipment_id)]


# ---------------------------------------------------------------------------
# NDR Case Router
# ---------------------------------------------------------------------------
ndr_router = APIRouter(prefix="/ndr-cases", tags=["ndr"])


@ndr_router.get("/{ndr_case_id}", response_model=NdrCaseResponse)
async def get_ndr_case(ndr_case_id: str) -> NdrCaseResponse:
    try:
        case = current_domain.repository_for(NdrCase).get(ndr_case_id)
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _ndr_case_response(case)


@ndr_router.put("/{ndr_case_id}/assign", response_model=TransitionResponse)
async def assign_ndr_case(ndr_case_id: str, body: AssignNdrCaseRequest) -> TransitionResponse:
    """Assign (or reassign) an agent to the case."""
    return _process(AssignNdrCase, ndr_case_id=ndr_case_id, agent=body.agent, assigned_by=body.assigned_by)


@ndr_router.post("/{ndr_case_id}/actions", response_model=TransitionResponse)
async def log_ndr_action(ndr_case_id: str, body: LogNdrActionRequest) -> TransitionResponse:
    """Log a call, message or remark against the case."""
    return _process(
        LogNdrAction,
        ndr_case_id=ndr_case_id,
        action_type=body.action_type,
        performed_by=body.performed_by,
        outcome=body.outcome,
        details=body.details,
    )


@ndr_router.put("/{ndr_case_id}/reattempt", response_model=TransitionResponse)
async def schedule_reattempt(ndr_case_id: str, body: ScheduleReattemptRequest) -> TransitionResponse:
    return _process(
        ScheduleReattempt,
        ndr_case_id=ndr_case_id,
        reattempt_at=body.reattempt_at,
        scheduled_by=body.scheduled_by,
        remarks=body.remarks,
    )


@ndr_router.put("/{ndr_case_id}/reattempt/start", response_model=TransitionResponse)
async def start_reattempt(ndr_case_id: str, body: StartReattemptRequest) -> TransitionResponse:
    return _process(StartReattempt, ndr_case_id=ndr_case_id, started_by=body.started_by)


@ndr_router.put("/{ndr_case_id}/status", response_model=TransitionResponse)
async def update_ndr_status(ndr_case_id: str, body: UpdateNdrStatusRequest) -> TransitionResponse:
    return _process(
        UpdateNdrStatus,
        ndr_case_id=ndr_case_id,
        status=body.status,
        updated_by=body.updated_by,
        remarks=body.remarks,
    )


@ndr_router.put("/{ndr_case_id}/resolve", response_model=TransitionResponse)
async def resolve_ndr_case(ndr_case_id: str, body: ResolveNdrCaseRequest) -> TransitionResponse:
    """Close the case with a resolved status."""
    return _process(
        ResolveNdrCase,
        ndr_case_id=ndr_case_id,
        status=body.status,
        resolved_by=body.resolved_by,
        resolution=body.resolution,
        remarks=body.remarks,
    )


@ndr_router.put("/{ndr_case_id}/reopen", response_model=TransitionResponse)
async def reopen_ndr_case(ndr_case_id: str, body: ReopenNdrCaseRequest) -> TransitionResponse:
    return _process(ReopenNdrCase, ndr_case_id=ndr_case_id, reopened_by=body.reopened_by, remarks=body.remarks)
