"""Pydantic API schemas for the Shipping domain.

These are the external API contracts — separate from domain commands.
The API layer translates between these schemas and domain commands.
"""

from datetime import datetime

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class AssignNdrCaseRequest(BaseModel):
    agent: str
    assigned_by: str | None = None


class LogNdrActionRequest(BaseModel):
    action_type: str
    performed_by: str
    outcome: str | None = None
    details: str | None = None


class ScheduleReattemptRequest(BaseModel):
    reattempt_at: datetime
    scheduled_by: str | None = None
    remarks: str | None = None


class StartReattemptRequest(BaseModel):
    started_by: str | None = None


class UpdateNdrStatusRequest(BaseModel):
    status: str
    updated_by: str | None = None
    remarks: str | None = None


class ResolveNdrCaseRequest(BaseModel):
    status: str
    resolved_by: str | None = None
    resolution: str | None = None
    remarks: str | None = None


class ReopenNdrCaseRequest(BaseModel):
    reopened_by: str | None = None
    remarks: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class WebhookResponse(BaseModel):
    success: bool
    message: str | None = None
    awb_number: str | None = None
    canonical_status: str | None = None
    outcome: str
    shipment_id: str | None = None


class TransitionResponse(BaseModel):
    result: str
    status: str | None = None
    previous_status: str | None = None


class TrackingEntryResponse(BaseModel):
    status: str
    provider_status: str | None = None
    provider_status_code: str | None = None
    location: str | None = None
    remarks: str | None = None
    source: str | None = None
    outcome: str | None = None
    occurred_at: datetime


class ShipmentDetailResponse(BaseModel):
    shipment_id: str
    shipment_number: str
    order_reference: str
    courier_type: str
    awb_number: str | None = None
    tracking_url: str | None = None
    status: str
    is_cod: bool = False
    cod_amount: float | None = None
    expected_delivery: datetime | None = None
    picked_up_at: datetime | None = None
    delivered_at: datetime | None = None
    delivered_to: str | None = None
    rto_initiated_at: datetime | None = None
    cancelled_at: datetime | None = None
    restock_requested: bool = False
    tracking_history: list[TrackingEntryResponse] = []


class NdrActionResponse(BaseModel):
    action_type: str
    performed_by: str | None = None
    performed_at: datetime
    outcome: str | None = None
    details: str | None = None
    status_from: str | None = None
    status_to: str | None = None


class NdrCaseResponse(BaseModel):
    ndr_case_id: str
    shipment_id: str
    awb_number: str | None = None
    status: str
    reason_code: str
    reason_description: str | None = None
    assigned_to: str | None = None
    attempt_count: int
    next_reattempt_at: datetime | None = None
    escalated_at: datetime | None = None
    resolved_at: datetime | None = None
    resolution: str | None = None
    actions: list[NdrActionResponse] = []
