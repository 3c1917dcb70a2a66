"""Integration tests for NDR desk endpoints via TestClient."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain
from shipping.api.routes import ndr_router
from shipping.ndr.ndr_case import NdrCase, NdrStatus
from shipping.ndr.reasons import NdrReason


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(ndr_router)
    return TestClient(app)


@pytest.fixture()
def case_id():
    case = NdrCase.open(
        shipment_id="ship-api-001",
        order_reference="ORD-API-1",
        awb_number="1234567890123",
        reason_code=NdrReason.INCORRECT_ADDRESS,
    )
    current_domain.repository_for(NdrCase).add(case)
    return str(case.id)


class TestGetNdrCase:
    def test_returns_case_with_actions(self, client, case_id):
        response = client.get(f"/ndr-cases/{case_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["ndr_case_id"] == case_id
        assert data["status"] == NdrStatus.OPEN.value
        assert data["reason_code"] == NdrReason.INCORRECT_ADDRESS.value
        assert data["attempt_count"] == 1
        assert [action["action_type"] for action in data["actions"]] == ["CaseOpened"]

    def test_missing_case(self, client):
        assert client.get("/ndr-cases/missing").status_code == 404


class TestDeskEndpoints:
    def test_assign(self, client, case_id):
        response = client.put(f"/ndr-cases/{case_id}/assign", json={"agent": "agent-1", "assigned_by": "lead-1"})

        assert response.status_code == 200
        assert response.json() == {
            "result": "applied",
            "status": NdrStatus.ASSIGNED.value,
            "previous_status": NdrStatus.OPEN.value,
        }

    def test_reassigning_same_agent_is_duplicate(self, client, case_id):
        client.put(f"/ndr-cases/{case_id}/assign", json={"agent": "agent-1"})
        response = client.put(f"/ndr-cases/{case_id}/assign", json={"agent": "agent-1"})
        assert response.json()["result"] == "duplicate"

    def test_log_call_and_schedule_reattempt(self, client, case_id):
        response = client.post(
            f"/ndr-cases/{case_id}/actions",
            json={"action_type": "PhoneCall", "performed_by": "agent-1", "outcome": "Connected"},
        )
        assert response.json()["status"] == NdrStatus.CUSTOMER_CONTACTED.value

        reattempt_at = (datetime.now(UTC) + timedelta(days=1)).isoformat()
        response = client.put(f"/ndr-cases/{case_id}/reattempt", json={"reattempt_at": reattempt_at})
        assert response.json()["status"] == NdrStatus.REATTEMPT_SCHEDULED.value

        response = client.put(f"/ndr-cases/{case_id}/reattempt/start", json={"started_by": "agent-1"})
        assert response.json()["status"] == NdrStatus.REATTEMPT_IN_PROGRESS.value

        case = client.get(f"/ndr-cases/{case_id}").json()
        assert case["next_reattempt_at"] is not None
        assert len(case["actions"]) == 4

    def test_status_update_and_resolution(self, client, case_id):
        client.put(f"/ndr-cases/{case_id}/status", json={"status": "Escalated", "updated_by": "lead-1"})

        response = client.put(
            f"/ndr-cases/{case_id}/resolve",
            json={"status": "ClosedAddressUpdated", "resolved_by": "lead-1", "resolution": "Landmark added"},
        )

        assert response.status_code == 200
        case = client.get(f"/ndr-cases/{case_id}").json()
        assert case["status"] == NdrStatus.CLOSED_ADDRESS_UPDATED.value
        assert case["resolution"] == "Landmark added"
        assert case["resolved_at"] is not None


class TestRejectedRequests:
    def test_invalid_transition_is_409(self, client, case_id):
        client.put(f"/ndr-cases/{case_id}/status", json={"status": "Escalated"})

        response = client.put(f"/ndr-cases/{case_id}/status", json={"status": "Open"})

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["reason"] == "invalid_transition"
        assert detail["status"] == NdrStatus.ESCALATED.value

    def test_past_reattempt_is_409(self, client, case_id):
        reattempt_at = (datetime.now(UTC) - timedelta(hours=1)).isoformat()
        response = client.put(f"/ndr-cases/{case_id}/reattempt", json={"reattempt_at": reattempt_at})

        assert response.status_code == 409
        assert response.json()["detail"]["reason"] == "reattempt_date_in_past"

    def test_resolving_with_open_status_is_409(self, client, case_id):
        response = client.put(f"/ndr-cases/{case_id}/resolve", json={"status": "Assigned"})
        assert response.status_code == 409
        assert response.json()["detail"]["reason"] == "not_a_resolution"

    def test_reopen_is_disabled_by_default(self, client, case_id):
        client.put(f"/ndr-cases/{case_id}/resolve", json={"status": "ClosedRTO"})
        response = client.put(f"/ndr-cases/{case_id}/reopen", json={"reopened_by": "lead-1"})

        assert response.status_code == 409
        assert response.json()["detail"]["reason"] == "reopen_disabled"

    def test_unknown_status_is_400(self, client, case_id):
        response = client.put(f"/ndr-cases/{case_id}/status", json={"status": "Vanished"})
        assert response.status_code == 400

    def test_unknown_case_is_404(self, client):
        response = client.put("/ndr-cases/missing/assign", json={"agent": "agent-1"})
        assert response.status_code == 404
