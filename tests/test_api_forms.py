"""
Tests for the gate form endpoints via TestClient.

The client fixture registers "admin" (control_tower), "sto-1" (sto) and
"slt-1" (slt) and creates INIT-1.
"""
import pytest

from tests.conftest import ADMIN, auth, complete_checklist

FORM_URL = "/api/initiatives/INIT-1/forms/L3"


def put_form(client, user_id, url=FORM_URL, **body):
    return client.put(url, json=body, headers=auth(user_id))


def submitted(client, catalog):
    resp = put_form(client, "sto-1", formData=complete_checklist(catalog, "L3", objectives="x"), version=0)
    assert resp.status_code == 200
    resp = put_form(client, "sto-1", status="submitted", version=resp.json()["version"])
    assert resp.status_code == 200
    return resp.json()


def approved(client, catalog):
    form = submitted(client, catalog)
    resp = client.put(f"{FORM_URL}/approve", json={"version": form["version"]}, headers=auth(ADMIN))
    assert resp.status_code == 200
    return resp.json()


class TestReadForms:
    def test_default_form(self, client) -> None:
        resp = client.get(FORM_URL, headers=auth("slt-1"))
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == "INIT-1-L3"
        assert data["status"] == "not_started"
        assert data["version"] == 0
        assert data["access"] == {
            "canView": True,
            "canEdit": False,
            "canApprove": False,
            "canRequestChange": False,
        }
        assert data["checklist"]["canSubmit"] is False
        assert "revised_scope" in data["checklist"]["missing"]

    def test_list_has_seven_gates(self, client) -> None:
        resp = client.get("/api/initiatives/INIT-1/forms", headers=auth("sto-1"))
        assert resp.status_code == 200
        assert [f["gate"] for f in resp.json()] == ["L0", "L1", "L2", "L3", "L4", "L5", "L6"]

    def test_unknown_gate(self, client) -> None:
        resp = client.get("/api/initiatives/INIT-1/forms/L8", headers=auth("sto-1"))
        assert resp.status_code == 404
        assert resp.json()["code"] == "GP_NOT_FOUND"

    def test_unknown_initiative(self, client) -> None:
        resp = client.get("/api/initiatives/INIT-404/forms/L3", headers=auth("sto-1"))
        assert resp.status_code == 404
        assert resp.json()["initiative_id"] == "INIT-404"

    def test_requires_user(self, client) -> None:
        resp = client.get(FORM_URL)
        assert resp.status_code == 401
        assert resp.json()["code"] == "GP_UNAUTHORIZED"

    def test_access_endpoint(self, client) -> None:
        resp = client.get(f"{FORM_URL}/access", headers=auth("sto-1"))
        assert resp.json() == {
            "canView": True,
            "canEdit": True,
            "canApprove": False,
            "canRequestChange": False,
        }


class TestSaveAndSubmit:
    def test_save_draft(self, client) -> None:
        resp = put_form(client, "sto-1", formData={"objectives": "x"}, version=0)
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "draft"
        assert data["formData"] == {"objectives": "x"}
        assert data["version"] == 1
        assert data["updatedBy"] == "sto-1"

    def test_version_is_required(self, client) -> None:
        resp = put_form(client, "sto-1", formData={"objectives": "x"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "GP_INVALID_INPUT"

    def test_stale_version_conflicts(self, client) -> None:
        put_form(client, "sto-1", formData={"objectives": "first"}, version=0)
        resp = put_form(client, ADMIN, formData={"objectives": "second"}, version=0)
        assert resp.status_code == 409
        body = resp.json()
        assert body["code"] == "GP_VERSION_CONFLICT"
        assert body["details"] == {"expected_version": 0, "current_version": 1}

    def test_slt_cannot_save(self, client) -> None:
        resp = put_form(client, "slt-1", formData={"objectives": "x"}, version=0)
        assert resp.status_code == 403

    def test_incomplete_checklist(self, client) -> None:
        put_form(client, "sto-1", formData={"objectives": "x"}, version=0)
        resp = put_form(client, "sto-1", status="submitted", version=1)
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "GP_CHECKLIST_INCOMPLETE"
        assert "success_criteria" in body["details"]["missing"]

    def test_submit(self, client, catalog) -> None:
        form = submitted(client, catalog)
        assert form["status"] == "submitted"
        assert form["submittedBy"] == "sto-1"
        assert form["checklist"]["canSubmit"] is True

    @pytest.mark.parametrize("status", ["approved", "rejected"])
    def test_terminal_statuses_need_their_endpoint(self, client, catalog, status) -> None:
        form = submitted(client, catalog)
        resp = put_form(client, ADMIN, status=status, version=form["version"])
        assert resp.status_code == 403

    def test_unknown_status(self, client) -> None:
        resp = put_form(client, "sto-1", status="archived", version=0)
        assert resp.status_code == 400


class TestApproveReject:
    def test_sto_cannot_approve(self, client, catalog) -> None:
        form = submitted(client, catalog)
        resp = client.put(f"{FORM_URL}/approve", json={"version": form["version"]}, headers=auth("sto-1"))
        assert resp.status_code == 403
        assert client.get(FORM_URL, headers=auth("sto-1")).json()["status"] == "submitted"

    def test_approve_without_body(self, client, catalog) -> None:
        submitted(client, catalog)
        resp = client.put(f"{FORM_URL}/approve", headers=auth(ADMIN))
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "approved"
        assert data["approvedBy"] == ADMIN
        assert data["approvedAt"] is not None

    def test_approve_draft_is_invalid(self, client) -> None:
        put_form(client, "sto-1", formData={"objectives": "x"}, version=0)
        resp = client.put(f"{FORM_URL}/approve", headers=auth(ADMIN))
        assert resp.status_code == 409
        assert resp.json()["code"] == "GP_INVALID_TRANSITION"

    def test_reject_requires_reason(self, client, catalog) -> None:
        submitted(client, catalog)
        resp = client.put(f"{FORM_URL}/reject", json={}, headers=auth(ADMIN))
        assert resp.status_code == 400
        assert resp.json()["code"] == "GP_REASON_REQUIRED"

    def test_reject(self, client, catalog) -> None:
        submitted(client, catalog)
        resp = client.put(f"{FORM_URL}/reject", json={"reason": "numbers missing"}, headers=auth(ADMIN))
        assert resp.status_code == 200
        assert resp.json()["status"] == "rejected"
        assert resp.json()["rejectionReason"] == "numbers missing"


class TestLockedForms:
    def test_edit_after_approval_is_locked(self, client, catalog) -> None:
        form = approved(client, catalog)
        resp = put_form(client, "sto-1", formData={"objectives": "changed"}, version=form["version"])
        assert resp.status_code == 409
        assert resp.json()["code"] == "GP_FORM_LOCKED"

    def test_request_change_keeps_approval(self, client, catalog) -> None:
        form = approved(client, catalog)
        resp = put_form(
            client, "sto-1",
            status="change_requested",
            changeRequestReason="need new numbers",
            version=form["version"],
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "change_requested"
        assert data["changeRequestReason"] == "need new numbers"
        assert data["changeRequestedBy"] == "sto-1"
        assert data["approvedBy"] == form["approvedBy"]
        assert data["approvedAt"] == form["approvedAt"]
        assert data["access"]["canEdit"] is True

    def test_request_change_without_reason(self, client, catalog) -> None:
        form = approved(client, catalog)
        resp = put_form(client, "sto-1", status="change_requested", version=form["version"])
        assert resp.status_code == 400

    def test_history(self, client, catalog) -> None:
        approved(client, catalog)
        resp = client.get(f"{FORM_URL}/history", headers=auth("slt-1"))
        assert resp.status_code == 200
        events = resp.json()
        assert [e["action"] for e in events] == ["save_draft", "submit", "approve"]
        assert events[-1]["actorId"] == ADMIN
        assert events[-1]["toStatus"] == "approved"


class TestReviewQueue:
    def test_pending_lists_submitted_forms(self, client, catalog) -> None:
        submitted(client, catalog)
        resp = client.get("/api/gate-forms/pending", headers=auth(ADMIN))
        assert resp.status_code == 200
        [form] = resp.json()
        assert form["gate"] == "L3"
        assert form["access"]["canApprove"] is True

    def test_pending_is_control_tower_only(self, client) -> None:
        assert client.get("/api/gate-forms/pending", headers=auth("sto-1")).status_code == 403

    def test_checklist_endpoint(self, client) -> None:
        put_form(client, "sto-1", formData={"requirements": {"revised_scope": True}}, version=0)
        resp = client.get(f"{FORM_URL}/checklist", headers=auth("sto-1"))
        data = resp.json()
        assert data["completed"] == ["revised_scope"]
        assert data["totalRequired"] == 6
        assert data["canSubmit"] is False
