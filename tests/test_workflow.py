"""
Tests for the gate form workflow state machine.

Tests cover:
- Transition table enforcement
- Role gating and form locking
- Reason and checklist preconditions
- Audit field stamping and retention
- Optimistic concurrency
- Transition history
"""
import pytest

from gatepilot.engine import TRANSITIONS, GateFormWorkflow, next_status
from gatepilot.exceptions import (
    ForbiddenError,
    FormLockedError,
    IncompleteChecklistError,
    InvalidInputError,
    InvalidTransitionError,
    MissingReasonError,
    NotFoundError,
    VersionConflictError,
)
from gatepilot.models import FormStatus, GateAction, UserRole

from tests.conftest import complete_checklist, make_user


def submitted_form(workflow, catalog, editor, gate="L3"):
    form = workflow.save_draft(editor, "INIT-1", gate, complete_checklist(catalog, gate), 0)
    return workflow.submit(editor, "INIT-1", gate, expected_version=form.version)


def approved_form(workflow, catalog, editor, approver, gate="L3"):
    form = submitted_form(workflow, catalog, editor, gate)
    return workflow.approve(approver, "INIT-1", gate, expected_version=form.version)


# =============================================================================
# Reads
# =============================================================================

class TestReads:
    """Default objects and lookups."""

    def test_unwritten_form_is_not_started(self, workflow) -> None:
        form = workflow.get_form("INIT-1", "L3")
        assert form.status == FormStatus.NOT_STARTED
        assert form.version == 0
        assert form.id == "INIT-1-L3"
        assert form.form_data is None

    def test_unknown_gate(self, workflow) -> None:
        with pytest.raises(NotFoundError):
            workflow.get_form("INIT-1", "L9")

    def test_unknown_initiative(self, workflow) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            workflow.get_form("INIT-404", "L3")
        assert exc_info.value.initiative_id == "INIT-404"

    def test_list_forms_has_every_gate(self, workflow, sto) -> None:
        workflow.save_draft(sto, "INIT-1", "L1", {"notes": "x"}, 0)
        forms = workflow.list_forms("INIT-1")
        assert [f.gate for f in forms] == ["L0", "L1", "L2", "L3", "L4", "L5", "L6"]
        assert forms[1].status == FormStatus.DRAFT
        assert forms[0].status == FormStatus.NOT_STARTED

    def test_workflow_without_initiative_store(self, repos, catalog, sto) -> None:
        """Without an initiative store any initiative id is accepted."""
        workflow = GateFormWorkflow(repos.forms, catalog)
        form = workflow.save_draft(sto, "ANY", "L0", {"a": 1}, 0)
        assert form.status == FormStatus.DRAFT


# =============================================================================
# Transition Table
# =============================================================================

class TestTransitionTable:
    """Authoritative table."""

    def test_table_entries(self) -> None:
        assert next_status(FormStatus.SUBMITTED, GateAction.APPROVE) == FormStatus.APPROVED
        assert next_status(FormStatus.DRAFT, GateAction.APPROVE) is None
        assert next_status(FormStatus.APPROVED, GateAction.SAVE_DRAFT) is None
        assert next_status(FormStatus.REJECTED, GateAction.SAVE_DRAFT) == FormStatus.DRAFT

    def test_no_action_leaves_approved_except_request_change(self) -> None:
        exits = [a for (s, a) in TRANSITIONS if s == FormStatus.APPROVED]
        assert exits == [GateAction.REQUEST_CHANGE]

    def test_save_draft_moves_not_started_to_draft(self, workflow, sto) -> None:
        form = workflow.save_draft(sto, "INIT-1", "L3", {"objectives": "x"}, 0)
        assert form.status == FormStatus.DRAFT
        assert form.version == 1
        assert form.form_data == {"objectives": "x"}

    def test_cannot_submit_not_started(self, workflow, catalog, sto) -> None:
        with pytest.raises(InvalidTransitionError):
            workflow.submit(sto, "INIT-1", "L3", complete_checklist(catalog, "L3"), 0)

    def test_cannot_save_submitted(self, workflow, catalog, sto) -> None:
        form = submitted_form(workflow, catalog, sto)
        with pytest.raises(InvalidTransitionError) as exc_info:
            workflow.save_draft(sto, "INIT-1", "L3", {"objectives": "y"}, form.version)
        assert not isinstance(exc_info.value, FormLockedError)

    def test_rejected_form_can_be_redrafted(self, workflow, catalog, sto, control_tower) -> None:
        form = submitted_form(workflow, catalog, sto)
        form = workflow.reject(control_tower, "INIT-1", "L3", "numbers missing", form.version)
        assert form.status == FormStatus.REJECTED

        form = workflow.save_draft(sto, "INIT-1", "L3", complete_checklist(catalog, "L3"), form.version)
        assert form.status == FormStatus.DRAFT
        form = workflow.submit(sto, "INIT-1", "L3", expected_version=form.version)
        assert form.status == FormStatus.SUBMITTED

    def test_change_requested_save_keeps_flag(self, workflow, catalog, sto, control_tower) -> None:
        form = approved_form(workflow, catalog, sto, control_tower)
        form = workflow.request_change(sto, "INIT-1", "L3", "scope moved", form.version)
        form = workflow.save_draft(
            sto, "INIT-1", "L3", complete_checklist(catalog, "L3", objectives="v2"), form.version
        )
        assert form.status == FormStatus.CHANGE_REQUESTED
        assert form.form_data["objectives"] == "v2"

    def test_change_requested_can_resubmit(self, workflow, catalog, sto, control_tower) -> None:
        form = approved_form(workflow, catalog, sto, control_tower)
        form = workflow.request_change(sto, "INIT-1", "L3", "scope moved", form.version)
        form = workflow.submit(sto, "INIT-1", "L3", expected_version=form.version)
        assert form.status == FormStatus.SUBMITTED


# =============================================================================
# Approve / Reject
# =============================================================================

class TestApproval:
    """approve succeeds iff prior status is submitted and actor is control_tower."""

    @pytest.mark.parametrize("role", [UserRole.STO, UserRole.SLT])
    def test_non_control_tower_forbidden(self, workflow, catalog, sto, role) -> None:
        form = submitted_form(workflow, catalog, sto)
        with pytest.raises(ForbiddenError):
            workflow.approve(make_user("u", role), "INIT-1", "L3", form.version)
        assert workflow.get_form("INIT-1", "L3").status == FormStatus.SUBMITTED

    @pytest.mark.parametrize("prior", ["not_started", "draft"])
    def test_approve_requires_submitted(self, workflow, sto, control_tower, prior) -> None:
        if prior == "draft":
            workflow.save_draft(sto, "INIT-1", "L3", {"objectives": "x"}, 0)
        before = workflow.get_form("INIT-1", "L3")
        with pytest.raises(InvalidTransitionError):
            workflow.approve(control_tower, "INIT-1", "L3")
        after = workflow.get_form("INIT-1", "L3")
        assert after.status == before.status
        assert after.version == before.version

    def test_approve_stamps_audit(self, workflow, catalog, sto, control_tower) -> None:
        form = approved_form(workflow, catalog, sto, control_tower)
        assert form.status == FormStatus.APPROVED
        assert form.approved_by == "ct-1"
        assert form.approved_at is not None
        assert form.submitted_by == "sto-1"

    def test_approve_twice_is_invalid(self, workflow, catalog, sto, control_tower) -> None:
        approved_form(workflow, catalog, sto, control_tower)
        with pytest.raises(InvalidTransitionError):
            workflow.approve(control_tower, "INIT-1", "L3")

    def test_reject_requires_reason(self, workflow, catalog, sto, control_tower) -> None:
        form = submitted_form(workflow, catalog, sto)
        with pytest.raises(MissingReasonError):
            workflow.reject(control_tower, "INIT-1", "L3", "   ", form.version)
        with pytest.raises(MissingReasonError):
            workflow.reject(control_tower, "INIT-1", "L3", None, form.version)

    def test_reject_stamps_reason(self, workflow, catalog, sto, control_tower) -> None:
        form = submitted_form(workflow, catalog, sto)
        form = workflow.reject(control_tower, "INIT-1", "L3", "  cost too high ", form.version)
        assert form.status == FormStatus.REJECTED
        assert form.rejection_reason == "cost too high"
        assert form.rejected_by == "ct-1"


# =============================================================================
# Editing Rights & Locking
# =============================================================================

class TestLocking:
    """Approved forms are read-only."""

    def test_slt_cannot_save(self, workflow, slt) -> None:
        with pytest.raises(ForbiddenError):
            workflow.save_draft(slt, "INIT-1", "L3", {"objectives": "x"}, 0)

    def test_edit_of_approved_form_is_locked(self, workflow, catalog, sto, control_tower) -> None:
        form = approved_form(workflow, catalog, sto, control_tower)
        for editor in (sto, control_tower):
            with pytest.raises(FormLockedError):
                workflow.save_draft(editor, "INIT-1", "L3", {"objectives": "y"}, form.version)
        assert workflow.get_form("INIT-1", "L3").form_data == form.form_data

    def test_request_change_cannot_carry_new_content(self, workflow, catalog, sto, control_tower) -> None:
        form = approved_form(workflow, catalog, sto, control_tower)
        with pytest.raises(FormLockedError):
            workflow.apply(
                sto, "INIT-1", "L3", GateAction.REQUEST_CHANGE,
                form_data={"objectives": "sneaky"}, reason="why", expected_version=form.version,
            )

    def test_request_change_with_unchanged_content(self, workflow, catalog, sto, control_tower) -> None:
        form = approved_form(workflow, catalog, sto, control_tower)
        form = workflow.apply(
            sto, "INIT-1", "L3", GateAction.REQUEST_CHANGE,
            form_data=dict(form.form_data), reason="why", expected_version=form.version,
        )
        assert form.status == FormStatus.CHANGE_REQUESTED

    def test_request_change_only_from_approved(self, workflow, sto) -> None:
        workflow.save_draft(sto, "INIT-1", "L3", {"objectives": "x"}, 0)
        with pytest.raises(InvalidTransitionError):
            workflow.request_change(sto, "INIT-1", "L3", "reason")

    def test_request_change_requires_reason(self, workflow, catalog, sto, control_tower) -> None:
        form = approved_form(workflow, catalog, sto, control_tower)
        with pytest.raises(MissingReasonError):
            workflow.request_change(sto, "INIT-1", "L3", "", form.version)

    def test_slt_cannot_request_change(self, workflow, catalog, sto, slt, control_tower) -> None:
        form = approved_form(workflow, catalog, sto, control_tower)
        with pytest.raises(ForbiddenError):
            workflow.request_change(slt, "INIT-1", "L3", "reason", form.version)


# =============================================================================
# Checklist Precondition
# =============================================================================

class TestSubmitChecklist:
    """Completeness is re-validated server-side."""

    def test_incomplete_checklist_blocks_submit(self, workflow, sto) -> None:
        form = workflow.save_draft(sto, "INIT-1", "L3", {"objectives": "x"}, 0)
        with pytest.raises(IncompleteChecklistError) as exc_info:
            workflow.submit(sto, "INIT-1", "L3", expected_version=form.version)
        assert "revised_scope" in exc_info.value.details["missing"]
        assert workflow.get_form("INIT-1", "L3").status == FormStatus.DRAFT

    def test_submit_with_content_in_same_call(self, workflow, catalog, sto) -> None:
        form = workflow.save_draft(sto, "INIT-1", "L0", {"objectives": "x"}, 0)
        form = workflow.submit(
            sto, "INIT-1", "L0", complete_checklist(catalog, "L0"), form.version
        )
        assert form.status == FormStatus.SUBMITTED
        assert form.form_data["requirements"] == {"intake_form_completed": True}

    def test_malformed_checklist_rejected_on_save(self, workflow, sto) -> None:
        with pytest.raises(InvalidInputError):
            workflow.save_draft(sto, "INIT-1", "L3", {"requirements": 42}, 0)

    def test_checklist_view(self, workflow, sto) -> None:
        workflow.save_draft(sto, "INIT-1", "L3", {"requirements": {"revised_scope": True}}, 0)
        result = workflow.checklist("INIT-1", "L3")
        assert result.completed == ["revised_scope"]
        assert not result.can_submit


# =============================================================================
# Concurrency
# =============================================================================

class TestOptimisticConcurrency:
    """Stale writes are refused."""

    def test_stale_version_conflicts(self, workflow, sto) -> None:
        workflow.save_draft(sto, "INIT-1", "L3", {"objectives": "first"}, 0)
        with pytest.raises(VersionConflictError) as exc_info:
            workflow.save_draft(make_user("sto-2"), "INIT-1", "L3", {"objectives": "second"}, 0)
        assert exc_info.value.details == {"expected_version": 0, "current_version": 1}
        assert workflow.get_form("INIT-1", "L3").form_data == {"objectives": "first"}

    def test_version_increments_per_write(self, workflow, sto) -> None:
        form = workflow.save_draft(sto, "INIT-1", "L3", {"n": 1}, 0)
        form = workflow.save_draft(sto, "INIT-1", "L3", {"n": 2}, form.version)
        form = workflow.save_draft(sto, "INIT-1", "L3", {"n": 3}, form.version)
        assert form.version == 3

    def test_omitted_version_uses_current(self, workflow, catalog, sto, control_tower) -> None:
        submitted_form(workflow, catalog, sto)
        form = workflow.approve(control_tower, "INIT-1", "L3")
        assert form.status == FormStatus.APPROVED


# =============================================================================
# Audit & History
# =============================================================================

class TestAuditTrail:
    """Audit pairs survive other transitions."""

    def test_reject_after_reopen_keeps_approval(self, workflow, catalog, sto, control_tower) -> None:
        form = approved_form(workflow, catalog, sto, control_tower)
        approved_by, approved_at = form.approved_by, form.approved_at

        form = workflow.request_change(sto, "INIT-1", "L3", "new numbers", form.version)
        form = workflow.submit(sto, "INIT-1", "L3", expected_version=form.version)
        form = workflow.reject(control_tower, "INIT-1", "L3", "still wrong", form.version)

        assert form.status == FormStatus.REJECTED
        assert form.approved_by == approved_by
        assert form.approved_at == approved_at
        assert form.change_request_reason == "new numbers"

    def test_resubmit_overwrites_submit_pair(self, workflow, catalog, sto, control_tower) -> None:
        form = approved_form(workflow, catalog, sto, control_tower)
        first_submit = form.submitted_at
        form = workflow.request_change(sto, "INIT-1", "L3", "again", form.version)
        other = make_user("sto-2")
        form = workflow.submit(other, "INIT-1", "L3", expected_version=form.version)
        assert form.submitted_by == "sto-2"
        assert form.submitted_at > first_submit

    def test_updated_by_tracks_last_actor(self, workflow, catalog, sto, control_tower) -> None:
        form = approved_form(workflow, catalog, sto, control_tower)
        assert form.updated_by == "ct-1"
        assert form.created_at < form.updated_at

    def test_history_records_each_transition(self, workflow, catalog, sto, control_tower) -> None:
        form = approved_form(workflow, catalog, sto, control_tower)
        workflow.request_change(sto, "INIT-1", "L3", "need new numbers", form.version)

        events = workflow.history("INIT-1", "L3")
        assert [e.action for e in events] == [
            GateAction.SAVE_DRAFT,
            GateAction.SUBMIT,
            GateAction.APPROVE,
            GateAction.REQUEST_CHANGE,
        ]
        assert [e.version for e in events] == [1, 2, 3, 4]
        assert events[2].actor_id == "ct-1"
        assert events[3].from_status == FormStatus.APPROVED
        assert events[3].to_status == FormStatus.CHANGE_REQUESTED
        assert events[3].reason == "need new numbers"

    def test_failed_transition_records_nothing(self, workflow, sto, control_tower) -> None:
        workflow.save_draft(sto, "INIT-1", "L3", {"objectives": "x"}, 0)
        with pytest.raises(InvalidTransitionError):
            workflow.approve(control_tower, "INIT-1", "L3")
        assert len(workflow.history("INIT-1", "L3")) == 1


# =============================================================================
# End-to-end Scenario
# =============================================================================

class TestInitiativeScenario:
    """INIT-1 / L3 through approval and a change request."""

    def test_full_cycle(self, workflow, catalog, sto, control_tower) -> None:
        """
        Save, submit, approve, then request a change.

        The draft ticks every required L3 checklist item alongside the
        objectives text: submit re-checks completeness on the server, so a
        draft holding only {"objectives": "x"} would be refused with
        IncompleteChecklistError (see test_literal_draft_cannot_submit).
        """
        assert workflow.get_form("INIT-1", "L3").status == FormStatus.NOT_STARTED

        content = complete_checklist(catalog, "L3", objectives="x")
        form = workflow.save_draft(sto, "INIT-1", "L3", content, 0)
        assert form.status == FormStatus.DRAFT

        form = workflow.submit(sto, "INIT-1", "L3", expected_version=form.version)
        assert form.status == FormStatus.SUBMITTED

        form = workflow.approve(control_tower, "INIT-1", "L3", expected_version=form.version)
        assert form.status == FormStatus.APPROVED
        assert form.approved_by == "ct-1"
        approved_at = form.approved_at

        with pytest.raises(FormLockedError):
            workflow.save_draft(sto, "INIT-1", "L3", {"objectives": "edited"}, form.version)

        form = workflow.request_change(
            sto, "INIT-1", "L3", "need new numbers", expected_version=form.version
        )
        assert form.status == FormStatus.CHANGE_REQUESTED
        assert form.change_request_reason == "need new numbers"
        assert form.change_requested_by == "sto-1"
        assert form.approved_by == "ct-1"
        assert form.approved_at == approved_at

    def test_literal_draft_cannot_submit(self, workflow, sto) -> None:
        form = workflow.save_draft(sto, "INIT-1", "L3", {"objectives": "x"}, 0)
        assert form.status == FormStatus.DRAFT
        with pytest.raises(IncompleteChecklistError) as exc_info:
            workflow.submit(sto, "INIT-1", "L3", expected_version=form.version)
        assert "revised_scope" in exc_info.value.details["missing"]
        assert workflow.get_form("INIT-1", "L3").status == FormStatus.DRAFT

    def test_pending_review_lists_submitted(self, workflow, catalog, sto) -> None:
        submitted_form(workflow, catalog, sto, gate="L3")
        workflow.save_draft(sto, "INIT-1", "L1", {"objectives": "x"}, 0)
        pending = workflow.pending_review()
        assert [(f.initiative_id, f.gate) for f in pending] == [("INIT-1", "L3")]
