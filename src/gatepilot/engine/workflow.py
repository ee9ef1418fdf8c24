"""
GatePilot Gate Form Workflow

State machine for the review form of one (initiative, gate) pair.

Transition table:

    not_started | draft | rejected   --save_draft-->      draft
    change_requested                 --save_draft-->      change_requested
    draft | change_requested         --submit-->          submitted
    submitted                        --approve-->         approved
    submitted                        --reject-->          rejected
    approved                         --request_change-->  change_requested

Every action runs the same guard sequence before anything is written:

    1. role capability        -> ForbiddenError
    2. access decision        -> FormLockedError / InvalidTransitionError
    3. transition table       -> InvalidTransitionError
    4. preconditions          -> MissingReasonError / IncompleteChecklistError
    5. version compare-and-swap in the store -> VersionConflictError

A successful transition stamps its own audit pair, bumps the version and
records a history event in the same store write. Audit pairs owned by
other transitions are never touched.

Usage:
    workflow = GateFormWorkflow(forms=repos.forms, catalog=catalog)
    form = workflow.save_draft(user, "INIT-1", "L3", {"objectives": "x"}, expected_version=0)
    form = workflow.submit(user, "INIT-1", "L3", expected_version=form.version)
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, NoReturn, Optional

from ..exceptions import (
    ForbiddenError,
    FormLockedError,
    InvalidInputError,
    InvalidTransitionError,
    MissingReasonError,
    NotFoundError,
)
from ..models import (
    FormStatus,
    GateAction,
    GateCatalog,
    GateDefinition,
    GateForm,
    GateFormEvent,
    UserRoleRecord,
)
from ..storage import FormStore, InitiativeStore
from .access import AccessDecision, access, role_may
from .checklist import ChecklistResult, evaluate_checklist, extract_checklist, require_complete

logger = logging.getLogger(__name__)


TRANSITIONS: dict[tuple[FormStatus, GateAction], FormStatus] = {
    (FormStatus.NOT_STARTED, GateAction.SAVE_DRAFT): FormStatus.DRAFT,
    (FormStatus.DRAFT, GateAction.SAVE_DRAFT): FormStatus.DRAFT,
    (FormStatus.REJECTED, GateAction.SAVE_DRAFT): FormStatus.DRAFT,
    (FormStatus.CHANGE_REQUESTED, GateAction.SAVE_DRAFT): FormStatus.CHANGE_REQUESTED,
    (FormStatus.DRAFT, GateAction.SUBMIT): FormStatus.SUBMITTED,
    (FormStatus.CHANGE_REQUESTED, GateAction.SUBMIT): FormStatus.SUBMITTED,
    (FormStatus.SUBMITTED, GateAction.APPROVE): FormStatus.APPROVED,
    (FormStatus.SUBMITTED, GateAction.REJECT): FormStatus.REJECTED,
    (FormStatus.APPROVED, GateAction.REQUEST_CHANGE): FormStatus.CHANGE_REQUESTED,
}

REASON_REQUIRED = frozenset({GateAction.REJECT, GateAction.REQUEST_CHANGE})


def next_status(status: FormStatus, action: GateAction) -> Optional[FormStatus]:
    """Target status for ``action`` from ``status``, or None if not allowed."""
    return TRANSITIONS.get((status, action))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GateFormWorkflow:
    """
    Applies gate form transitions against a FormStore.

    Args:
        forms: Gate form store
        catalog: Gate definitions used for gate lookup and checklist checks
        initiatives: When given, transitions on unknown initiatives raise NotFoundError
        clock: Timestamp source, injectable for tests
    """

    def __init__(
        self,
        forms: FormStore,
        catalog: GateCatalog,
        initiatives: Optional[InitiativeStore] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.forms = forms
        self.catalog = catalog
        self.initiatives = initiatives
        self.clock = clock

    # =========================================================================
    # Reads
    # =========================================================================

    def gate(self, gate_id: str) -> GateDefinition:
        definition = self.catalog.get(gate_id)
        if definition is None:
            raise NotFoundError(
                message=f"Unknown gate '{gate_id}'",
                details={"gate": gate_id, "known_gates": self.catalog.gate_ids},
            )
        return definition

    def _check_initiative(self, initiative_id: str) -> None:
        if self.initiatives is not None and self.initiatives.get(initiative_id) is None:
            raise NotFoundError(
                message=f"Initiative '{initiative_id}' not found",
                initiative_id=initiative_id,
            )

    def get_form(self, initiative_id: str, gate: str) -> GateForm:
        """Stored form, or the blank not_started default for an unwritten pair."""
        self.gate(gate)
        self._check_initiative(initiative_id)
        return self.forms.get(initiative_id, gate) or GateForm.blank(initiative_id, gate)

    def list_forms(self, initiative_id: str) -> list[GateForm]:
        """One form per catalog gate, in gate order, defaults filled in."""
        self._check_initiative(initiative_id)
        stored = {f.gate: f for f in self.forms.list_for_initiative(initiative_id)}
        return [
            stored.get(gate_id) or GateForm.blank(initiative_id, gate_id)
            for gate_id in self.catalog.gate_ids
        ]

    def pending_review(self) -> list[GateForm]:
        """Forms awaiting an approver's decision."""
        return self.forms.list_by_status(FormStatus.SUBMITTED)

    def history(self, initiative_id: str, gate: str) -> list[GateFormEvent]:
        self.gate(gate)
        self._check_initiative(initiative_id)
        return self.forms.events(initiative_id, gate)

    def access_for(
        self,
        actor: UserRoleRecord,
        initiative_id: str,
        gate: str,
    ) -> tuple[GateForm, AccessDecision]:
        form = self.get_form(initiative_id, gate)
        return form, access(actor.role, form.status)

    def checklist(self, initiative_id: str, gate: str) -> ChecklistResult:
        form = self.get_form(initiative_id, gate)
        return evaluate_checklist(self.gate(gate), form.form_data)

    # =========================================================================
    # Actions
    # =========================================================================

    def save_draft(
        self,
        actor: UserRoleRecord,
        initiative_id: str,
        gate: str,
        form_data: Optional[dict[str, Any]],
        expected_version: Optional[int] = None,
    ) -> GateForm:
        return self.apply(
            actor, initiative_id, gate, GateAction.SAVE_DRAFT,
            form_data=form_data, expected_version=expected_version,
        )

    def submit(
        self,
        actor: UserRoleRecord,
        initiative_id: str,
        gate: str,
        form_data: Optional[dict[str, Any]] = None,
        expected_version: Optional[int] = None,
    ) -> GateForm:
        return self.apply(
            actor, initiative_id, gate, GateAction.SUBMIT,
            form_data=form_data, expected_version=expected_version,
        )

    def approve(
        self,
        actor: UserRoleRecord,
        initiative_id: str,
        gate: str,
        expected_version: Optional[int] = None,
    ) -> GateForm:
        return self.apply(
            actor, initiative_id, gate, GateAction.APPROVE,
            expected_version=expected_version,
        )

    def reject(
        self,
        actor: UserRoleRecord,
        initiative_id: str,
        gate: str,
        reason: Optional[str],
        expected_version: Optional[int] = None,
    ) -> GateForm:
        return self.apply(
            actor, initiative_id, gate, GateAction.REJECT,
            reason=reason, expected_version=expected_version,
        )

    def request_change(
        self,
        actor: UserRoleRecord,
        initiative_id: str,
        gate: str,
        reason: Optional[str],
        expected_version: Optional[int] = None,
    ) -> GateForm:
        return self.apply(
            actor, initiative_id, gate, GateAction.REQUEST_CHANGE,
            reason=reason, expected_version=expected_version,
        )

    def apply(
        self,
        actor: UserRoleRecord,
        initiative_id: str,
        gate: str,
        action: GateAction,
        form_data: Optional[dict[str, Any]] = None,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> GateForm:
        """
        Run one action through the guard sequence and persist the result.

        Args:
            actor: Acting user and role
            initiative_id: Owning initiative
            gate: Gate id
            action: Requested action
            form_data: New content (save_draft / submit); None keeps current content
            reason: Required for reject and request_change
            expected_version: Version the caller loaded; None means "current"

        Returns:
            The stored form after the transition

        Raises:
            ForbiddenError, FormLockedError, InvalidTransitionError,
            MissingReasonError, IncompleteChecklistError, VersionConflictError,
            NotFoundError, InvalidInputError
        """
        definition = self.gate(gate)
        self._check_initiative(initiative_id)

        if not role_may(actor.role, action):
            raise ForbiddenError(
                message=f"Role '{actor.role.value}' may not {action.value.replace('_', ' ')}",
                details={"role": actor.role.value, "action": action.value},
                initiative_id=initiative_id,
            )

        current = self.forms.get(initiative_id, gate) or GateForm.blank(initiative_id, gate)
        decision = access(actor.role, current.status)
        if not decision.allows(action):
            self._deny(current, action)

        target = next_status(current.status, action)
        if target is None:
            self._deny(current, action)

        reason = self._check_preconditions(definition, current, action, form_data, reason)

        now = self.clock()
        updated = current.clone()
        updated.status = target
        updated.version = current.version + 1
        updated.created_at = current.created_at or now
        updated.updated_by = actor.user_id
        updated.updated_at = now

        if action in (GateAction.SAVE_DRAFT, GateAction.SUBMIT) and form_data is not None:
            updated.form_data = dict(form_data)

        if action == GateAction.SUBMIT:
            updated.submitted_by = actor.user_id
            updated.submitted_at = now
        elif action == GateAction.APPROVE:
            updated.approved_by = actor.user_id
            updated.approved_at = now
        elif action == GateAction.REJECT:
            updated.rejection_reason = reason
            updated.rejected_by = actor.user_id
            updated.rejected_at = now
        elif action == GateAction.REQUEST_CHANGE:
            updated.change_request_reason = reason
            updated.change_requested_by = actor.user_id
            updated.change_requested_at = now

        event = GateFormEvent.create(updated, action, current.status, actor.user_id, reason)
        version = current.version if expected_version is None else expected_version
        saved = self.forms.save(updated, expected_version=version, event=event)

        logger.info(
            "Gate form transition",
            extra={
                "user_id": actor.user_id,
                "initiative_id": initiative_id,
                "gate": gate,
                "action": action.value,
                "from_status": current.status.value,
                "to_status": target.value,
            },
        )
        return saved

    # =========================================================================
    # Guards
    # =========================================================================

    def _deny(self, form: GateForm, action: GateAction) -> NoReturn:
        if form.is_locked and action in (GateAction.SAVE_DRAFT, GateAction.SUBMIT):
            raise FormLockedError(
                message=(
                    f"Form {form.id} is approved and read-only; "
                    "request a change to reopen it"
                ),
                details={"status": form.status.value, "action": action.value},
                initiative_id=form.initiative_id,
            )
        raise InvalidTransitionError(
            message=f"Cannot {action.value} a form in status '{form.status.value}'",
            details={"status": form.status.value, "action": action.value},
            initiative_id=form.initiative_id,
        )

    def _check_preconditions(
        self,
        definition: GateDefinition,
        current: GateForm,
        action: GateAction,
        form_data: Optional[dict[str, Any]],
        reason: Optional[str],
    ) -> Optional[str]:
        """Validate action inputs; returns the normalized reason."""
        if action in REASON_REQUIRED:
            if reason is None or not reason.strip():
                raise MissingReasonError(
                    message=f"A reason is required to {action.value.replace('_', ' ')}",
                    details={"action": action.value},
                    initiative_id=current.initiative_id,
                )
            reason = reason.strip()
        else:
            reason = None

        if form_data is not None:
            if action not in (GateAction.SAVE_DRAFT, GateAction.SUBMIT):
                if form_data != (current.form_data or {}):
                    raise FormLockedError(
                        message=f"Content of form {current.id} cannot change on {action.value}",
                        details={"status": current.status.value, "action": action.value},
                        initiative_id=current.initiative_id,
                    )
            elif not isinstance(form_data, dict):
                raise InvalidInputError(
                    message="formData must be an object",
                    initiative_id=current.initiative_id,
                )
            else:
                extract_checklist(form_data)

        if action == GateAction.SUBMIT:
            content = form_data if form_data is not None else current.form_data
            require_complete(definition, content, initiative_id=current.initiative_id)

        return reason
