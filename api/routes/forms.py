"""
Gate form endpoints.

Every response embeds the caller's access decision and the checklist
state, computed by the same functions the workflow enforces, so UI
guards never drift from server behaviour.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from gatepilot.engine import access, evaluate_checklist
from gatepilot.exceptions import ForbiddenError, InvalidInputError
from gatepilot.models import FormStatus, GateAction, GateForm, UserRoleRecord

from api.deps import Services, current_user, get_services
from api.schemas.requests import ApproveRequest, GateFormUpdateRequest, RejectRequest
from api.schemas.responses import (
    AccessResponse,
    ChecklistResponse,
    GateFormEventResponse,
    GateFormResponse,
)

router = APIRouter(prefix="/api/initiatives", tags=["Gate Forms"])

# Requested target status on PUT -> workflow action
STATUS_ACTIONS: dict[Optional[str], GateAction] = {
    None: GateAction.SAVE_DRAFT,
    FormStatus.DRAFT.value: GateAction.SAVE_DRAFT,
    FormStatus.SUBMITTED.value: GateAction.SUBMIT,
    FormStatus.CHANGE_REQUESTED.value: GateAction.REQUEST_CHANGE,
}


def _action_for(status: Optional[str]) -> GateAction:
    if status in STATUS_ACTIONS:
        return STATUS_ACTIONS[status]
    if status in (FormStatus.APPROVED.value, FormStatus.REJECTED.value):
        raise ForbiddenError(
            message=f"Use the {'approve' if status == 'approved' else 'reject'} endpoint "
                    f"to set status '{status}'",
            details={"status": status},
        )
    raise InvalidInputError(
        message=f"Invalid status '{status}'",
        details={"allowed": [s for s in STATUS_ACTIONS if s]},
    )


def _respond(services: Services, user: UserRoleRecord, form: GateForm) -> GateFormResponse:
    checklist = evaluate_checklist(services.workflow.gate(form.gate), form.form_data)
    return GateFormResponse.from_domain(form, access(user.role, form.status), checklist)


@router.get("/{initiative_id}/forms", response_model=list[GateFormResponse])
def list_forms(
    initiative_id: str,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """One form per gate, L0 through L6, with defaults for gates never started."""
    return [_respond(services, user, f) for f in services.workflow.list_forms(initiative_id)]


@router.get("/{initiative_id}/forms/{gate}", response_model=GateFormResponse)
def get_form(
    initiative_id: str,
    gate: str,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Current form, or the not_started default if it was never written."""
    return _respond(services, user, services.workflow.get_form(initiative_id, gate))


@router.put("/{initiative_id}/forms/{gate}", response_model=GateFormResponse)
def update_form(
    initiative_id: str,
    gate: str,
    body: GateFormUpdateRequest,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """
    Save a draft, submit for review, or request a change.

    Body:
    - formData: form content (omit to keep the stored content)
    - status: omitted/"draft" saves, "submitted" submits,
      "change_requested" reopens an approved form
    - changeRequestReason: required with "change_requested"
    - version: the version the client loaded; a stale version fails with 409
    """
    action = _action_for(body.status)
    form = services.workflow.apply(
        user,
        initiative_id,
        gate,
        action,
        form_data=body.form_data,
        reason=body.change_request_reason,
        expected_version=body.version,
    )
    return _respond(services, user, form)


@router.put("/{initiative_id}/forms/{gate}/approve", response_model=GateFormResponse)
def approve_form(
    initiative_id: str,
    gate: str,
    body: Optional[ApproveRequest] = None,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Approve a submitted form. control_tower only."""
    version = body.version if body else None
    form = services.workflow.approve(user, initiative_id, gate, expected_version=version)
    return _respond(services, user, form)


@router.put("/{initiative_id}/forms/{gate}/reject", response_model=GateFormResponse)
def reject_form(
    initiative_id: str,
    gate: str,
    body: RejectRequest,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Reject a submitted form with a reason. control_tower only."""
    form = services.workflow.reject(
        user, initiative_id, gate, body.reason, expected_version=body.version
    )
    return _respond(services, user, form)


@router.get(
    "/{initiative_id}/forms/{gate}/history",
    response_model=list[GateFormEventResponse],
)
def form_history(
    initiative_id: str,
    gate: str,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Transition log, oldest first."""
    events = services.workflow.history(initiative_id, gate)
    return [GateFormEventResponse.from_domain(e) for e in events]


@router.get("/{initiative_id}/forms/{gate}/access", response_model=AccessResponse)
def form_access(
    initiative_id: str,
    gate: str,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """What the calling user may do with this form right now."""
    _, decision = services.workflow.access_for(user, initiative_id, gate)
    return AccessResponse.from_domain(decision)


@router.get("/{initiative_id}/forms/{gate}/checklist", response_model=ChecklistResponse)
def form_checklist(
    initiative_id: str,
    gate: str,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Completed and missing requirements of the stored form."""
    return ChecklistResponse.from_domain(services.workflow.checklist(initiative_id, gate))
