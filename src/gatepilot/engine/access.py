"""
GatePilot Access Rules

One pure decision table mapping (role, form status) to what the user may
do with a gate form. Every surface consumes this function: the API
embeds the decision in form responses for UI guards, and the workflow
engine calls it before applying any transition.

Rules:
- control_tower: view always; edit unless approved; approve iff submitted
- sto: view always; edit unless approved; never approve
- slt: view always; never edit; never approve
- request change: editors only, and only on an approved form
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Union

from ..exceptions import ForbiddenError
from ..models import APPROVER_ROLES, EDITOR_ROLES, FormStatus, GateAction, UserRole


# =============================================================================
# Decision
# =============================================================================

@dataclass(frozen=True)
class AccessDecision:
    """What a role may do with a form in a given status."""
    can_view: bool
    can_edit: bool
    can_approve: bool
    can_request_change: bool

    def allows(self, action: GateAction) -> bool:
        """Whether the decision permits ``action`` in the current status."""
        if action in (GateAction.SAVE_DRAFT, GateAction.SUBMIT):
            return self.can_edit
        if action in (GateAction.APPROVE, GateAction.REJECT):
            return self.can_approve
        if action == GateAction.REQUEST_CHANGE:
            return self.can_request_change
        return False

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)


# =============================================================================
# Role Capabilities
# =============================================================================

# Which roles may ever perform an action, independent of form status
ACTION_ROLES: dict[GateAction, frozenset[UserRole]] = {
    GateAction.SAVE_DRAFT: EDITOR_ROLES,
    GateAction.SUBMIT: EDITOR_ROLES,
    GateAction.REQUEST_CHANGE: EDITOR_ROLES,
    GateAction.APPROVE: APPROVER_ROLES,
    GateAction.REJECT: APPROVER_ROLES,
}


def role_may(role: Union[UserRole, str], action: GateAction) -> bool:
    """Whether ``role`` holds the capability for ``action`` at all."""
    return UserRole(role) in ACTION_ROLES[action]


def require_role(
    role: Union[UserRole, str],
    allowed: frozenset[UserRole],
    operation: str,
) -> None:
    """
    Raise unless ``role`` is one of ``allowed``.

    Raises:
        ForbiddenError: Naming the operation and the roles that may perform it
    """
    role = UserRole(role)
    if role not in allowed:
        raise ForbiddenError(
            message=f"Role '{role.value}' may not {operation}",
            details={
                "role": role.value,
                "allowed_roles": sorted(r.value for r in allowed),
            },
        )


def access(role: Union[UserRole, str], status: Union[FormStatus, str]) -> AccessDecision:
    """
    Compute the access decision for a role on a form status.

    Args:
        role: User role (enum or its string value)
        status: Form status (enum or its string value)

    Returns:
        AccessDecision

    Raises:
        ValueError: If role or status is not a known value
    """
    role = UserRole(role)
    status = FormStatus(status)

    is_editor = role in EDITOR_ROLES
    is_approver = role in APPROVER_ROLES
    locked = status == FormStatus.APPROVED

    return AccessDecision(
        can_view=True,
        can_edit=is_editor and not locked,
        can_approve=is_approver and status == FormStatus.SUBMITTED,
        can_request_change=is_editor and locked,
    )


def access_matrix() -> dict[str, dict[str, dict[str, Any]]]:
    """Full role x status table, for clients that render guards up front."""
    return {
        role.value: {
            status.value: access(role, status).to_dict()
            for status in FormStatus
        }
        for role in UserRole
    }
