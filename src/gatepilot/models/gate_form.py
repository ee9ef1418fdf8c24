"""
GatePilot Gate Form Models

One GateForm exists per (initiative, gate) pair. The workflow never
interprets ``form_data`` beyond the requirement checklist; everything else
is opaque content owned by the editing UI.

Key components:
- GateForm: current state, content and audit trail of a review form
- GateFormEvent: one entry in a form's transition history
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from .enums import FormStatus, GateAction


def form_id_for(initiative_id: str, gate: str) -> str:
    """Stable identifier of the form for an (initiative, gate) pair."""
    return f"{initiative_id}-{gate}"


# =============================================================================
# Gate Form
# =============================================================================

@dataclass
class GateForm:
    """
    A gate-review form.

    Attributes:
        id: "<initiative_id>-<gate>"
        initiative_id: Owning initiative
        gate: Gate id (L0..L6)
        status: Lifecycle status
        form_data: Opaque key/value content
        version: Optimistic concurrency token; 0 until first write

    Audit pairs are stamped by the transition that owns them and are
    only ever overwritten by a later run of that same transition.
    """
    id: str
    initiative_id: str
    gate: str
    status: FormStatus = FormStatus.NOT_STARTED
    form_data: Optional[dict[str, Any]] = None
    version: int = 0

    submitted_by: Optional[str] = None
    submitted_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    change_request_reason: Optional[str] = None
    change_requested_by: Optional[str] = None
    change_requested_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def blank(cls, initiative_id: str, gate: str) -> GateForm:
        """The default shape returned for a pair that has never been written."""
        return cls(
            id=form_id_for(initiative_id, gate),
            initiative_id=initiative_id,
            gate=gate,
        )

    @property
    def is_locked(self) -> bool:
        """Approved forms are immutable to ordinary editors."""
        return self.status == FormStatus.APPROVED

    @property
    def is_persisted(self) -> bool:
        return self.version > 0

    def clone(self) -> GateForm:
        """Deep copy, so stores never hand out their own instances."""
        return replace(self, form_data=copy.deepcopy(self.form_data))


# =============================================================================
# Transition History
# =============================================================================

@dataclass
class GateFormEvent:
    """A recorded transition of a gate form."""
    id: str
    form_id: str
    initiative_id: str
    gate: str
    action: GateAction
    from_status: FormStatus
    to_status: FormStatus
    actor_id: str
    occurred_at: datetime
    version: int
    reason: Optional[str] = None

    @classmethod
    def create(
        cls,
        form: GateForm,
        action: GateAction,
        from_status: FormStatus,
        actor_id: str,
        reason: Optional[str] = None,
    ) -> GateFormEvent:
        """Build the event describing ``form``'s latest transition."""
        return cls(
            id=str(uuid4()),
            form_id=form.id,
            initiative_id=form.initiative_id,
            gate=form.gate,
            action=action,
            from_status=from_status,
            to_status=form.status,
            actor_id=actor_id,
            occurred_at=form.updated_at or datetime.now(timezone.utc),
            version=form.version,
            reason=reason,
        )
