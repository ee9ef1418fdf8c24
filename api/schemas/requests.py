"""Request schemas for the API.

JSON bodies use camelCase keys; Python attributes stay snake_case.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from gatepilot.models import MilestoneStatus, RAGStatus


class ApiRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Initiative Status
# =============================================================================

class StatusUpdateRequest(ApiRequest):
    """All four indicators, replaced together."""
    cost_status: RAGStatus
    benefit_status: RAGStatus
    timeline_status: RAGStatus
    scope_status: RAGStatus

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "costStatus": "green",
                    "benefitStatus": "yellow",
                    "timelineStatus": "red",
                    "scopeStatus": "green",
                }
            ]
        },
    )

    def as_axes(self) -> dict[str, str]:
        return {
            "cost": self.cost_status.value,
            "benefit": self.benefit_status.value,
            "timeline": self.timeline_status.value,
            "scope": self.scope_status.value,
        }


# =============================================================================
# Gate Forms
# =============================================================================

class GateFormUpdateRequest(ApiRequest):
    """
    Save, submit or reopen a gate form.

    ``status`` selects the action: omitted or "draft" saves, "submitted"
    submits, "change_requested" requests a change on an approved form.
    """
    form_data: Optional[dict[str, Any]] = Field(default=None, description="Form content")
    status: Optional[str] = Field(default=None, description="draft|submitted|change_requested")
    change_request_reason: Optional[str] = None
    version: int = Field(..., ge=0, description="Version of the form the client loaded")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "formData": {"objectives": "x", "requirements": {"revised_scope": True}},
                    "status": "draft",
                    "version": 0,
                }
            ]
        },
    )


class ApproveRequest(ApiRequest):
    version: Optional[int] = Field(default=None, ge=0)


class RejectRequest(ApiRequest):
    reason: Optional[str] = None
    version: Optional[int] = Field(default=None, ge=0)


# =============================================================================
# Users
# =============================================================================

class RoleUpdateRequest(ApiRequest):
    role: str = Field(..., description="control_tower|sto|slt")
    value_stream: Optional[str] = None


# =============================================================================
# Initiatives
# =============================================================================

class InitiativeCreateRequest(ApiRequest):
    id: str = Field(..., min_length=1, description="Business id, e.g. 'INIT-1'")
    name: str = Field(..., min_length=1)
    value_stream: Optional[str] = None
    l_gate: Optional[str] = None
    priority_category: Optional[str] = None
    priority_rank: int = 0
    budgeted_cost: float = 0.0
    targeted_benefit: float = 0.0
    cost_center: Optional[str] = None


class InitiativeUpdateRequest(ApiRequest):
    """Partial update; only fields present in the body are applied."""
    name: Optional[str] = None
    value_stream: Optional[str] = None
    l_gate: Optional[str] = None
    priority_category: Optional[str] = None
    priority_rank: Optional[int] = None
    budgeted_cost: Optional[float] = None
    targeted_benefit: Optional[float] = None
    cost_center: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class BulkUpdateItem(ApiRequest):
    id: str
    data: InitiativeUpdateRequest


class BulkUpdateRequest(ApiRequest):
    updates: list[BulkUpdateItem]


# =============================================================================
# Milestones
# =============================================================================

class MilestoneCreateRequest(ApiRequest):
    initiative_id: str
    name: str = Field(..., min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: MilestoneStatus = MilestoneStatus.NOT_STARTED
    notes: Optional[str] = None


class MilestoneUpdateRequest(ApiRequest):
    name: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[MilestoneStatus] = None
    notes: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)
