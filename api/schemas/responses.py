"""Response schemas for the API."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gatepilot.engine import AccessDecision, ChecklistResult, PortfolioSummary
from gatepilot.models import (
    GateDefinition,
    GateForm,
    GateFormEvent,
    Initiative,
    InitiativeStatus,
    Milestone,
    UserRoleRecord,
)


class ApiResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Initiative Status
# =============================================================================

class StatusResponse(ApiResponse):
    initiative_id: str
    cost_status: str
    benefit_status: str
    timeline_status: str
    scope_status: str
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, status: InitiativeStatus) -> StatusResponse:
        return cls(
            initiative_id=status.initiative_id,
            cost_status=status.cost_status.value,
            benefit_status=status.benefit_status.value,
            timeline_status=status.timeline_status.value,
            scope_status=status.scope_status.value,
            updated_by=status.updated_by,
            updated_at=status.updated_at,
        )


# =============================================================================
# Gate Forms
# =============================================================================

class AccessResponse(ApiResponse):
    can_view: bool
    can_edit: bool
    can_approve: bool
    can_request_change: bool

    @classmethod
    def from_domain(cls, decision: AccessDecision) -> AccessResponse:
        return cls(**decision.to_dict())


class ChecklistResponse(ApiResponse):
    gate: str
    completed: list[str]
    missing: list[str]
    optional_missing: list[str]
    total_required: int
    completeness_percentage: float
    can_submit: bool

    @classmethod
    def from_domain(cls, result: ChecklistResult) -> ChecklistResponse:
        return cls(**result.to_dict())


class GateFormResponse(ApiResponse):
    """A gate form plus the caller's access decision and checklist state."""
    id: str
    initiative_id: str
    gate: str
    status: str
    form_data: Optional[dict[str, Any]] = None
    version: int

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

    access: Optional[AccessResponse] = None
    checklist: Optional[ChecklistResponse] = None

    @classmethod
    def from_domain(
        cls,
        form: GateForm,
        decision: Optional[AccessDecision] = None,
        checklist: Optional[ChecklistResult] = None,
    ) -> GateFormResponse:
        return cls(
            id=form.id,
            initiative_id=form.initiative_id,
            gate=form.gate,
            status=form.status.value,
            form_data=form.form_data,
            version=form.version,
            submitted_by=form.submitted_by,
            submitted_at=form.submitted_at,
            approved_by=form.approved_by,
            approved_at=form.approved_at,
            rejection_reason=form.rejection_reason,
            rejected_by=form.rejected_by,
            rejected_at=form.rejected_at,
            change_request_reason=form.change_request_reason,
            change_requested_by=form.change_requested_by,
            change_requested_at=form.change_requested_at,
            created_at=form.created_at,
            updated_by=form.updated_by,
            updated_at=form.updated_at,
            access=AccessResponse.from_domain(decision) if decision else None,
            checklist=ChecklistResponse.from_domain(checklist) if checklist else None,
        )


class GateFormEventResponse(ApiResponse):
    id: str
    form_id: str
    action: str
    from_status: str
    to_status: str
    actor_id: str
    occurred_at: datetime
    version: int
    reason: Optional[str] = None

    @classmethod
    def from_domain(cls, event: GateFormEvent) -> GateFormEventResponse:
        return cls(
            id=event.id,
            form_id=event.form_id,
            action=event.action.value,
            from_status=event.from_status.value,
            to_status=event.to_status.value,
            actor_id=event.actor_id,
            occurred_at=event.occurred_at,
            version=event.version,
            reason=event.reason,
        )


# =============================================================================
# Gate Catalog
# =============================================================================

class RequirementResponse(ApiResponse):
    id: str
    name: str
    type: str
    description: Optional[str] = None
    required: bool


class GateResponse(ApiResponse):
    id: str
    name: str
    sequence: int
    requirements: list[RequirementResponse]

    @classmethod
    def from_domain(cls, gate: GateDefinition) -> GateResponse:
        return cls(
            id=gate.id,
            name=gate.name,
            sequence=gate.sequence,
            requirements=[
                RequirementResponse(
                    id=r.id,
                    name=r.name,
                    type=r.type.value,
                    description=r.description,
                    required=r.required,
                )
                for r in gate.requirements
            ],
        )


# =============================================================================
# Users
# =============================================================================

class UserRoleResponse(ApiResponse):
    user_id: str
    role: str
    value_stream: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, record: UserRoleRecord) -> UserRoleResponse:
        return cls(
            user_id=record.user_id,
            role=record.role.value,
            value_stream=record.value_stream,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


# =============================================================================
# Initiatives & Milestones
# =============================================================================

class InitiativeResponse(ApiResponse):
    id: str
    name: str
    value_stream: Optional[str] = None
    l_gate: Optional[str] = None
    priority_category: Optional[str] = None
    priority_rank: int = 0
    budgeted_cost: float = 0.0
    targeted_benefit: float = 0.0
    cost_center: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, initiative: Initiative) -> InitiativeResponse:
        return cls(**vars(initiative))


class MilestoneResponse(ApiResponse):
    id: str
    initiative_id: str
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str
    notes: Optional[str] = None

    @classmethod
    def from_domain(cls, milestone: Milestone) -> MilestoneResponse:
        return cls(
            id=milestone.id,
            initiative_id=milestone.initiative_id,
            name=milestone.name,
            start_date=milestone.start_date,
            end_date=milestone.end_date,
            status=milestone.status.value,
            notes=milestone.notes,
        )


class BulkUpdateResponse(ApiResponse):
    success: bool
    message: str
    initiatives: list[InitiativeResponse]


# =============================================================================
# Portfolio
# =============================================================================

class ValueStreamTotalsResponse(ApiResponse):
    initiative_count: int
    budgeted_cost: float
    targeted_benefit: float


class PortfolioSummaryResponse(ApiResponse):
    initiative_count: int
    budgeted_cost: float
    targeted_benefit: float
    by_value_stream: dict[str, ValueStreamTotalsResponse]
    by_gate: dict[str, int]
    status_counts: dict[str, dict[str, int]]
    pending_reviews: int

    @classmethod
    def from_domain(cls, summary: PortfolioSummary) -> PortfolioSummaryResponse:
        return cls(**summary.to_dict())


# =============================================================================
# Health
# =============================================================================

class HealthResponse(BaseModel):
    """Liveness probe response."""
    status: str
    timestamp: str
    version: str


class ReadyResponse(BaseModel):
    """Readiness probe response."""
    status: str
    timestamp: str
    checks: dict[str, bool]
    version: str
    catalog_version: Optional[str] = None
    storage: str


class ErrorResponse(BaseModel):
    """Structured error response."""
    error: str
    code: str
    details: Optional[dict[str, Any]] = None
    initiative_id: Optional[str] = None
    request_id: str
