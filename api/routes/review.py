"""Review queue and portfolio rollup endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from gatepilot.engine import access, evaluate_checklist, require_role, summarize_portfolio
from gatepilot.models import APPROVER_ROLES, UserRoleRecord

from api.deps import Services, current_user, get_services
from api.schemas.responses import GateFormResponse, PortfolioSummaryResponse

router = APIRouter(prefix="/api", tags=["Review"])


@router.get("/gate-forms/pending", response_model=list[GateFormResponse])
def pending_forms(
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Every submitted form awaiting a decision. control_tower only."""
    require_role(user.role, APPROVER_ROLES, "view the review queue")
    return [
        GateFormResponse.from_domain(
            form,
            access(user.role, form.status),
            evaluate_checklist(services.workflow.gate(form.gate), form.form_data),
        )
        for form in services.workflow.pending_review()
    ]


@router.get("/portfolio/summary", response_model=PortfolioSummaryResponse)
def portfolio_summary(
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Cost and benefit totals, gate distribution and status counts."""
    return PortfolioSummaryResponse.from_domain(
        summarize_portfolio(services.repos, services.catalog)
    )
