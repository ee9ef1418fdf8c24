"""Milestone endpoints (control_tower only)."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from gatepilot.models import UserRoleRecord

from api.deps import Services, current_user, get_services
from api.schemas.requests import MilestoneCreateRequest, MilestoneUpdateRequest
from api.schemas.responses import MilestoneResponse

router = APIRouter(prefix="/api/milestones", tags=["Milestones"])


@router.get("", response_model=list[MilestoneResponse])
def list_milestones(
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """All milestones; overdue ones are marked missed as they are read."""
    return [MilestoneResponse.from_domain(m) for m in services.milestones.list_milestones(user)]


@router.get("/by-initiative/{initiative_id}", response_model=list[MilestoneResponse])
def list_initiative_milestones(
    initiative_id: str,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    items = services.milestones.list_milestones(user, initiative_id)
    return [MilestoneResponse.from_domain(m) for m in items]


@router.post("", response_model=MilestoneResponse, status_code=201)
def create_milestone(
    body: MilestoneCreateRequest,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    milestone = services.milestones.create(
        user,
        body.initiative_id,
        body.name,
        start_date=body.start_date,
        end_date=body.end_date,
        status=body.status,
        notes=body.notes,
    )
    return MilestoneResponse.from_domain(milestone)


@router.put("/{milestone_id}", response_model=MilestoneResponse)
def update_milestone(
    milestone_id: str,
    body: MilestoneUpdateRequest,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    milestone = services.milestones.update(user, milestone_id, body.changes())
    return MilestoneResponse.from_domain(milestone)


@router.delete("/{milestone_id}", status_code=204)
def delete_milestone(
    milestone_id: str,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    services.milestones.delete(user, milestone_id)
    return Response(status_code=204)
