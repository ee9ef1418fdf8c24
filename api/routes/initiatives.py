"""Initiative registry endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from gatepilot.models import Initiative, UserRoleRecord

from api.deps import Services, current_user, get_services
from api.schemas.requests import (
    BulkUpdateRequest,
    InitiativeCreateRequest,
    InitiativeUpdateRequest,
)
from api.schemas.responses import BulkUpdateResponse, InitiativeResponse

router = APIRouter(prefix="/api/initiatives", tags=["Initiatives"])


@router.get("", response_model=list[InitiativeResponse])
def list_initiatives(
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    return [InitiativeResponse.from_domain(i) for i in services.initiatives.list_all()]


@router.post("", response_model=InitiativeResponse, status_code=201)
def create_initiative(
    body: InitiativeCreateRequest,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Register a new initiative. control_tower only."""
    initiative = services.initiatives.create(user, Initiative(**body.model_dump()))
    return InitiativeResponse.from_domain(initiative)


@router.post("/bulk-update", response_model=BulkUpdateResponse)
def bulk_update_initiatives(
    body: BulkUpdateRequest,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """
    Update several initiatives at once. control_tower only.

    All ids are checked before anything is written.
    """
    updated = services.initiatives.bulk_update(
        user, [(item.id, item.data.changes()) for item in body.updates]
    )
    return BulkUpdateResponse(
        success=True,
        message=f"Updated {len(updated)} initiatives",
        initiatives=[InitiativeResponse.from_domain(i) for i in updated],
    )


@router.get("/{initiative_id}", response_model=InitiativeResponse)
def get_initiative(
    initiative_id: str,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    return InitiativeResponse.from_domain(services.initiatives.get(initiative_id))


@router.put("/{initiative_id}", response_model=InitiativeResponse)
def update_initiative(
    initiative_id: str,
    body: InitiativeUpdateRequest,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Partial update. control_tower only."""
    initiative = services.initiatives.update(user, initiative_id, body.changes())
    return InitiativeResponse.from_domain(initiative)


@router.delete("/{initiative_id}", status_code=204)
def delete_initiative(
    initiative_id: str,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Delete an initiative with its gate forms, status and milestones."""
    services.initiatives.delete(user, initiative_id)
    return Response(status_code=204)
