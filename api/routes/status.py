"""Initiative status endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from gatepilot.models import UserRoleRecord

from api.deps import Services, current_user, get_services, status_editor
from api.schemas.requests import StatusUpdateRequest
from api.schemas.responses import StatusResponse

router = APIRouter(prefix="/api/initiatives", tags=["Status"])


@router.get("/{initiative_id}/status", response_model=StatusResponse)
def get_status(
    initiative_id: str,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """
    Current red/yellow/green indicators.

    An initiative that has never had its status set reads as all-green.
    """
    return StatusResponse.from_domain(services.status_board.get(initiative_id))


@router.put("/{initiative_id}/status", response_model=StatusResponse)
def update_status(
    initiative_id: str,
    body: StatusUpdateRequest,
    user: UserRoleRecord = Depends(status_editor),
    services: Services = Depends(get_services),
):
    """Replace all four indicators. Requires control_tower or sto."""
    status = services.status_board.set(user, initiative_id, body.as_axes())
    return StatusResponse.from_domain(status)
