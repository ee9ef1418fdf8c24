"""User role endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from gatepilot.models import UserRoleRecord

from api.deps import Services, current_user, get_services
from api.schemas.requests import RoleUpdateRequest
from api.schemas.responses import UserRoleResponse

router = APIRouter(prefix="/api", tags=["Users"])


@router.get("/user/role", response_model=UserRoleResponse)
def my_role(user: UserRoleRecord = Depends(current_user)):
    """The calling user's role. The first user ever seen is control_tower."""
    return UserRoleResponse.from_domain(user)


@router.put("/user/{user_id}/role", response_model=UserRoleResponse)
def assign_role(
    user_id: str,
    body: RoleUpdateRequest,
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Change a user's role. control_tower only."""
    record = services.roles.assign(user, user_id, body.role, body.value_stream)
    return UserRoleResponse.from_domain(record)


@router.get("/admin/users", response_model=list[UserRoleResponse])
def list_users(
    user: UserRoleRecord = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Every registered user and role. control_tower only."""
    return [UserRoleResponse.from_domain(r) for r in services.roles.list_users(user)]
