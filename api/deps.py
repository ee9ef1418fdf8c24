"""
Request dependencies: the service bundle and the acting user.

Session handling happens upstream; by the time a request reaches the
service the resolved user id travels in a header (GP_USER_HEADER).
"""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Request

from gatepilot.engine import (
    GateFormWorkflow,
    InitiativeService,
    MilestoneTracker,
    RoleService,
    StatusBoard,
)
from gatepilot.engine.access import require_role
from gatepilot.models import EDITOR_ROLES, GateCatalog, UserRoleRecord
from gatepilot.storage import Repositories

from api.config import Settings


@dataclass
class Services:
    """Everything a route needs, built once per application."""
    settings: Settings
    catalog: GateCatalog
    repos: Repositories
    roles: RoleService
    workflow: GateFormWorkflow
    status_board: StatusBoard
    initiatives: InitiativeService
    milestones: MilestoneTracker

    @classmethod
    def build(cls, settings: Settings, catalog: GateCatalog, repos: Repositories) -> Services:
        return cls(
            settings=settings,
            catalog=catalog,
            repos=repos,
            roles=RoleService(repos.roles),
            workflow=GateFormWorkflow(repos.forms, catalog, repos.initiatives),
            status_board=StatusBoard(repos.statuses, repos.initiatives),
            initiatives=InitiativeService(repos, catalog),
            milestones=MilestoneTracker(repos.milestones, repos.initiatives),
        )


def get_services(request: Request) -> Services:
    return request.app.state.services


def current_user(
    request: Request,
    services: Services = Depends(get_services),
) -> UserRoleRecord:
    """
    Resolve the acting user's role record, registering first-time users.

    Raises:
        UnauthorizedError: No user id header on the request
    """
    user_id = request.headers.get(services.settings.user_header)
    record = services.roles.resolve(user_id)
    request.state.user_id = record.user_id
    return record


def status_editor(user: UserRoleRecord = Depends(current_user)) -> UserRoleRecord:
    """
    The acting user, provided they may set initiative status.

    Resolved before the request body is validated, so a viewer gets 403
    whatever the body holds.
    """
    require_role(user.role, EDITOR_ROLES, "update initiative status")
    return user
