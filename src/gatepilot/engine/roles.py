"""
GatePilot Role Service

Maps resolved user ids to application roles. Users are registered on
their first authenticated request: the first user ever seen becomes
control_tower, everyone after that starts as view-only slt.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Optional

from ..exceptions import InvalidInputError, NotFoundError, UnauthorizedError
from ..models import APPROVER_ROLES, UserRole, UserRoleRecord
from ..storage import RoleStore
from .access import require_role

logger = logging.getLogger(__name__)

FIRST_USER_ROLE = UserRole.CONTROL_TOWER
DEFAULT_ROLE = UserRole.SLT


def parse_role(value: Any) -> UserRole:
    """
    Raises:
        InvalidInputError: If ``value`` is not a known role
    """
    try:
        return UserRole(value)
    except ValueError:
        raise InvalidInputError(
            message=f"Invalid role '{value}'",
            details={"allowed": [r.value for r in UserRole]},
        ) from None


class RoleService:
    """Role lookup, lazy registration and administrative assignment."""

    def __init__(self, roles: RoleStore) -> None:
        self.roles = roles

    def resolve(self, user_id: Optional[str]) -> UserRoleRecord:
        """
        Role record for an authenticated user, registering it if new.

        Raises:
            UnauthorizedError: No user id was resolved upstream
        """
        if not user_id or not user_id.strip():
            raise UnauthorizedError(message="Authentication required")

        record, created = self.roles.register(user_id.strip(), FIRST_USER_ROLE, DEFAULT_ROLE)
        if created:
            logger.info(
                f"Registered user with role {record.role.value}",
                extra={"user_id": record.user_id, "action": "register_user"},
            )
        return record

    def get(self, user_id: str) -> UserRoleRecord:
        record = self.roles.get(user_id)
        if record is None:
            raise NotFoundError(message=f"User '{user_id}' not found")
        return record

    def list_users(self, actor: UserRoleRecord) -> list[UserRoleRecord]:
        require_role(actor.role, APPROVER_ROLES, "list users")
        return self.roles.list_all()

    def assign(
        self,
        actor: UserRoleRecord,
        user_id: str,
        role: Any,
        value_stream: Optional[str] = None,
    ) -> UserRoleRecord:
        """
        Change a user's role.

        Raises:
            ForbiddenError: Actor is not control_tower
            InvalidInputError: Unknown role value
            NotFoundError: User has never been registered
        """
        require_role(actor.role, APPROVER_ROLES, "assign roles")
        new_role = parse_role(role)
        current = self.get(user_id)

        updated = replace(
            current,
            role=new_role,
            value_stream=value_stream if value_stream is not None else current.value_stream,
            updated_at=datetime.now(timezone.utc),
        )
        saved = self.roles.update(updated)
        if saved is None:
            raise NotFoundError(message=f"User '{user_id}' not found")

        logger.info(
            f"Role changed from {current.role.value} to {new_role.value}",
            extra={"user_id": actor.user_id, "action": "assign_role"},
        )
        return saved
