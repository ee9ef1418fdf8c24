"""
GatePilot User Role Model
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import APPROVER_ROLES, EDITOR_ROLES, UserRole


@dataclass
class UserRoleRecord:
    """
    Role assignment for one user.

    Attributes:
        user_id: Id resolved by the upstream session layer
        role: Assigned application role
        value_stream: Optional scoping field; not consulted by the access rules
    """
    user_id: str
    role: UserRole = UserRole.SLT
    value_stream: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_editor(self) -> bool:
        return self.role in EDITOR_ROLES

    @property
    def is_approver(self) -> bool:
        return self.role in APPROVER_ROLES
