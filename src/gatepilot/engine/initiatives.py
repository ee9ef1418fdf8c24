"""
GatePilot Initiative Registry

CRUD over initiatives. Reads are open to every authenticated user;
writes are reserved for control_tower. Deleting an initiative removes
its gate forms, status row and milestones with it.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence

from ..exceptions import InvalidInputError, NotFoundError
from ..models import APPROVER_ROLES, GateCatalog, Initiative, UserRoleRecord
from ..storage import Repositories
from .access import require_role

logger = logging.getLogger(__name__)

# Fields that can be changed but never cleared
NON_NULLABLE_FIELDS = ("name", "priority_rank", "budgeted_cost", "targeted_benefit")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InitiativeService:
    """
    Initiative registry bound to a full set of repositories.

    The catalog, when given, restricts ``l_gate`` to known gate ids.
    """

    def __init__(
        self,
        repos: Repositories,
        catalog: Optional[GateCatalog] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repos = repos
        self.catalog = catalog
        self.clock = clock

    def list_all(self) -> list[Initiative]:
        return self.repos.initiatives.list_all()

    def get(self, initiative_id: str) -> Initiative:
        initiative = self.repos.initiatives.get(initiative_id)
        if initiative is None:
            raise NotFoundError(
                message=f"Initiative '{initiative_id}' not found",
                initiative_id=initiative_id,
            )
        return initiative

    def _check_fields(self, fields: Mapping[str, Any]) -> None:
        cleared = [f for f in NON_NULLABLE_FIELDS if f in fields and fields[f] is None]
        if cleared:
            raise InvalidInputError(
                message=f"Fields cannot be null: {', '.join(cleared)}",
                details={"fields": cleared},
            )
        if "name" in fields and not str(fields["name"]).strip():
            raise InvalidInputError(message="Initiative name must not be blank")
        l_gate = fields.get("l_gate")
        if l_gate is not None and self.catalog is not None and l_gate not in self.catalog:
            raise InvalidInputError(
                message=f"Unknown gate '{l_gate}'",
                details={"known_gates": self.catalog.gate_ids},
            )
        for numeric in ("budgeted_cost", "targeted_benefit"):
            value = fields.get(numeric)
            if value is not None and value < 0:
                raise InvalidInputError(message=f"{numeric} must not be negative")

    def create(self, actor: UserRoleRecord, initiative: Initiative) -> Initiative:
        """
        Raises:
            ForbiddenError: Actor is not control_tower
            InvalidInputError: Duplicate id, blank name or invalid field
        """
        require_role(actor.role, APPROVER_ROLES, "create initiatives")
        if not initiative.id.strip() or not initiative.name.strip():
            raise InvalidInputError(message="Initiative id and name are required")
        self._check_fields(vars(initiative))

        now = self.clock()
        created = self.repos.initiatives.create(
            replace(initiative, created_at=now, updated_at=now)
        )
        logger.info(
            "Initiative created",
            extra={"user_id": actor.user_id, "initiative_id": created.id, "action": "create"},
        )
        return created

    def update(
        self,
        actor: UserRoleRecord,
        initiative_id: str,
        changes: Mapping[str, Any],
    ) -> Initiative:
        require_role(actor.role, APPROVER_ROLES, "update initiatives")
        self._check_fields(changes)
        current = self.get(initiative_id)
        updated = replace(current.apply_changes(dict(changes)), updated_at=self.clock())
        saved = self.repos.initiatives.update(updated)
        if saved is None:
            raise NotFoundError(
                message=f"Initiative '{initiative_id}' not found",
                initiative_id=initiative_id,
            )
        logger.info(
            "Initiative updated",
            extra={"user_id": actor.user_id, "initiative_id": initiative_id, "action": "update"},
        )
        return saved

    def bulk_update(
        self,
        actor: UserRoleRecord,
        updates: Sequence[tuple[str, Mapping[str, Any]]],
    ) -> list[Initiative]:
        """
        Apply several (initiative_id, changes) updates.

        Every id and every change set is validated before the first write,
        so an unknown id or bad value leaves all initiatives untouched.
        """
        require_role(actor.role, APPROVER_ROLES, "update initiatives")
        now = self.clock()
        staged: list[Initiative] = []
        for initiative_id, changes in updates:
            self._check_fields(changes)
            current = self.get(initiative_id)
            staged.append(replace(current.apply_changes(dict(changes)), updated_at=now))

        saved = [self.repos.initiatives.update(i) or i for i in staged]
        logger.info(
            f"Bulk updated {len(saved)} initiatives",
            extra={"user_id": actor.user_id, "action": "bulk_update"},
        )
        return saved

    def delete(self, actor: UserRoleRecord, initiative_id: str) -> None:
        """Delete an initiative together with its forms, status and milestones."""
        require_role(actor.role, APPROVER_ROLES, "delete initiatives")
        self.get(initiative_id)

        forms = self.repos.forms.delete_for_initiative(initiative_id)
        self.repos.statuses.delete(initiative_id)
        milestones = self.repos.milestones.delete_for_initiative(initiative_id)
        self.repos.initiatives.delete(initiative_id)

        logger.info(
            f"Initiative deleted ({forms} forms, {milestones} milestones)",
            extra={"user_id": actor.user_id, "initiative_id": initiative_id, "action": "delete"},
        )
