"""
GatePilot Milestone Tracker

Milestone CRUD for control_tower users. Reads close out overdue
milestones: any milestone past its end date that is neither completed
nor already missed is persisted as missed before being returned.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Callable, Mapping, Optional
from uuid import uuid4

from ..exceptions import InvalidInputError, NotFoundError
from ..models import APPROVER_ROLES, Milestone, MilestoneStatus, UserRoleRecord
from ..storage import InitiativeStore, MilestoneStore
from .access import require_role

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "start_date", "end_date", "status", "notes")


def parse_milestone_status(value: Any) -> MilestoneStatus:
    try:
        return MilestoneStatus(value)
    except ValueError:
        raise InvalidInputError(
            message=f"Invalid milestone status '{value}'",
            details={"allowed": [s.value for s in MilestoneStatus]},
        ) from None


def _check_dates(milestone: Milestone) -> None:
    if milestone.start_date and milestone.end_date and milestone.end_date < milestone.start_date:
        raise InvalidInputError(
            message="Milestone end date is before its start date",
            details={
                "start_date": milestone.start_date.isoformat(),
                "end_date": milestone.end_date.isoformat(),
            },
        )


class MilestoneTracker:
    """Milestone reads with missed-status roll-forward, plus CRUD."""

    def __init__(
        self,
        milestones: MilestoneStore,
        initiatives: Optional[InitiativeStore] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.milestones = milestones
        self.initiatives = initiatives
        self.today = today

    def _mark_missed(self, items: list[Milestone]) -> list[Milestone]:
        today = self.today()
        result = []
        for milestone in items:
            if milestone.is_overdue(today):
                missed = replace(milestone, status=MilestoneStatus.MISSED)
                milestone = self.milestones.update(missed) or missed
                logger.info(
                    f"Milestone {milestone.id} marked missed",
                    extra={"initiative_id": milestone.initiative_id, "action": "mark_missed"},
                )
            result.append(milestone)
        return result

    def list_milestones(
        self,
        actor: UserRoleRecord,
        initiative_id: Optional[str] = None,
    ) -> list[Milestone]:
        require_role(actor.role, APPROVER_ROLES, "view milestones")
        if initiative_id is None:
            items = self.milestones.list_all()
        else:
            self._check_initiative(initiative_id)
            items = self.milestones.list_for_initiative(initiative_id)
        return self._mark_missed(items)

    def _check_initiative(self, initiative_id: str) -> None:
        if self.initiatives is not None and self.initiatives.get(initiative_id) is None:
            raise NotFoundError(
                message=f"Initiative '{initiative_id}' not found",
                initiative_id=initiative_id,
            )

    def _get(self, milestone_id: str) -> Milestone:
        milestone = self.milestones.get(milestone_id)
        if milestone is None:
            raise NotFoundError(message=f"Milestone '{milestone_id}' not found")
        return milestone

    def create(
        self,
        actor: UserRoleRecord,
        initiative_id: str,
        name: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Any = MilestoneStatus.NOT_STARTED,
        notes: Optional[str] = None,
    ) -> Milestone:
        require_role(actor.role, APPROVER_ROLES, "create milestones")
        if not name or not name.strip():
            raise InvalidInputError(message="Milestone name is required")
        self._check_initiative(initiative_id)

        milestone = Milestone(
            id=str(uuid4()),
            initiative_id=initiative_id,
            name=name.strip(),
            start_date=start_date,
            end_date=end_date,
            status=parse_milestone_status(status),
            notes=notes,
        )
        _check_dates(milestone)
        created = self.milestones.create(milestone)
        logger.info(
            "Milestone created",
            extra={"user_id": actor.user_id, "initiative_id": initiative_id, "action": "create"},
        )
        return created

    def update(
        self,
        actor: UserRoleRecord,
        milestone_id: str,
        changes: Mapping[str, Any],
    ) -> Milestone:
        require_role(actor.role, APPROVER_ROLES, "update milestones")
        current = self._get(milestone_id)
        allowed = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
        if "name" in allowed:
            name = allowed["name"]
            if name is None or not str(name).strip():
                raise InvalidInputError(message="Milestone name is required")
            allowed["name"] = str(name).strip()
        if "status" in allowed:
            allowed["status"] = parse_milestone_status(allowed["status"])
        updated = replace(current, **allowed)
        _check_dates(updated)
        saved = self.milestones.update(updated)
        if saved is None:
            raise NotFoundError(message=f"Milestone '{milestone_id}' not found")
        return saved

    def delete(self, actor: UserRoleRecord, milestone_id: str) -> None:
        require_role(actor.role, APPROVER_ROLES, "delete milestones")
        if not self.milestones.delete(milestone_id):
            raise NotFoundError(message=f"Milestone '{milestone_id}' not found")
