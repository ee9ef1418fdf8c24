"""
GatePilot Status Board

Per-initiative red/yellow/green indicators on four independent axes.
No sequencing rules: any editor may set any axis to any value at any
time. Reads never fail for a known initiative; an absent row reads as
all-green.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from ..exceptions import InvalidInputError, NotFoundError
from ..models import EDITOR_ROLES, InitiativeStatus, RAGStatus, StatusAxis, UserRoleRecord
from ..storage import InitiativeStore, StatusStore
from .access import require_role

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_axes(values: Mapping[str, Any]) -> dict[StatusAxis, RAGStatus]:
    """
    Validate a full set of axis values.

    ``values`` is keyed by axis name ("cost", "benefit", ...). All four
    axes must be present and each must be green, yellow or red.

    Raises:
        InvalidInputError: Listing every missing or invalid axis
    """
    errors: list[str] = []
    parsed: dict[StatusAxis, RAGStatus] = {}
    for axis in StatusAxis:
        raw = values.get(axis.value)
        if raw is None:
            errors.append(f"{axis.value}: required")
            continue
        try:
            parsed[axis] = RAGStatus(raw)
        except ValueError:
            errors.append(f"{axis.value}: '{raw}' is not one of green, yellow, red")

    if errors:
        raise InvalidInputError(
            message="Invalid initiative status",
            details={"errors": errors},
        )
    return parsed


class StatusBoard:
    """Reads and writes InitiativeStatus rows."""

    def __init__(
        self,
        statuses: StatusStore,
        initiatives: Optional[InitiativeStore] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.statuses = statuses
        self.initiatives = initiatives
        self.clock = clock

    def _check_initiative(self, initiative_id: str) -> None:
        if self.initiatives is not None and self.initiatives.get(initiative_id) is None:
            raise NotFoundError(
                message=f"Initiative '{initiative_id}' not found",
                initiative_id=initiative_id,
            )

    def get(self, initiative_id: str) -> InitiativeStatus:
        self._check_initiative(initiative_id)
        return self.statuses.get(initiative_id) or InitiativeStatus.default(initiative_id)

    def set(
        self,
        actor: UserRoleRecord,
        initiative_id: str,
        values: Mapping[str, Any],
    ) -> InitiativeStatus:
        """
        Replace all four indicators in one write.

        Setting the same values twice is a no-op that returns the stored row.

        Raises:
            ForbiddenError: Actor is not an editor
            InvalidInputError: Missing or invalid axis value
            NotFoundError: Unknown initiative
        """
        require_role(actor.role, EDITOR_ROLES, "update initiative status")
        axes = parse_axes(values)
        self._check_initiative(initiative_id)

        candidate = InitiativeStatus(
            initiative_id=initiative_id,
            cost_status=axes[StatusAxis.COST],
            benefit_status=axes[StatusAxis.BENEFIT],
            timeline_status=axes[StatusAxis.TIMELINE],
            scope_status=axes[StatusAxis.SCOPE],
            updated_by=actor.user_id,
            updated_at=self.clock(),
        )

        existing = self.statuses.get(initiative_id)
        if existing is not None and existing.same_values(candidate):
            return existing

        saved = self.statuses.upsert(candidate)
        logger.info(
            "Initiative status updated",
            extra={
                "user_id": actor.user_id,
                "initiative_id": initiative_id,
                "action": "set_status",
            },
        )
        return saved

    def remove(self, initiative_id: str) -> bool:
        return self.statuses.delete(initiative_id)
