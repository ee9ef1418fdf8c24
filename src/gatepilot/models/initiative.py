"""
GatePilot Initiative Models

Key components:
- Initiative: the top-level tracked unit of work
- InitiativeStatus: four independent red/yellow/green indicators
- Milestone: dated checkpoint within an initiative
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Optional

from .enums import MilestoneStatus, RAGStatus, StatusAxis


# =============================================================================
# Initiative
# =============================================================================

@dataclass
class Initiative:
    """
    A tracked initiative (a "project" in UI copy).

    Attributes:
        id: Business identifier, e.g. "INIT-1"
        name: Display name
        value_stream: Owning value stream
        l_gate: Current gate the initiative sits at
        priority_category: Free-form priority bucket
        priority_rank: Rank within the bucket (lower is higher priority)
        budgeted_cost: Budgeted cost
        targeted_benefit: Targeted benefit
        cost_center: Cost center code
    """
    id: str
    name: str
    value_stream: Optional[str] = None
    l_gate: Optional[str] = None
    priority_category: Optional[str] = None
    priority_rank: int = 0
    budgeted_cost: float = 0.0
    targeted_benefit: float = 0.0
    cost_center: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Fields a caller may change after creation
    UPDATABLE_FIELDS = (
        "name",
        "value_stream",
        "l_gate",
        "priority_category",
        "priority_rank",
        "budgeted_cost",
        "targeted_benefit",
        "cost_center",
    )

    def apply_changes(self, changes: dict[str, Any]) -> Initiative:
        """Return a copy with the updatable fields in ``changes`` applied."""
        allowed = {k: v for k, v in changes.items() if k in self.UPDATABLE_FIELDS}
        return replace(self, **allowed)


# =============================================================================
# Initiative Status
# =============================================================================

@dataclass
class InitiativeStatus:
    """
    Operator-set indicators for an initiative.

    No field is derived from gate form state; each axis is an opinion
    set independently by an authorized editor. Absent rows read as
    all-green.
    """
    initiative_id: str
    cost_status: RAGStatus = RAGStatus.GREEN
    benefit_status: RAGStatus = RAGStatus.GREEN
    timeline_status: RAGStatus = RAGStatus.GREEN
    scope_status: RAGStatus = RAGStatus.GREEN
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def default(cls, initiative_id: str) -> InitiativeStatus:
        return cls(initiative_id=initiative_id)

    def axis(self, axis: StatusAxis) -> RAGStatus:
        """Value of one axis."""
        return getattr(self, f"{axis.value}_status")

    def as_axes(self) -> dict[StatusAxis, RAGStatus]:
        return {axis: self.axis(axis) for axis in StatusAxis}

    def same_values(self, other: InitiativeStatus) -> bool:
        """Compare the four indicator values only."""
        return self.as_axes() == other.as_axes()


# =============================================================================
# Milestone
# =============================================================================

@dataclass
class Milestone:
    """A dated checkpoint belonging to an initiative."""
    id: str
    initiative_id: str
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: MilestoneStatus = MilestoneStatus.NOT_STARTED
    notes: Optional[str] = None

    def is_overdue(self, today: date) -> bool:
        """Past its end date without being closed out."""
        if self.end_date is None:
            return False
        if self.status in (MilestoneStatus.COMPLETED, MilestoneStatus.MISSED):
            return False
        return self.end_date < today
