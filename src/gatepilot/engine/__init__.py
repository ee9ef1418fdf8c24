"""
GatePilot Engine

Access rules, the gate form workflow and the services built around it.
"""
from __future__ import annotations

from .access import (
    ACTION_ROLES,
    AccessDecision,
    access,
    access_matrix,
    require_role,
    role_may,
)
from .checklist import (
    CHECKLIST_KEY,
    ChecklistResult,
    evaluate_checklist,
    extract_checklist,
    require_complete,
)
from .initiatives import InitiativeService
from .milestones import MilestoneTracker, parse_milestone_status
from .portfolio import UNASSIGNED, PortfolioSummary, ValueStreamTotals, summarize_portfolio
from .roles import DEFAULT_ROLE, FIRST_USER_ROLE, RoleService, parse_role
from .status_board import StatusBoard, parse_axes
from .workflow import TRANSITIONS, GateFormWorkflow, next_status

__all__ = [
    "ACTION_ROLES",
    "AccessDecision",
    "CHECKLIST_KEY",
    "ChecklistResult",
    "DEFAULT_ROLE",
    "FIRST_USER_ROLE",
    "GateFormWorkflow",
    "InitiativeService",
    "MilestoneTracker",
    "PortfolioSummary",
    "RoleService",
    "StatusBoard",
    "TRANSITIONS",
    "UNASSIGNED",
    "ValueStreamTotals",
    "access",
    "access_matrix",
    "evaluate_checklist",
    "extract_checklist",
    "next_status",
    "parse_axes",
    "parse_milestone_status",
    "parse_role",
    "require_complete",
    "require_role",
    "role_may",
    "summarize_portfolio",
]
