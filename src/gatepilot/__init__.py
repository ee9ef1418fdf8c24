"""
GatePilot - L-Gate portfolio governance

Tracks initiatives through the seven L-Gate governance checkpoints:
gate-review forms with a role-gated approval workflow, per-initiative
red/yellow/green status, milestones and a portfolio rollup.

Quick start:
    from gatepilot import GateFormWorkflow, load_catalog, memory_repositories

    repos = memory_repositories()
    workflow = GateFormWorkflow(repos.forms, load_catalog(), repos.initiatives)
"""
from __future__ import annotations

__version__ = "0.1.0"

from .catalog import load_catalog
from .engine import (
    GateFormWorkflow,
    InitiativeService,
    MilestoneTracker,
    RoleService,
    StatusBoard,
    access,
    access_matrix,
    summarize_portfolio,
)
from .exceptions import GatePilotError
from .models import FormStatus, GateAction, RAGStatus, UserRole
from .storage import Repositories, build_repositories, memory_repositories

__all__ = [
    "__version__",
    "FormStatus",
    "GateAction",
    "GateFormWorkflow",
    "GatePilotError",
    "InitiativeService",
    "MilestoneTracker",
    "RAGStatus",
    "Repositories",
    "RoleService",
    "StatusBoard",
    "UserRole",
    "access",
    "access_matrix",
    "build_repositories",
    "load_catalog",
    "memory_repositories",
    "summarize_portfolio",
]
