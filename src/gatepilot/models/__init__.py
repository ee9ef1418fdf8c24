"""
GatePilot Domain Models

Re-exports all domain models for convenient access.

Usage:
    from gatepilot.models import (
        GateForm, FormStatus, GateAction, UserRole,
        InitiativeStatus, RAGStatus,
    )
"""
from __future__ import annotations

# Enums
from .enums import (
    APPROVER_ROLES,
    EDITOR_ROLES,
    FormStatus,
    GateAction,
    LGate,
    MilestoneStatus,
    RAGStatus,
    RequirementType,
    StatusAxis,
    UserRole,
)

# Gate forms
from .gate_form import (
    GateForm,
    GateFormEvent,
    form_id_for,
)

# Initiatives
from .initiative import (
    Initiative,
    InitiativeStatus,
    Milestone,
)

# Gate catalog
from .gate_catalog import (
    GateCatalog,
    GateDefinition,
    GateRequirement,
)

# Users
from .user import UserRoleRecord


__all__ = [
    # Enums
    "APPROVER_ROLES",
    "EDITOR_ROLES",
    "FormStatus",
    "GateAction",
    "LGate",
    "MilestoneStatus",
    "RAGStatus",
    "RequirementType",
    "StatusAxis",
    "UserRole",
    # Gate forms
    "GateForm",
    "GateFormEvent",
    "form_id_for",
    # Initiatives
    "Initiative",
    "InitiativeStatus",
    "Milestone",
    # Gate catalog
    "GateCatalog",
    "GateDefinition",
    "GateRequirement",
    # Users
    "UserRoleRecord",
]
