"""
GatePilot Enumerations

All enumeration types used throughout the GatePilot system.
Organized by domain area for clarity.

All enums inherit from (str, Enum) for JSON serialization compatibility.
"""
from __future__ import annotations

from enum import Enum


# =============================================================================
# Roles
# =============================================================================

class UserRole(str, Enum):
    """Application roles."""
    CONTROL_TOWER = "control_tower"    # Administrative, approval authority
    STO = "sto"                        # Edits forms, cannot approve
    SLT = "slt"                        # View-only leadership


EDITOR_ROLES = frozenset({UserRole.CONTROL_TOWER, UserRole.STO})
APPROVER_ROLES = frozenset({UserRole.CONTROL_TOWER})


# =============================================================================
# Gate Form Lifecycle
# =============================================================================

class FormStatus(str, Enum):
    """Lifecycle status of one gate-review form."""
    NOT_STARTED = "not_started"
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"                  # Locked
    REJECTED = "rejected"
    CHANGE_REQUESTED = "change_requested"  # Reopened after approval


class GateAction(str, Enum):
    """Actions that move a gate form between statuses."""
    SAVE_DRAFT = "save_draft"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_CHANGE = "request_change"


class LGate(str, Enum):
    """The seven sequential governance checkpoints."""
    L0 = "L0"
    L1 = "L1"
    L2 = "L2"
    L3 = "L3"
    L4 = "L4"
    L5 = "L5"
    L6 = "L6"


class RequirementType(str, Enum):
    """Kind of item on a gate checklist."""
    DOCUMENT = "document"
    APPROVAL = "approval"
    CHECKPOINT = "checkpoint"


# =============================================================================
# Initiative Indicators
# =============================================================================

class RAGStatus(str, Enum):
    """Red/yellow/green indicator value."""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class StatusAxis(str, Enum):
    """The four independent initiative status axes."""
    COST = "cost"
    BENEFIT = "benefit"
    TIMELINE = "timeline"
    SCOPE = "scope"


class MilestoneStatus(str, Enum):
    """Milestone progress."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    MISSED = "missed"                  # Set automatically once end date passes
