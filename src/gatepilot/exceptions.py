"""
GatePilot Exception Hierarchy

Domain-specific exceptions for the L-Gate governance workflow.
All exceptions include error codes for tracking and logging, and the
HTTP status the API layer surfaces them with.

Exception codes follow the pattern: GP_<CATEGORY>_<SPECIFIC>
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional


@dataclass
class GatePilotError(Exception):
    """
    Base exception for all GatePilot errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (GP_*)
        details: Additional context about the error
        initiative_id: Associated initiative ID if applicable
    """
    message: str
    code: str = "GP_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)
    initiative_id: Optional[str] = None

    http_status: ClassVar[int] = 500

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.code}] {self.message}"]
        if self.initiative_id:
            parts.append(f"(initiative: {self.initiative_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/API responses."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.initiative_id:
            result["initiative_id"] = self.initiative_id
        return result


# =============================================================================
# Session / Authorization Errors
# =============================================================================

@dataclass
class UnauthorizedError(GatePilotError):
    """No resolved user on the request."""
    code: str = "GP_UNAUTHORIZED"
    http_status: ClassVar[int] = 401


@dataclass
class ForbiddenError(GatePilotError):
    """Authenticated, but the role lacks permission for the action."""
    code: str = "GP_FORBIDDEN"
    http_status: ClassVar[int] = 403


# =============================================================================
# Input Errors
# =============================================================================

@dataclass
class InvalidInputError(GatePilotError):
    """Malformed enum value or missing required field."""
    code: str = "GP_INVALID_INPUT"
    http_status: ClassVar[int] = 400


@dataclass
class MissingReasonError(InvalidInputError):
    """Reject / change request submitted without a reason."""
    code: str = "GP_REASON_REQUIRED"


@dataclass
class IncompleteChecklistError(InvalidInputError):
    """Submit attempted while required checklist items are incomplete."""
    code: str = "GP_CHECKLIST_INCOMPLETE"


# =============================================================================
# Lookup Errors
# =============================================================================

@dataclass
class NotFoundError(GatePilotError):
    """Referenced initiative, gate, milestone or user does not exist."""
    code: str = "GP_NOT_FOUND"
    http_status: ClassVar[int] = 404


# =============================================================================
# Workflow Errors
# =============================================================================

@dataclass
class InvalidTransitionError(GatePilotError):
    """Action is not allowed from the form's current status."""
    code: str = "GP_INVALID_TRANSITION"
    http_status: ClassVar[int] = 409


@dataclass
class FormLockedError(InvalidTransitionError):
    """Approved forms are read-only until a change request reopens them."""
    code: str = "GP_FORM_LOCKED"


@dataclass
class VersionConflictError(GatePilotError):
    """The stored record changed since the caller loaded it."""
    code: str = "GP_VERSION_CONFLICT"
    http_status: ClassVar[int] = 409


# =============================================================================
# Catalog / Configuration Errors
# =============================================================================

@dataclass
class CatalogLoadError(GatePilotError):
    """Failed to read the gate catalog file."""
    code: str = "GP_CATALOG_LOAD_ERROR"


@dataclass
class CatalogValidationError(GatePilotError):
    """Gate catalog failed schema validation."""
    code: str = "GP_CATALOG_VALIDATION_ERROR"


@dataclass
class ConfigurationError(GatePilotError):
    """Invalid service configuration."""
    code: str = "GP_CONFIG_ERROR"
