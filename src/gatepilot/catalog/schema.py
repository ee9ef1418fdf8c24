"""
GatePilot Gate Catalog Schemas

Pydantic models for validating gate catalog YAML/JSON files.

These schemas define the structure of the catalog that is loaded at
startup. They map to the domain models in gatepilot.models.gate_catalog.

Schema versioning:
- schema_version field tracks breaking changes
- Loaders check major-version compatibility
"""
from __future__ import annotations

import re
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# Schema Version
# =============================================================================

SCHEMA_VERSION = "1.0.0"

EXPECTED_GATE_IDS = ["L0", "L1", "L2", "L3", "L4", "L5", "L6"]

_REQUIREMENT_ID = re.compile(r"^[a-z][a-z0-9_]*$")


# =============================================================================
# Enums as Literals (for YAML validation)
# =============================================================================

RequirementTypeValue = Literal["document", "approval", "checkpoint"]


# =============================================================================
# Catalog Schemas
# =============================================================================

class RequirementSchema(BaseModel):
    """Schema for one checklist item."""
    id: str = Field(..., description="snake_case identifier, unique within the gate")
    name: str = Field(..., min_length=1)
    type: RequirementTypeValue = "document"
    description: Optional[str] = None
    required: bool = True

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not _REQUIREMENT_ID.match(v):
            raise ValueError(f"Requirement id '{v}' must be snake_case")
        return v

    model_config = {
        "extra": "forbid",
    }


class GateSchema(BaseModel):
    """Schema for one gate."""
    id: str
    name: str = Field(..., min_length=1)
    requirements: list[RequirementSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_requirements(self) -> "GateSchema":
        seen: set[str] = set()
        for req in self.requirements:
            if req.id in seen:
                raise ValueError(f"Gate {self.id}: duplicate requirement id '{req.id}'")
            seen.add(req.id)
        return self

    model_config = {
        "extra": "forbid",
    }


class GateCatalogSchema(BaseModel):
    """Root schema of a gate catalog file."""
    schema_version: str = SCHEMA_VERSION
    gates: list[GateSchema]

    @model_validator(mode="after")
    def validate_gate_sequence(self) -> "GateCatalogSchema":
        """Gates must be exactly L0..L6, in order."""
        ids = [g.id for g in self.gates]
        if ids != EXPECTED_GATE_IDS:
            raise ValueError(
                f"Catalog must define gates {EXPECTED_GATE_IDS} in order, got {ids}"
            )
        return self

    model_config = {
        "extra": "forbid",
    }


# =============================================================================
# Validation Helpers
# =============================================================================

def check_schema_version(version: str) -> bool:
    """Check whether a catalog schema version is compatible (same major)."""
    try:
        major = int(version.split(".")[0])
        expected_major = int(SCHEMA_VERSION.split(".")[0])
    except (ValueError, IndexError):
        return False
    return major == expected_major


def validate_catalog(data: dict) -> GateCatalogSchema:
    """Validate raw catalog data (raises pydantic.ValidationError)."""
    return GateCatalogSchema.model_validate(data)
