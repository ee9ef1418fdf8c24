"""
GatePilot Gate Catalog Models

Definitions of the L-Gates and the requirement checklist each gate's
review form must satisfy before it can be submitted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .enums import RequirementType


@dataclass(frozen=True)
class GateRequirement:
    """One checklist item of a gate."""
    id: str
    name: str
    type: RequirementType = RequirementType.DOCUMENT
    description: Optional[str] = None
    required: bool = True


@dataclass(frozen=True)
class GateDefinition:
    """A governance checkpoint and its checklist."""
    id: str
    name: str
    sequence: int
    requirements: tuple[GateRequirement, ...] = ()

    @property
    def required_ids(self) -> list[str]:
        return [r.id for r in self.requirements if r.required]


@dataclass
class GateCatalog:
    """
    Ordered set of gate definitions.

    Usage:
        catalog = load_catalog()
        l3 = catalog.get("L3")
        print(l3.required_ids)
    """
    gates: list[GateDefinition] = field(default_factory=list)
    version: str = "1.0.0"
    source: Optional[str] = None

    def __post_init__(self) -> None:
        self._by_id = {g.id: g for g in self.gates}

    def __contains__(self, gate_id: object) -> bool:
        return gate_id in self._by_id

    def __len__(self) -> int:
        return len(self.gates)

    def get(self, gate_id: str) -> Optional[GateDefinition]:
        return self._by_id.get(gate_id)

    @property
    def gate_ids(self) -> list[str]:
        return [g.id for g in self.gates]
