"""
GatePilot Checklist Gate

Server-side completeness check for a gate form's requirement checklist.
The same evaluation backs the UI's Submit guard and the workflow's submit
precondition, so the client is never the only line of enforcement.

The checklist lives in ``form_data["requirements"]`` in one of two shapes:

    {"requirements": {"revised_scope": true, "success_criteria": false}}
    {"requirements": [{"id": "revised_scope", "completed": true}, ...]}

Only a literal ``True`` counts as completed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..exceptions import IncompleteChecklistError, InvalidInputError
from ..models import GateDefinition

CHECKLIST_KEY = "requirements"


# =============================================================================
# Result
# =============================================================================

@dataclass
class ChecklistResult:
    """Outcome of evaluating a checklist against a gate definition."""
    gate: str
    completed: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    optional_missing: list[str] = field(default_factory=list)
    total_required: int = 0

    @property
    def can_submit(self) -> bool:
        return not self.missing

    @property
    def completeness_percentage(self) -> float:
        if self.total_required == 0:
            return 100.0
        done = self.total_required - len(self.missing)
        return round(100.0 * done / self.total_required, 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "gate": self.gate,
            "completed": list(self.completed),
            "missing": list(self.missing),
            "optional_missing": list(self.optional_missing),
            "total_required": self.total_required,
            "completeness_percentage": self.completeness_percentage,
            "can_submit": self.can_submit,
        }


# =============================================================================
# Evaluation
# =============================================================================

def extract_checklist(form_data: Optional[dict[str, Any]]) -> dict[str, bool]:
    """
    Normalize the checklist in ``form_data`` to {requirement_id: completed}.

    Raises:
        InvalidInputError: If the checklist has an unrecognised shape
    """
    if not form_data:
        return {}

    raw = form_data.get(CHECKLIST_KEY)
    if raw is None:
        return {}

    if isinstance(raw, dict):
        return {str(k): v is True for k, v in raw.items()}

    if isinstance(raw, list):
        items: dict[str, bool] = {}
        for entry in raw:
            if not isinstance(entry, dict) or "id" not in entry:
                raise InvalidInputError(
                    message="Checklist entries must be objects with an 'id'",
                    details={"entry": entry},
                )
            items[str(entry["id"])] = entry.get("completed") is True
        return items

    raise InvalidInputError(
        message=f"'{CHECKLIST_KEY}' must be a mapping or a list",
        details={"type": type(raw).__name__},
    )


def evaluate_checklist(
    gate: GateDefinition,
    form_data: Optional[dict[str, Any]],
) -> ChecklistResult:
    """Evaluate ``form_data``'s checklist against ``gate``'s requirements."""
    items = extract_checklist(form_data)
    result = ChecklistResult(gate=gate.id)

    for req in gate.requirements:
        done = items.get(req.id, False)
        if done:
            result.completed.append(req.id)
        elif req.required:
            result.missing.append(req.id)
        else:
            result.optional_missing.append(req.id)

    result.total_required = len(gate.required_ids)
    return result


def require_complete(
    gate: GateDefinition,
    form_data: Optional[dict[str, Any]],
    initiative_id: Optional[str] = None,
) -> ChecklistResult:
    """
    Evaluate the checklist and raise if any required item is incomplete.

    Raises:
        IncompleteChecklistError: Listing the missing requirement ids
    """
    result = evaluate_checklist(gate, form_data)
    if not result.can_submit:
        raise IncompleteChecklistError(
            message=(
                f"Gate {gate.id} cannot be submitted: "
                f"{len(result.missing)} required item(s) incomplete"
            ),
            details={"gate": gate.id, "missing": result.missing},
            initiative_id=initiative_id,
        )
    return result
